"""
Greenlit Logging Configuration

All service loggers live under the ``greenlit`` namespace and share one set
of handlers with uvicorn's loggers, so request logs and pipeline logs land in
the same stream. Long-running generation runs log through a RunLogger that
prefixes every line with the run id.
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional, Tuple


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Map a level name such as "info" to a LogLevel, defaulting to INFO."""
        return cls.__members__.get((name or "").upper(), cls.INFO)


ROOT_NAMESPACE = "greenlit"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEBUG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_loggers: Dict[str, logging.Logger] = {}
_initialized: bool = False


def _build_handlers(level: LogLevel, formatter: logging.Formatter,
                    log_file: Optional[Path]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level.value)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[Path] = None,
    debug: bool = False,
    include_server: bool = True,
) -> None:
    """
    Configure the ``greenlit`` logger tree.

    Args:
        level: Minimum level for service loggers
        log_file: Also write to this file when set
        debug: Use the format with line numbers and function names
        include_server: Route uvicorn's loggers through the same handlers
    """
    global _initialized

    formatter = logging.Formatter(DEBUG_FORMAT if debug else LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = _build_handlers(level, formatter, log_file)

    root_logger = logging.getLogger(ROOT_NAMESPACE)
    root_logger.setLevel(level.value)
    root_logger.handlers = list(handlers)
    root_logger.propagate = False

    if include_server:
        for name in SERVER_LOGGERS:
            server_logger = logging.getLogger(name)
            server_logger.handlers = list(handlers)
            server_logger.propagate = False

    _initialized = True
    root_logger.debug(f"Logging configured at {level.name} (file: {log_file or 'none'})")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a component, e.g. ``get_logger("pipeline.arc")``.

    Configures default logging on first use so modules can log at import.
    """
    if not _initialized:
        setup_logging()

    full_name = name if name.startswith(ROOT_NAMESPACE) else f"{ROOT_NAMESPACE}.{name}"
    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)
    return _loggers[full_name]


class RunLogger(logging.LoggerAdapter):
    """Prefixes every message with the generation run it belongs to."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[run {self.extra['run_id']}] {msg}", kwargs


def get_run_logger(name: str, run_id: str) -> RunLogger:
    return RunLogger(get_logger(name), {"run_id": run_id})
