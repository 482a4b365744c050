"""
Greenlit Core Module

Configuration, constants, exceptions, logging and retry helpers.
"""

from .config import Settings, get_settings
from .constants import *
from .exceptions import *
from .logging_config import setup_logging, get_logger

__all__ = [
    'Settings',
    'get_settings',
    'setup_logging',
    'get_logger',
]
