"""
Progress reporting for long-running generation runs.

A ProgressHub keeps one ordered event channel per run. Subscribers receive
a replay of the events published so far, then live events, until the run
completes or fails. Reporters push GenerationProgress snapshots into a
channel or to an external status endpoint.
"""

import asyncio
import json
import math
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from greenlit.core.exceptions import ValidationFailure
from greenlit.core.logging_config import get_logger

logger = get_logger("pipeline.progress")

TOTAL_STEPS = 8
TERMINAL_EVENTS = ("complete", "error")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def overall_progress(step_index: int, step_progress: int, total_steps: int = TOTAL_STEPS) -> int:
    """Overall percentage, rounded half up."""
    return int(math.floor((step_index * 100 + step_progress) / total_steps + 0.5))


@dataclass
class GenerationProgress:
    """Snapshot of a run's progress."""
    current_step: int = 0
    current_step_name: str = ""
    current_step_progress: int = 0
    overall_progress: int = 0
    current_detail: str = ""
    is_complete: bool = False

    @classmethod
    def at(cls, step_index: int, step_name: str, step_progress: int,
           detail: str = "", total_steps: int = TOTAL_STEPS) -> "GenerationProgress":
        return cls(
            current_step=step_index,
            current_step_name=step_name,
            current_step_progress=step_progress,
            overall_progress=overall_progress(step_index, step_progress, total_steps),
            current_detail=detail,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentStep": self.current_step,
            "currentStepName": self.current_step_name,
            "currentStepProgress": self.current_step_progress,
            "overallProgress": self.overall_progress,
            "currentDetail": self.current_detail,
            "isComplete": self.is_complete,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationProgress":
        return cls(
            current_step=int(data.get("currentStep", 0)),
            current_step_name=str(data.get("currentStepName", "")),
            current_step_progress=int(data.get("currentStepProgress", 0)),
            overall_progress=int(data.get("overallProgress", 0)),
            current_detail=str(data.get("currentDetail", "")),
            is_complete=bool(data.get("isComplete", False)),
        )


def sse_frame(event: Dict[str, Any]) -> str:
    """Format an event as a server-sent events data frame."""
    return f"data: {json.dumps(event, default=str)}\n\n"


# =============================================================================
# CHANNELS
# =============================================================================

class ProgressChannel:
    """Ordered event log for one run, with live subscribers."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        self.events: List[Dict[str, Any]] = []
        self.latest: Optional[GenerationProgress] = None
        self.closed = False
        self.created_at = datetime.now(timezone.utc)
        self.updated_at = self.created_at
        self._subscribers: List[asyncio.Queue] = []

    def publish(self, event: Dict[str, Any]) -> None:
        """Append an event and deliver it to every subscriber."""
        if self.closed:
            logger.warning(f"Dropped {event.get('type')} event for finished run {self.run_id}")
            return

        self.events.append(event)
        self.updated_at = datetime.now(timezone.utc)
        if event.get("type") == "progress":
            self.latest = GenerationProgress.from_dict(event["progress"])

        for queue in self._subscribers:
            queue.put_nowait(event)

        if event.get("type") in TERMINAL_EVENTS:
            self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for queue in self._subscribers:
            queue.put_nowait(None)

    async def subscribe(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield past events, then live ones until the run finishes."""
        replay = list(self.events)
        queue: Optional[asyncio.Queue] = None
        if not self.closed:
            queue = asyncio.Queue()
            self._subscribers.append(queue)

        try:
            for event in replay:
                yield event
            if queue is None:
                return
            while True:
                event = await queue.get()
                if event is None:
                    return
                yield event
        finally:
            if queue is not None and queue in self._subscribers:
                self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "progress": self.latest.to_dict() if self.latest else None,
            "isComplete": self.closed,
            "events": len(self.events),
            "updatedAt": self.updated_at.isoformat(),
        }


class ProgressHub:
    """
    Registry of progress channels keyed by run id.

    Holds at most ``max_runs`` channels; once over capacity, finished runs
    are evicted oldest first. Active runs are never evicted.
    """

    def __init__(self, max_runs: int = 64):
        self.max_runs = max_runs
        self._channels: "OrderedDict[str, ProgressChannel]" = OrderedDict()

    @staticmethod
    def new_run_id() -> str:
        return uuid.uuid4().hex

    def get(self, run_id: str) -> Optional[ProgressChannel]:
        return self._channels.get(run_id)

    def channel(self, run_id: str) -> ProgressChannel:
        """Get or create the channel for a run."""
        channel = self._channels.get(run_id)
        if channel is None:
            channel = ProgressChannel(run_id)
            self._channels[run_id] = channel
            self._evict()
        return channel

    def reset(self, run_id: str) -> ProgressChannel:
        """Replace a run's channel with an empty one, closing the old one."""
        old = self._channels.pop(run_id, None)
        if old is not None:
            old.close()
            logger.info(f"Reset progress for run {run_id}")
        return self.channel(run_id)

    def start(self, run_id: str) -> ProgressChannel:
        """
        Claim a run id for a new run.

        A finished run's channel is replaced so the new run does not inherit
        its events. A run id that is still in progress is rejected.
        """
        existing = self._channels.get(run_id)
        if existing is None:
            return self.channel(run_id)
        if not existing.closed:
            raise ValidationFailure(f"Run '{run_id}' is already in progress")
        return self.reset(run_id)

    def _evict(self) -> None:
        while len(self._channels) > self.max_runs:
            finished = next((rid for rid, ch in self._channels.items() if ch.closed), None)
            if finished is None:
                logger.warning(f"Progress hub over capacity with {len(self._channels)} active runs")
                return
            del self._channels[finished]
            logger.debug(f"Evicted finished run {finished}")

    def __contains__(self, run_id: str) -> bool:
        return run_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)


# =============================================================================
# REPORTERS
# =============================================================================

class ProgressReporter:
    """Receives progress snapshots from a running pipeline."""

    async def report(self, progress: GenerationProgress) -> None:
        raise NotImplementedError


class ChannelReporter(ProgressReporter):
    """Publishes progress events into a hub channel."""

    def __init__(self, channel: ProgressChannel):
        self.channel = channel

    async def report(self, progress: GenerationProgress) -> None:
        self.channel.publish({"type": "progress", "progress": progress.to_dict()})


class StatusEndpointReporter(ProgressReporter):
    """
    Posts progress to an HTTP status endpoint.

    Delivery is best effort: failures are logged and never interrupt the run.
    """

    def __init__(self, url: str, run_id: str, timeout: float = 5.0):
        self.url = url
        self.run_id = run_id
        self.timeout = timeout

    async def report(self, progress: GenerationProgress) -> None:
        payload = {"action": "update", "runId": self.run_id, "progress": progress.to_dict()}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json=payload)
            if resp.status_code >= 400:
                logger.warning(f"Progress update for {self.run_id} rejected: HTTP {resp.status_code}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Failed to update progress for {self.run_id}: {e}")


class CompositeReporter(ProgressReporter):
    def __init__(self, reporters: List[ProgressReporter]):
        self.reporters = reporters

    async def report(self, progress: GenerationProgress) -> None:
        for reporter in self.reporters:
            await reporter.report(progress)
