"""
Greenlit Base Pipeline

Abstract base class for step-based generation pipelines.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from greenlit.core.logging_config import get_logger
from greenlit.pipeline.progress import GenerationProgress, ProgressReporter

logger = get_logger("pipeline.base")

InputT = TypeVar('InputT')
OutputT = TypeVar('OutputT')


class PipelineStatus(Enum):
    """Status of a pipeline execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepState(str, Enum):
    """State of a single step within a run."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class PipelineResult(Generic[OutputT]):
    """
    Result from a pipeline execution.

    On failure ``output`` holds whatever the completed steps produced.
    """
    status: PipelineStatus
    output: Optional[OutputT] = None
    error: Optional[Exception] = None
    failed_step: Optional[str] = None
    step_states: Dict[str, StepState] = field(default_factory=dict)
    duration_seconds: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == PipelineStatus.COMPLETED


@dataclass
class PipelineStep:
    """A step in a pipeline."""
    name: str
    description: str


class BasePipeline(ABC, Generic[InputT, OutputT]):
    """
    Abstract base class for processing pipelines.

    Features:
    - Step-based execution
    - Per-step state tracking
    - Progress reporting
    - Partial output on failure
    """

    def __init__(self, name: str, reporter: Optional[ProgressReporter] = None):
        self.name = name
        self._steps: List[PipelineStep] = []
        self._status = PipelineStatus.PENDING
        self._reporter = reporter
        self._step_states: Dict[str, StepState] = {}

        self._define_steps()

    @abstractmethod
    def _define_steps(self) -> None:
        """Define the pipeline steps. Override in subclasses."""
        pass

    @abstractmethod
    async def _execute_step(self, step: PipelineStep, state: OutputT,
                            context: Dict[str, Any]) -> OutputT:
        """Execute a single step, returning the updated state."""
        pass

    @abstractmethod
    def _initial_state(self, input_data: InputT) -> OutputT:
        pass

    async def run(self, input_data: InputT, context: Dict[str, Any] = None) -> PipelineResult[OutputT]:
        """
        Run every step in order. The first failing step ends the run.

        Args:
            input_data: Input data
            context: Additional context

        Returns:
            PipelineResult with output
        """
        context = context or {}
        start_time = datetime.now()

        self._status = PipelineStatus.RUNNING
        self._step_states = {step.name: StepState.PENDING for step in self._steps}

        logger.info(f"Starting pipeline: {self.name}")

        state = self._initial_state(input_data)
        total = len(self._steps)

        for i, step in enumerate(self._steps):
            self._step_states[step.name] = StepState.IN_PROGRESS
            await self.report(GenerationProgress.at(i, step.description, 0,
                                                    f"Generating {step.description.lower()}...", total))

            logger.debug(f"Executing step: {step.name}")

            try:
                state = await self._execute_step(step, state, context)
            except Exception as e:
                self._step_states[step.name] = StepState.FAILED
                self._status = PipelineStatus.FAILED
                logger.error(f"Pipeline failed: {self.name} at {step.name} - {e}")
                return PipelineResult(
                    status=PipelineStatus.FAILED,
                    output=state,
                    error=e,
                    failed_step=step.name,
                    step_states=dict(self._step_states),
                    duration_seconds=self._get_duration(start_time),
                    metadata={'steps_completed': i},
                )

            self._step_states[step.name] = StepState.COMPLETE
            await self.report(GenerationProgress.at(i, step.description, 100,
                                                    f"{step.description} complete", total))

        self._status = PipelineStatus.COMPLETED
        final = GenerationProgress.at(total - 1, "Complete", 100, "All stages complete", total)
        final.is_complete = True
        await self.report(final)

        return PipelineResult(
            status=PipelineStatus.COMPLETED,
            output=state,
            step_states=dict(self._step_states),
            duration_seconds=self._get_duration(start_time),
            metadata={'steps_completed': total},
        )

    async def report(self, progress: GenerationProgress) -> None:
        """Report progress to the configured reporter."""
        if self._reporter:
            await self._reporter.report(progress)

    def _get_duration(self, start_time: datetime) -> float:
        """Get duration since start time."""
        return (datetime.now() - start_time).total_seconds()

    @property
    def status(self) -> PipelineStatus:
        return self._status

    @property
    def steps(self) -> List[PipelineStep]:
        return self._steps.copy()
