"""Grid build pipeline for calendargrid.

Runs the stored events for one display window through a sequence of
stages. The default pipeline assembles day buckets and then collapses
duplicate sync copies within each day.

Usage:
    pipeline = GridPipeline(config)
    result = pipeline.build(events, build_month_window(2025, 4))

    for day_key, entries in result.buckets.items():
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional, Protocol, Union

from calendargrid.calendar.grid_models import PlacedEntry
from calendargrid.core.config_loader import GridConfig
from calendargrid.core.timezone_utils import TimezoneLike

from .bucket_assembler import DayBuckets, EventInput

logger = logging.getLogger(__name__)


@dataclass
class GridBuildContext:
    """Context passed between pipeline stages.

    Stages read the inputs and replace ``buckets`` with their output.
    """

    events: list[EventInput] = field(default_factory=list)
    window: Any = None
    config: GridConfig = field(default_factory=GridConfig)
    viewer_timezone: TimezoneLike = None

    # Processing state (replaced by stages)
    window_keys: tuple[str, ...] = ()
    buckets: DayBuckets = field(default_factory=lambda: MappingProxyType({}))
    skipped_event_ids: list[Union[str, int, None]] = field(default_factory=list)

    # Stage-specific data
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class GridBuildResult:
    """Result from a pipeline stage or complete pipeline execution."""

    success: bool = True
    buckets: DayBuckets = field(default_factory=lambda: MappingProxyType({}))
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped_event_ids: list[Union[str, int, None]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    # Statistics
    events_in: int = 0
    entries_placed: int = 0
    duplicates_removed: int = 0
    stage_name: str = ""

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning("[%s] %s", self.stage_name, message)

    def add_error(self, message: str) -> None:
        """Add an error message and mark as failed."""
        self.errors.append(message)
        self.success = False
        logger.error("[%s] %s", self.stage_name, message)

    def entries_for(self, day_key: str) -> tuple[PlacedEntry, ...]:
        return self.buckets.get(day_key, ())

    @property
    def non_empty_days(self) -> list[str]:
        return [key for key, entries in self.buckets.items() if entries]


class GridStage(Protocol):
    """Protocol for a single stage in the grid build pipeline."""

    def process(self, context: GridBuildContext) -> GridBuildResult:
        """Process the context according to this stage's responsibility."""
        ...

    @property
    def name(self) -> str:
        """Name of this stage for logging."""
        ...


class GridPipeline:
    """Orchestrates a grid build through multiple stages.

    Stages run in sequence, each replacing the context's buckets. Engine
    errors are recovered inside the stages; a stage that raises anyway ends
    the build with the buckets produced so far.
    """

    def __init__(self, config: Optional[GridConfig] = None, stages: Optional[list[GridStage]] = None) -> None:
        self.config = config or GridConfig()
        if stages is None:
            stages = default_stages(self.config)
        self.stages: list[GridStage] = list(stages)

    def add_stage(self, stage: GridStage) -> GridPipeline:
        """Add a stage to the pipeline (builder pattern).

        Returns:
            Self for method chaining
        """
        self.stages.append(stage)
        logger.debug("Added stage to pipeline: %s", stage.name)
        return self

    def build(
        self,
        events: Iterable[EventInput],
        window: Any,
        viewer_timezone: TimezoneLike = None,
    ) -> GridBuildResult:
        """Build the day buckets for a display window.

        Args:
            events: Stored events, never mutated
            window: MonthWindow or an iterable of day keys / dates
            viewer_timezone: Explicit viewer timezone; defaults to the config's

        Returns:
            Aggregated result; ``buckets`` is always a usable mapping
        """
        context = GridBuildContext(
            events=list(events),
            window=window,
            config=self.config,
            viewer_timezone=viewer_timezone or self.config.default_timezone,
        )
        return self.process(context)

    def process(self, context: GridBuildContext) -> GridBuildResult:
        """Execute all stages in sequence."""
        logger.debug("Starting grid pipeline with %d stages", len(self.stages))
        aggregated = GridBuildResult(stage_name="Pipeline", events_in=len(context.events))

        for stage_num, stage in enumerate(self.stages, start=1):
            logger.debug("Executing stage %d/%d: %s", stage_num, len(self.stages), stage.name)
            try:
                stage_result = stage.process(context)
            except Exception as e:
                aggregated.add_error(f"Stage {stage.name} raised exception: {e}")
                logger.exception("Stage %s failed with exception", stage.name)
                break

            logger.debug(
                "Stage %s/%s (%s) completed: success=%s, entries=%s, warnings=%s",
                stage_num,
                len(self.stages),
                stage.name,
                stage_result.success,
                stage_result.entries_placed,
                len(stage_result.warnings),
            )

            aggregated.warnings.extend(stage_result.warnings)
            aggregated.errors.extend(stage_result.errors)
            aggregated.metadata.update(stage_result.metadata)
            aggregated.duplicates_removed += stage_result.duplicates_removed
            aggregated.entries_placed = stage_result.entries_placed
            if not stage_result.success:
                aggregated.success = False
                logger.error("Pipeline stopped at stage %s (%s) due to failure", stage_num, stage.name)
                break

        aggregated.buckets = context.buckets
        aggregated.skipped_event_ids = list(context.skipped_event_ids)
        logger.info(
            "Grid build finished: %d events, %d entries on %d days, %d duplicates removed, %d warnings",
            aggregated.events_in,
            aggregated.entries_placed,
            len(aggregated.non_empty_days),
            aggregated.duplicates_removed,
            len(aggregated.warnings),
        )
        return aggregated

    def clear_stages(self) -> None:
        """Remove all stages from the pipeline."""
        self.stages.clear()
        logger.debug("Cleared all pipeline stages")

    def __repr__(self) -> str:
        stage_names = [stage.name for stage in self.stages]
        return f"GridPipeline(stages={stage_names})"


def default_stages(config: GridConfig) -> list[GridStage]:
    """Assemble, then deduplicate when enabled."""
    from .pipeline_stages import AssembleStage, DeduplicationStage  # noqa: PLC0415

    stages: list[GridStage] = [AssembleStage()]
    if config.dedupe_enabled:
        stages.append(DeduplicationStage())
    return stages


def build_day_buckets(
    events: Iterable[EventInput],
    window: Any,
    config: Optional[GridConfig] = None,
    viewer_timezone: TimezoneLike = None,
) -> DayBuckets:
    """Convenience wrapper returning only the bucket mapping."""
    return GridPipeline(config).build(events, window, viewer_timezone=viewer_timezone).buckets
