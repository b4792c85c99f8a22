"""Concrete grid pipeline stages.

These stages wrap the bucket assembler and the deduplication engine into the
GridStage protocol so they can be composed into a GridPipeline.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Optional

from calendargrid.calendar.grid_models import PlacedEntry

from .bucket_assembler import DayBucketAssembler
from .event_deduplicator import DeduplicationEngine
from .pipeline import GridBuildContext, GridBuildResult

logger = logging.getLogger(__name__)


class AssembleStage:
    """Expand recurrences and place every occurrence into the window's day buckets."""

    def __init__(self, assembler: Optional[DayBucketAssembler] = None) -> None:
        self._name = "Assemble"
        self._assembler = assembler

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    def process(self, context: GridBuildContext) -> GridBuildResult:
        assembler = self._assembler or DayBucketAssembler.from_config(context.config, context.viewer_timezone)
        result = GridBuildResult(stage_name=self.name, events_in=len(context.events))

        built = assembler.assemble(context.events, context.window)

        context.window_keys = built.window
        context.buckets = built.buckets
        context.skipped_event_ids.extend(built.skipped_event_ids)

        # The assembler already logged each warning
        result.warnings.extend(built.warnings)
        result.entries_placed = built.entries_placed
        result.metadata["occurrences_generated"] = built.occurrences_generated
        result.metadata["window_days"] = len(built.window)
        return result


class DeduplicationStage:
    """Collapse duplicate sync copies within each day bucket."""

    def __init__(self, engine: Optional[DeduplicationEngine] = None) -> None:
        self._name = "Deduplication"
        self._engine = engine or DeduplicationEngine()

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self._name

    def process(self, context: GridBuildContext) -> GridBuildResult:
        """Deduplicate every bucket in context.buckets.

        Returns:
            Result carrying the number of entries removed
        """
        result = GridBuildResult(stage_name=self.name)

        deduplicated: dict[str, tuple[PlacedEntry, ...]] = {}
        entries_in = 0
        for day_key, entries in context.buckets.items():
            entries_in += len(entries)
            deduplicated[day_key] = tuple(self._engine.deduplicate(entries))

        context.buckets = MappingProxyType(deduplicated)
        result.entries_placed = sum(len(entries) for entries in deduplicated.values())
        result.duplicates_removed = entries_in - result.entries_placed

        if result.duplicates_removed > 0:
            logger.debug(
                "Deduplication: %s → %s entries (%s duplicates removed)",
                entries_in,
                result.entries_placed,
                result.duplicates_removed,
            )
        else:
            logger.debug("Deduplication: %d entries (no duplicates found)", entries_in)
        return result
