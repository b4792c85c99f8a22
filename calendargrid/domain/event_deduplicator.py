"""Day-bucket deduplication of synced event copies - CalendarGrid.

Events synchronized from an external source can arrive as several
near-identical copies of the same logical item that differ only in
completeness: one carries the server URL/etag, another is a bare local stub.
"""

import logging
from collections.abc import Hashable, Sequence
from typing import Callable

from calendargrid.calendar.grid_datetime_utils import epoch_millis
from calendargrid.calendar.grid_models import GridEvent, PlacedEntry

logger = logging.getLogger(__name__)

CompletenessScore = tuple[int, int, int, int]


def _is_populated(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) > 0
    return True


def populated_field_count(event: GridEvent) -> int:
    """Number of event fields holding a non-empty value."""
    return sum(1 for name in type(event).model_fields if _is_populated(getattr(event, name)))


def completeness_score(event: GridEvent) -> CompletenessScore:
    """Ordering key for choosing between duplicate copies; higher wins.

    Compared in order: has a URL, has an etag, populated field count,
    combined title and description length.
    """
    return (
        1 if event.url else 0,
        1 if event.etag else 0,
        populated_field_count(event),
        len(event.title or "") + len(event.description or ""),
    )


class DeduplicationEngine:
    """Collapse duplicate entries within one day bucket."""

    def deduplicate(self, entries: Sequence[PlacedEntry]) -> list[PlacedEntry]:
        """Remove duplicate entries from a day's bucket.

        Two passes:
        1. Entries whose ``uid`` is shared by more than one entry in the bucket
           are grouped by ``(uid, occurrence index)``.
        2. Every surviving entry is grouped by ``(title, start epoch
           milliseconds, calendar_id)``.

        Each group keeps its most complete member (see completeness_score) at
        the position of the group's first member; ties keep the earlier entry.

        Args:
            entries: Entries placed on a single day, in display order

        Returns:
            Deduplicated list in display order
        """
        if len(entries) < 2:
            return list(entries)

        uid_counts: dict[str, int] = {}
        for entry in entries:
            uid = entry.event.uid
            if uid:
                uid_counts[uid] = uid_counts.get(uid, 0) + 1
        shared_uids = {uid for uid, count in uid_counts.items() if count > 1}

        survivors = list(entries)
        if shared_uids:
            survivors = self._collapse(survivors, lambda entry: self._uid_key(entry, shared_uids))
        survivors = self._collapse(survivors, self._content_key)

        removed = len(entries) - len(survivors)
        if removed:
            logger.debug("Removed %d duplicate entries from bucket of %d", removed, len(entries))
        return survivors

    @staticmethod
    def _uid_key(entry: PlacedEntry, shared_uids: set[str]) -> Hashable:
        uid = entry.event.uid
        if uid in shared_uids:
            return ("uid", uid, entry.occurrence.index)
        # Entries without a shared uid never collide in this pass
        return ("entry", id(entry))

    @staticmethod
    def _content_key(entry: PlacedEntry) -> Hashable:
        event = entry.event
        calendar_id = str(event.calendar_id) if event.calendar_id is not None else None
        return ("content", event.title, epoch_millis(entry.occurrence.start), calendar_id)

    def _collapse(
        self, entries: list[PlacedEntry], key_for: Callable[[PlacedEntry], Hashable]
    ) -> list[PlacedEntry]:
        slots: dict[Hashable, int] = {}
        result: list[PlacedEntry] = []
        for entry in entries:
            key = key_for(entry)
            position = slots.get(key)
            if position is None:
                slots[key] = len(result)
                result.append(entry)
                continue

            kept = result[position]
            if completeness_score(entry.event) > completeness_score(kept.event):
                logger.debug(
                    "Duplicate %r: replacing %s with more complete copy %s",
                    entry.title,
                    kept.list_key,
                    entry.list_key,
                )
                result[position] = entry
            else:
                logger.debug("Duplicate %r: dropping %s in favour of %s", entry.title, entry.list_key, kept.list_key)
        return result
