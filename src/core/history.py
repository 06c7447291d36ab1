# core/history.py
from __future__ import annotations

from typing import Iterable, Sequence

from core.models import Track

HISTORY_CAPACITY = 50


class RecentHistory:
    """Most-recent-first list of played track ids, deduplicated and bounded."""

    def __init__(self, ids: Iterable[str] = (), capacity: int = HISTORY_CAPACITY):
        self.capacity = capacity
        self._ids: list[str] = []
        for track_id in reversed(list(ids)):
            self.record(track_id)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(self._ids)

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def clear(self) -> None:
        self._ids.clear()

    def record(self, track_id: str) -> None:
        self._ids = [track_id] + [i for i in self._ids if i != track_id]
        del self._ids[self.capacity:]

    def previous(self, current_id: str | None, playlist: Sequence[Track]) -> int:
        """
        Index in ``playlist`` of the most recent other track still present,
        or the sequential previous index when history has nothing usable.
        """
        n = len(playlist)
        if n == 0:
            return 0

        live = {t.id: i for i, t in enumerate(playlist)}
        for track_id in self._ids:
            if track_id != current_id and track_id in live:
                return live[track_id]

        current_index = live.get(current_id, 0)
        return (current_index - 1 + n) % n

    def sort_by_recency(self, playlist: Sequence[Track]) -> list[Track]:
        if not self._ids:
            return list(playlist)
        rank = {track_id: i for i, track_id in enumerate(self._ids)}
        unranked = len(rank)
        # sorted() is stable, so unranked tracks keep their "added" order
        return sorted(playlist, key=lambda t: rank.get(t.id, unranked))
