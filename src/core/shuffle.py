# core/shuffle.py
from __future__ import annotations

import random
from typing import Optional, Sequence

from core.models import Track

# priority -> weight; HIGH:MED:LOW selection odds of 9:3:1
PRIORITY_WEIGHTS = {3: 9, 2: 3, 1: 1}
UNSET_WEIGHT = 3


def weight(priority: Optional[int]) -> int:
    return PRIORITY_WEIGHTS.get(priority, UNSET_WEIGHT)


def pick_next(playlist: Sequence[Track], exclude_id: str | None, rng: random.Random | None = None) -> Optional[Track]:
    """
    Weighted random choice of the next track, never the excluded one unless
    it is the only track.
    """
    if not playlist:
        return None
    if len(playlist) == 1:
        return playlist[0]

    candidates = [t for t in playlist if t.id != exclude_id]
    if not candidates:
        return playlist[0]

    total = sum(weight(t.priority) for t in candidates)
    r = (rng or random).random() * total

    for track in candidates:
        r -= weight(track.priority)
        if r <= 0:
            return track
    return candidates[0]


def pick_next_index(playlist: Sequence[Track], exclude_id: str | None, rng: random.Random | None = None) -> int:
    track = pick_next(playlist, exclude_id, rng)
    if track is None:
        return 0
    for i, t in enumerate(playlist):
        if t.id == track.id:
            return i
    return 0
