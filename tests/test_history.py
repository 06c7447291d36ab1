from conftest import make_track
from core.history import HISTORY_CAPACITY, RecentHistory


def test_record_moves_to_front_without_duplicates():
    h = RecentHistory()
    for track_id in ["a", "b", "a", "c"]:
        h.record(track_id)
    assert h.ids == ["c", "a", "b"]


def test_capacity_is_bounded():
    h = RecentHistory()
    for i in range(HISTORY_CAPACITY + 20):
        h.record(str(i))
    assert len(h) == HISTORY_CAPACITY
    assert h.ids[0] == str(HISTORY_CAPACITY + 19)
    assert len(set(h.ids)) == len(h)


def test_previous_skips_current_and_removed_tracks():
    tracks = [make_track("a"), make_track("b"), make_track("c")]
    h = RecentHistory(["c", "gone", "b", "a"])
    assert h.previous("c", tracks) == 1


def test_previous_falls_back_to_sequential():
    tracks = [make_track("a"), make_track("b"), make_track("c")]
    h = RecentHistory()
    assert h.previous("a", tracks) == 2
    assert h.previous("c", tracks) == 1
    assert RecentHistory().previous(None, []) == 0


def test_sort_by_recency_keeps_added_order_for_unplayed():
    tracks = [make_track(x) for x in "abcde"]
    h = RecentHistory(["d", "b"])
    assert [t.id for t in h.sort_by_recency(tracks)] == ["d", "b", "a", "c", "e"]
    assert [t.id for t in RecentHistory().sort_by_recency(tracks)] == list("abcde")
