import random
from collections import Counter

from conftest import make_track
from core.shuffle import pick_next, pick_next_index, weight


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def test_weights():
    assert weight(3) == 9
    assert weight(2) == 3
    assert weight(1) == 1
    assert weight(None) == weight(2)


def test_draw_lands_on_medium_track():
    a, b, c = make_track("a", 3), make_track("b", 2), make_track("c", 1)
    # candidates [b, c], total 4, r = 2.5
    assert pick_next([a, b, c], "a", FixedRandom(0.625)) is b


def test_draw_past_first_candidate():
    a, b, c = make_track("a", 3), make_track("b", 2), make_track("c", 1)
    assert pick_next([a, b, c], "a", FixedRandom(0.99)) is c


def test_never_picks_excluded_track():
    tracks = [make_track(str(i), 1 + i % 3) for i in range(5)]
    rng = random.Random(7)
    for _ in range(500):
        assert pick_next(tracks, "2", rng).id != "2"


def test_single_and_empty_playlist():
    only = make_track("only")
    assert pick_next([only], "only") is only
    assert pick_next([], None) is None
    assert pick_next_index([], None) == 0


def test_priority_odds_converge_to_9_3_1():
    tracks = [make_track("x", 2), make_track("hi", 3), make_track("mid", 2), make_track("lo", 1)]
    rng = random.Random(42)
    counts = Counter(pick_next(tracks, "x", rng).id for _ in range(26000))

    assert abs(counts["hi"] / 26000 - 9 / 13) < 0.02
    assert abs(counts["mid"] / 26000 - 3 / 13) < 0.02
    assert abs(counts["lo"] / 26000 - 1 / 13) < 0.02


def test_unset_priority_weighs_like_medium():
    tracks = [make_track("x"), make_track("unset", None), make_track("mid", 2)]
    rng = random.Random(3)
    counts = Counter(pick_next(tracks, "x", rng).id for _ in range(10000))
    assert abs(counts["unset"] - counts["mid"]) < 500


def test_pick_next_index_points_into_playlist():
    tracks = [make_track("a", 3), make_track("b", 2), make_track("c", 1)]
    assert pick_next_index(tracks, "a", FixedRandom(0.625)) == 1
