import pytest

from core.timers import SessionClock, SleepTimer
from core.utils import format_clock, format_position


def test_sleep_timer_expires_once():
    timer = SleepTimer()
    fired = []
    timer.expired.connect(lambda: fired.append(True))
    timer.start(1)
    timer.set_playing(True)

    for _ in range(59):
        timer.tick()
    assert timer.remaining == 1
    assert fired == []

    timer.tick()
    timer.tick()
    timer.tick()
    assert fired == [True]
    assert not timer.active
    assert timer.remaining == 0


def test_sleep_timer_only_counts_while_playing():
    timer = SleepTimer()
    timer.start(2)
    timer.tick()
    assert timer.remaining == 120
    timer.set_playing(True)
    timer.tick()
    timer.set_playing(False)
    timer.tick()
    assert timer.remaining == 119
    assert timer.text() == "00:01:59"


def test_sleep_timer_bounds_and_cancel():
    timer = SleepTimer()
    with pytest.raises(ValueError):
        timer.start(0)
    with pytest.raises(ValueError):
        timer.start(181)
    timer.start(180)
    timer.cancel()
    timer.set_playing(True)
    timer.tick()
    assert not timer.active
    assert timer.remaining == 0


def test_session_clock_counts_playing_seconds():
    clock = SessionClock()
    clock.tick()
    clock.set_playing(True)
    for _ in range(3725):
        clock.tick()
    clock.set_playing(False)
    clock.tick()
    assert clock.elapsed == 3725
    assert clock.text() == "01:02:05"
    clock.reset()
    assert clock.elapsed == 0


def test_formatting():
    assert format_clock(0) == "00:00:00"
    assert format_clock(-4) == "00:00:00"
    assert format_position(65.9) == "1:05"
    assert format_position(600) == "10:00"
