import random
import sqlite3

import pytest
from PySide6.QtCore import QCoreApplication, QObject, Signal

from core.models import PlaybackConfig, Track
from core.reconciler import PlaybackEventReconciler
from core.state import AppState
from db.migrations import upgrade_database_if_needed
from library.sources import SourceHandle
from player.regions import RegionBoard


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class ManualScheduler:
    """Collects deferred calls; tests run them explicitly."""

    def __init__(self):
        self.pending = []

    def __call__(self, ms, fn):
        self.pending.append((ms, fn))

    def run_all(self):
        while self.pending:
            batch, self.pending = self.pending, []
            for _ms, fn in batch:
                fn()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeTransport(QObject):
    """In-memory transport with the same signals as player.Player."""

    ready = Signal(int)
    finished = Signal(int)
    timeUpdated = Signal(float)
    durationChanged = Signal(float)
    errorOccurred = Signal(object)

    def __init__(self):
        super().__init__()
        self.regions = RegionBoard(self)
        self.calls = []
        self.paused = True
        self.rate = 1.0
        self.pos = 0.0
        self.length = 60.0
        self.token = 0
        self.source = None
        self.fail_play = None

    def load(self, source):
        self.token += 1
        self.source = source
        self.calls.append(("load", source))
        return self.token

    def play(self):
        self.calls.append(("play",))
        if self.fail_play is not None:
            raise self.fail_play
        self.paused = False

    def pause(self):
        self.calls.append(("pause",))
        self.paused = True

    def seek(self, seconds):
        self.calls.append(("seek", seconds))
        self.pos = seconds

    def set_rate(self, rate):
        self.calls.append(("set_rate", rate))
        self.rate = rate

    def is_paused(self):
        return self.paused

    def position(self):
        return self.pos

    def duration(self):
        return self.length

    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


def make_track(track_id, priority=2, name=None, source=None):
    return Track(
        id=track_id,
        source=source or SourceHandle(f"/tmp/{track_id}.mp3"),
        name=name or f"{track_id}.mp3",
        priority=priority,
    )


@pytest.fixture
def reconciler(transport, scheduler, clock):
    config = PlaybackConfig(loop_count=3, playback_speeds=[1.0, 1.2, 1.5])
    return PlaybackEventReconciler(transport, config=config, defer=scheduler, clock=clock)


@pytest.fixture
def playing(reconciler, transport):
    """A reconciler with track "a" loaded, ready and playing."""
    reconciler.set_track(make_track("a"))
    reconciler.play()
    transport.ready.emit(transport.token)
    transport.calls.clear()
    return reconciler


@pytest.fixture
def db():
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    upgrade_database_if_needed(conn, 0)
    yield conn
    conn.close()


@pytest.fixture
def app_state(db):
    state = AppState(db=db)
    state.notices = []
    state.notification.connect(state.notices.append)
    return state


@pytest.fixture
def rng():
    return random.Random(1234)

