import argparse
import logging
import os
import signal
import sqlite3
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QStandardPaths, QTimer

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from core.models import DEFAULT_PLAYBACK_SPEEDS, MAX_LOOP_COUNT
from core.practice import PracticeSession
from core.state import AppState, Notify
from db.migrations import initialize_database
from player.player import Player
from workers.playlist_loader import threaded_loader

logger = logging.getLogger("loopdrill")


def get_app_data_dir() -> str:
    base = QStandardPaths.writableLocation(QStandardPaths.AppDataLocation)
    os.makedirs(base, exist_ok=True)
    return base


def init_app_state() -> AppState:
    app_state = AppState()

    app_data_dir = get_app_data_dir()
    app_state.app_data_dir = app_data_dir
    app_state.db_path = os.path.join(app_data_dir, "db.sqlite3")

    app_state.db = initialize_database(app_data_dir)

    try:
        app_state.player = Player()
    except Exception as e:
        app_state.player = None
        app_state.queued_notifications.append(
            Notify(message=f"Failed to initialize audio player: {e}", notify_type="error")
        )

    return app_state


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="loopdrill",
        description="Play a practice playlist, looping each track at increasing speeds.",
    )
    parser.add_argument("--playlist", help="playlist to practice (created if missing)")
    parser.add_argument("--add", nargs="+", default=[], metavar="PATH",
                        help="audio files or folders to add to the playlist")
    parser.add_argument("--loops", type=int, choices=range(1, MAX_LOOP_COUNT + 1),
                        help="passes per track")
    parser.add_argument("--speeds", type=float, nargs="+", metavar="RATE",
                        help=f"speed of each pass (default {' '.join(map(str, DEFAULT_PLAYBACK_SPEEDS))})")
    parser.add_argument("--sleep", type=int, metavar="MINUTES", help="pause after this many minutes")
    parser.add_argument("--sequential", action="store_true", help="play in order instead of shuffling")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def configure(session: PracticeSession, args: argparse.Namespace) -> None:
    if args.loops is None and not args.speeds:
        return
    config = session.config
    if args.loops is not None:
        config = config.with_loop_count(args.loops)
    for i, speed in enumerate(args.speeds or []):
        config = config.with_speed(i, speed)
    session.update_config(config)


def select_playlist(session: PracticeSession, name: str | None) -> None:
    if not name:
        return
    for playlist in session.playlists.playlists:
        if playlist.name == name:
            session.playlists.select_playlist(playlist.id)
            return
    session.playlists.create_playlist(name)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    qt_app = QCoreApplication(sys.argv[:1])
    qt_app.setApplicationName("loopdrill")

    try:
        app_state = init_app_state()
    except (sqlite3.Error, OSError) as e:
        logger.error("Could not open the database: %s", e)
        return 1

    app_state.notification.connect(lambda n: logger.log(
        logging.ERROR if n.notify_type == "error" else logging.INFO, n.message))
    app_state.status_changed.connect(lambda text: logger.info(text))
    app_state.flush_notifications()
    if app_state.player is None:
        return 1

    session = PracticeSession(app_state, app_state.player)
    session.playlists.set_loader(threaded_loader(session.playlists, app_state.db_path))
    if args.sequential:
        session.playlists.toggle_shuffle()
    configure(session, args)

    started = False

    def on_loaded() -> None:
        nonlocal started
        if started:
            return
        started = True
        if args.add:
            result = session.playlists.add_files(args.add)
            logger.info("Added %d track(s), %d failed, %d skipped",
                        len(result.added), len(result.failed), len(result.skipped))
        if not session.playlists.tracks:
            logger.warning("Playlist is empty, nothing to play")
            qt_app.quit()
            return
        if args.sleep:
            session.sleep_timer.start(args.sleep)
        session.reconciler.play()

    # run after the loaded track has been handed to the reconciler
    session.playlists.playlistLoaded.connect(lambda _pid: QTimer.singleShot(0, on_loaded))
    session.sleep_timer.expired.connect(qt_app.quit)

    session.start()
    select_playlist(session, args.playlist)

    signal.signal(signal.SIGINT, lambda *_: qt_app.quit())
    # let the interpreter see SIGINT while Qt owns the loop
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(250)

    code = qt_app.exec()
    session.shutdown()
    app_state.db.close()
    return code


if __name__ == "__main__":
    raise SystemExit(main())
