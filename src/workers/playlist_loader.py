# workers/playlist_loader.py
import logging
import sqlite3

from PySide6.QtCore import QThread, Signal

from core.errors import StorageError
from db.database import list_tracks_for_playlist

logger = logging.getLogger(__name__)


class PlaylistLoader(QThread):
    loaded = Signal(int, object)   # token, list[StoredTrack]
    failed = Signal(int, str)      # token, message

    def __init__(self, db_path: str, playlist_id: str, token: int):
        super().__init__()
        self.db_path = db_path
        self.playlist_id = playlist_id
        self.token = token

    def run(self):
        # sqlite connections stay on the thread that opened them
        db = sqlite3.connect(self.db_path)
        db.row_factory = sqlite3.Row
        try:
            tracks = list_tracks_for_playlist(db, self.playlist_id)
        except (sqlite3.Error, StorageError) as e:
            logger.warning("Loading playlist %s failed: %s", self.playlist_id, e)
            self.failed.emit(self.token, f"Load failed: {e}")
            return
        finally:
            db.close()
        self.loaded.emit(self.token, tracks)


def threaded_loader(controller, db_path: str):
    """
    Build a loader for PlaylistController that reads tracks on a worker
    thread. Results are delivered back on the controller's thread.
    """
    workers: set[PlaylistLoader] = set()

    def load(playlist_id: str, token: int) -> None:
        worker = PlaylistLoader(db_path, playlist_id, token)
        worker.loaded.connect(controller.apply_loaded_tracks)
        worker.failed.connect(controller.fail_load)
        worker.finished.connect(lambda: workers.discard(worker))
        workers.add(worker)
        worker.start()

    return load
