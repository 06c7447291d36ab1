import time

from core.playlist_controller import PlaylistController
from db.database import add_track, list_playlists
from db.migrations import open_database
from db.models import StoredTrack
from workers.playlist_loader import PlaylistLoader, threaded_loader


def seeded_db(tmp_path):
    path = str(tmp_path / "db.sqlite3")
    db = open_database(path)
    playlist = list_playlists(db)[0]
    for i, name in enumerate(["b.wav", "a.wav"]):
        add_track(db, StoredTrack(id=name, playlist_id=playlist.id, name=name,
                                  data=b"RIFF", priority=2, added_at=i))
    return path, db, playlist


def test_worker_reads_tracks_with_its_own_connection(tmp_path):
    path, db, playlist = seeded_db(tmp_path)
    results = []
    worker = PlaylistLoader(path, playlist.id, 7)
    worker.loaded.connect(lambda token, tracks: results.append((token, [t.name for t in tracks])))

    worker.run()

    assert results == [(7, ["b.wav", "a.wav"])]
    db.close()


def test_worker_reports_failure(tmp_path):
    failures = []
    worker = PlaylistLoader(str(tmp_path / "empty.sqlite3"), "nope", 3)
    worker.failed.connect(lambda token, message: failures.append(token))
    worker.run()
    assert failures == [3]


def test_threaded_loader_delivers_to_controller(tmp_path, app_state, qt_app):
    path, db, playlist = seeded_db(tmp_path)
    app_state.db = db
    controller = PlaylistController(app_state)
    controller.set_loader(threaded_loader(controller, path))

    controller.select_playlist(playlist.id)
    deadline = time.monotonic() + 5
    while not controller.tracks and time.monotonic() < deadline:
        qt_app.processEvents()
        time.sleep(0.01)

    assert [t.name for t in controller.tracks] == ["b.wav", "a.wav"]
    controller.release_sources()
    db.close()
