# src/library/scan_library.py
from __future__ import annotations

import logging
import mimetypes
import os
from dataclasses import dataclass
from typing import Iterable, Optional

from mutagen import File as MutagenFile
from mutagen._util import MutagenError

logger = logging.getLogger(__name__)

AUDIO_EXTS = {".mp3", ".m4a", ".aac", ".flac", ".ogg", ".oga", ".opus", ".wav"}


@dataclass(frozen=True)
class AudioFile:
    file_path: str
    file_name: str      # basename (song.mp3), shown as the track name
    data: bytes
    duration: float


def is_audio_path(path: str) -> bool:
    ext = os.path.splitext(path)[1].lower()
    if ext in AUDIO_EXTS:
        return True
    mime, _ = mimetypes.guess_type(path)
    return bool(mime and mime.startswith("audio/"))


def iter_audio_paths(entries: Iterable[str]) -> list[str]:
    """Expand files and directories into audio file paths, keeping the given order."""
    paths: list[str] = []
    for entry in entries:
        if not entry:
            continue
        if os.path.isdir(entry):
            for dirpath, _, filenames in os.walk(entry):
                for fn in sorted(filenames):
                    full = os.path.join(dirpath, fn)
                    if is_audio_path(full):
                        paths.append(full)
        elif os.path.isfile(entry):
            paths.append(entry)
    return paths


def read_audio_file(path: str) -> Optional[AudioFile]:
    """
    Read ``path`` if mutagen recognises it as audio. Returns None for
    anything else; I/O errors propagate.
    """
    if not is_audio_path(path):
        return None

    try:
        audio = MutagenFile(path)
    except MutagenError as e:
        logger.warning("Unreadable audio file %s: %s", path, e)
        return None
    if audio is None:
        return None

    duration = 0.0
    if getattr(audio, "info", None) and getattr(audio.info, "length", None):
        duration = float(audio.info.length)

    with open(path, "rb") as f:
        data = f.read()

    return AudioFile(
        file_path=path,
        file_name=os.path.basename(path),
        data=data,
        duration=duration,
    )
