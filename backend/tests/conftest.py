"""Shared fixtures for the montage test suite."""
import shutil

import pytest

from montage.core.config import reset_settings
from montage.editing.utils.video_utils import MediaInfo

FFMPEG_AVAILABLE = shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Every test starts from default settings."""
    for name in ("FFMPEG_BINARY", "FFPROBE_BINARY", "MONTAGE_OUTPUT_DIR", "MONTAGE_VIDEO_PRESET",
                 "MONTAGE_VIDEO_CRF", "MONTAGE_FONT_FILE"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def make_media_info(duration=20.0, width=1280, height=720, audio=True, video=True):
    streams = []
    if video:
        streams.append({'index': 0, 'codec_type': 'video', 'width': width, 'height': height})
    if audio:
        streams.append({'index': len(streams), 'codec_type': 'audio'})
    return MediaInfo(duration=duration, width=width if video else 0,
                     height=height if video else 0, streams=streams)


@pytest.fixture
def media_info():
    return make_media_info()


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "source.mp4"
    path.write_bytes(b"source-bytes")
    return path
