"""Utility functions for probing and copying media files."""
import subprocess
import logging
import shutil
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from ..core.processor import EngineError
from ...core.config import get_settings

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class MediaInfo:
    """Subset of ffprobe output the executors rely on."""
    duration: float = 0.0
    width: int = 0
    height: int = 0
    streams: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_audio(self) -> bool:
        return any(s.get('codec_type') == 'audio' for s in self.streams)

    @property
    def has_video(self) -> bool:
        return any(s.get('codec_type') == 'video' for s in self.streams)


def parse_probe_output(raw: Dict[str, Any]) -> MediaInfo:
    """Build a MediaInfo from ffprobe's `-print_format json` document."""
    fmt = raw.get('format') or {}
    streams = []
    for stream in raw.get('streams', []):
        streams.append({
            'index': stream.get('index'),
            'codec_type': stream.get('codec_type', ''),
            'codec_name': stream.get('codec_name', ''),
            'width': stream.get('width'),
            'height': stream.get('height'),
            'sample_rate': stream.get('sample_rate'),
            'channels': stream.get('channels'),
            'duration': stream.get('duration'),
        })

    try:
        duration = float(fmt.get('duration') or 0)
    except (TypeError, ValueError):
        duration = 0.0

    # Still images and some containers only carry a per-stream duration.
    if duration <= 0:
        for stream in streams:
            try:
                duration = max(duration, float(stream.get('duration') or 0))
            except (TypeError, ValueError):
                continue

    video_stream = next((s for s in streams if s['codec_type'] == 'video'), None)
    return MediaInfo(
        duration=duration,
        width=int(video_stream.get('width') or 0) if video_stream else 0,
        height=int(video_stream.get('height') or 0) if video_stream else 0,
        streams=streams,
    )


def probe_media(input_path: PathLike) -> MediaInfo:
    """
    Get duration, dimensions and stream layout of a media file using ffprobe.

    Args:
        input_path: Path to the media file

    Returns:
        MediaInfo describing the file

    Raises:
        EngineError: If ffprobe fails or its output cannot be parsed
    """
    settings = get_settings()
    cmd = [
        settings.ffprobe_binary,
        '-v', 'error',
        '-print_format', 'json',
        '-show_format',
        '-show_streams',
        str(input_path)
    ]

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=120
        )
        return parse_probe_output(json.loads(result.stdout))
    except subprocess.CalledProcessError as e:
        logger.error(f"ffprobe failed for {input_path}: {e.stderr}")
        raise EngineError(f"ffprobe failed for {input_path}: {(e.stderr or '').strip()}",
                          returncode=e.returncode) from e
    except subprocess.TimeoutExpired as e:
        raise EngineError(f"ffprobe timed out for {input_path}") from e
    except OSError as e:
        raise EngineError(f"Could not start ffprobe ({cmd[0]}): {e}") from e
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing ffprobe output for {input_path}: {e}")
        raise EngineError(f"Unreadable ffprobe output for {input_path}") from e


def copy_media(input_path: PathLike, output_path: PathLike) -> Path:
    """Byte-for-byte copy, used wherever an operation is a no-op."""
    input_path, output_path = Path(input_path), Path(output_path)
    if input_path.resolve() != output_path.resolve():
        shutil.copyfile(input_path, output_path)
    return output_path


def format_sec(seconds: float) -> str:
    """Format seconds as MM:SS."""
    seconds = max(0.0, seconds)
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"
