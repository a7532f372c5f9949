"""Shared plumbing for executors that render through ffmpeg."""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..core.processor import VideoProcessor, OperationProgress
from ..utils.ffmpeg_utils import run_ffmpeg
from ..utils.video_utils import MediaInfo, probe_media, copy_media
from ...core.config import get_settings

logger = logging.getLogger(__name__)


def video_encode_args() -> List[str]:
    settings = get_settings()
    return [
        '-c:v', 'libx264',
        '-preset', settings.video_preset,
        '-crf', str(settings.video_crf),
        '-pix_fmt', 'yuv420p',
    ]


AUDIO_ENCODE_ARGS = ['-c:a', 'aac']
CONTAINER_ARGS = ['-movflags', '+faststart']


def encode_args(copy_video: bool = False) -> List[str]:
    """Codec arguments for an mp4 output; video is stream-copied when untouched."""
    video = ['-c:v', 'copy'] if copy_video else video_encode_args()
    return video + AUDIO_ENCODE_ARGS + CONTAINER_ARGS


def scaled_progress(callback: Optional[OperationProgress], low: float,
                    high: float) -> Optional[OperationProgress]:
    """Map a 0-100 sub-step onto [low, high] of the operation's progress."""
    if callback is None:
        return None

    def _report(percent: float) -> None:
        callback(low + (high - low) * percent / 100)

    return _report


class FFmpegProcessor(VideoProcessor):
    """
    Base class for executors.

    Subclasses implement ``process``; ``probe``, ``render`` and
    ``passthrough`` are the only places that touch the engine or the disk.
    """

    kind: str = ''

    @property
    def name(self) -> str:
        return self.kind

    def probe(self, path: Path) -> MediaInfo:
        return probe_media(path)

    def render(self, args: Sequence[str], output_path: Path, duration: Optional[float] = None,
               progress_callback: Optional[OperationProgress] = None) -> List[str]:
        """Run ffmpeg with `args` followed by the output path."""
        return run_ffmpeg(
            [*args, str(output_path)],
            duration=duration,
            progress_callback=progress_callback,
        )

    def passthrough(self, input_path: Path, output_path: Path, operation: Any,
                    reason: str,
                    progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        """Copy the input unchanged, e.g. for an unknown effect name."""
        logger.info(f"{self.name}: passing {operation.id} through unchanged ({reason})")
        copy_media(input_path, output_path)
        if progress_callback:
            progress_callback(100.0)
        return self.result(output_path, operation, passthrough=True, reason=reason)

    def result(self, output_path: Path, operation: Any, **extra) -> Dict[str, Any]:
        return {
            'output_path': str(output_path),
            'operation_id': operation.id,
            'kind': operation.kind,
            'passthrough': False,
            **extra,
        }
