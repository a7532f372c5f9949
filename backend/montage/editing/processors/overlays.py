"""
Overlay executors: composite a second input (image, audio or video) onto
the current clip inside the operation's window.

Asset references are resolved per operation; temp files created while
resolving are removed when the executor returns, success or failure.
"""
from pathlib import Path
from typing import Dict, Any, Optional, List
import logging

from .base import FFmpegProcessor, encode_args
from ..core.processor import OperationProgress, ParameterError
from ..utils.filter_graph import enable_between, fmt_num, overlay_position, scale_by
from ..utils.video_utils import MediaInfo
from ...schemas.edit_plan import (
    AudioOverlayOperation,
    ImageOverlayOperation,
    VideoOverlayOperation,
)
from ...services import asset_resolver

logger = logging.getLogger(__name__)


class OverlayProcessor(FFmpegProcessor):
    """Common flow: check the asset parameter, resolve it, build, render."""

    asset_param = ''

    def __init__(self, resolver_factory=None):
        self.resolver_factory = resolver_factory or asset_resolver.AssetResolver

    def asset_reference(self, operation) -> str:
        reference = getattr(operation.params, self.asset_param, None)
        if not reference:
            raise ParameterError(f"{self.kind} operation {operation.id} is missing {self.asset_param}")
        return reference

    def build_command(self, input_path: Path, asset_path: Path, operation,
                      info: MediaInfo) -> List[str]:
        raise NotImplementedError

    def process(self, input_path: Path, output_path: Path, operation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        """
        Raises:
            ParameterError: If the asset parameter is missing
            AssetResolutionError: If the asset cannot be resolved
        """
        reference = self.asset_reference(operation)
        info = self.probe(input_path)

        with self.resolver_factory() as resolver:
            asset_path = resolver.resolve(reference)
            args = self.build_command(input_path, asset_path, operation, info)
            logger.info(f"Applying {self.kind} from {asset_path} to {operation.id}")
            self.render(args, output_path, duration=info.duration,
                        progress_callback=progress_callback)

        return self.result(output_path, operation)


class ImageOverlayProcessor(OverlayProcessor):
    kind = 'overlay_image'
    asset_param = 'image_path'

    def build_filter(self, operation: ImageOverlayOperation, duration: float) -> str:
        start, end = operation.window(duration)
        x, y = overlay_position(operation.params.position)
        return (
            f"[1:v]{scale_by(operation.params.scale)}[ov];"
            f"[0:v][ov]overlay={x}:{y}:{enable_between(start, end)}[vout]"
        )

    def build_command(self, input_path: Path, asset_path: Path,
                      operation: ImageOverlayOperation, info: MediaInfo) -> List[str]:
        return [
            '-i', str(input_path),
            '-i', str(asset_path),
            '-filter_complex', self.build_filter(operation, info.duration),
            '-map', '[vout]',
            '-map', '0:a?',
        ] + encode_args()


class AudioOverlayProcessor(OverlayProcessor):
    """Mixes a second audio track in from startSec; the video stream is copied."""

    kind = 'overlay_audio'
    asset_param = 'audio_path'

    def build_filter(self, operation: AudioOverlayOperation, duration: float,
                     source_has_audio: bool) -> str:
        start, end = operation.window(duration)
        delay_ms = int(round(start * 1000))
        overlay = (
            f"[1:a]atrim=duration={fmt_num(max(end - start, 0.0))},asetpts=PTS-STARTPTS,"
            f"adelay={delay_ms}:all=1,volume={fmt_num(operation.params.volume)}"
        )
        if source_has_audio:
            return f"{overlay}[ovl];[0:a][ovl]amix=inputs=2:duration=first:dropout_transition=0[aout]"
        # Sole track: pad to the primary's length so the output ends with the video
        return f"{overlay},apad=whole_dur={fmt_num(duration)}[aout]"

    def build_command(self, input_path: Path, asset_path: Path,
                      operation: AudioOverlayOperation, info: MediaInfo) -> List[str]:
        args = ['-i', str(input_path)]
        if operation.params.loop:
            args += ['-stream_loop', '-1']
        args += [
            '-i', str(asset_path),
            '-filter_complex', self.build_filter(operation, info.duration, info.has_audio),
            '-map', '0:v',
            '-map', '[aout]',
        ] + encode_args(copy_video=True)
        if operation.params.loop and info.duration > 0:
            # A looped input never ends; stop at the primary's length
            args += ['-t', fmt_num(info.duration)]
        return args


class VideoOverlayProcessor(OverlayProcessor):
    """Picture-in-picture: the clip starts at startSec and disappears at its own end."""

    kind = 'overlay_video'
    asset_param = 'video_path'

    def build_filter(self, operation: VideoOverlayOperation, duration: float) -> str:
        start, end = operation.window(duration)
        x, y = overlay_position(operation.params.position)
        return (
            f"[1:v]{scale_by(operation.params.scale)},setpts=PTS-STARTPTS+{fmt_num(start)}/TB[ov];"
            f"[0:v][ov]overlay={x}:{y}:eof_action=pass:{enable_between(start, end)}[vout]"
        )

    def build_command(self, input_path: Path, asset_path: Path,
                      operation: VideoOverlayOperation, info: MediaInfo) -> List[str]:
        return [
            '-i', str(input_path),
            '-i', str(asset_path),
            '-filter_complex', self.build_filter(operation, info.duration),
            '-map', '[vout]',
            '-map', '0:a?',
        ] + encode_args() + ['-shortest']
