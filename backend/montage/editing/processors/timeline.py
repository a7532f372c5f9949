"""Executors that change the clip's timeline: trim, speed and passthrough."""
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple
import logging

from .base import FFmpegProcessor, encode_args
from ..core.processor import OperationProgress, ParameterError
from ..utils.filter_graph import atempo_filter, fmt_num
from ..utils.video_utils import MediaInfo
from ...schemas.edit_plan import SpeedOperation, TrimOperation

logger = logging.getLogger(__name__)


class TrimProcessor(FFmpegProcessor):
    """Keep only [startSec, endSec] of the clip."""

    kind = 'trim'

    def build_command(self, input_path: Path, operation: TrimOperation, duration: float) -> List[str]:
        start, end = operation.window(duration)
        return [
            '-ss', fmt_num(start),
            '-i', str(input_path),
            '-t', fmt_num(end - start),
        ] + encode_args()

    def process(self, input_path: Path, output_path: Path, operation: TrimOperation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        info = self.probe(input_path)
        start, end = operation.window(info.duration)
        if end <= start:
            raise ParameterError(f"Trim {operation.id} has an empty window")

        logger.info(f"Trimming {operation.id} to {start:.2f}s-{end:.2f}s")
        self.render(self.build_command(input_path, operation, info.duration), output_path,
                    duration=end - start, progress_callback=progress_callback)
        return self.result(output_path, operation, duration=end - start)


class SpeedProcessor(FFmpegProcessor):
    """Retime the whole clip, or only the operation's window."""

    kind = 'speed'

    @staticmethod
    def segments(start: float, end: float, duration: float) -> List[Tuple[float, float, bool]]:
        """Non-empty (start, end, retimed) pieces: before, inside and after the window."""
        pieces = [(0.0, start, False), (start, end, True), (end, duration, False)]
        return [(s, e, retimed) for s, e, retimed in pieces if e > s]

    def build_filter(self, factor: float, start: float, end: float, info: MediaInfo) -> str:
        has_audio = info.has_audio
        parts = []
        labels = []
        pieces = self.segments(start, end, info.duration)

        for i, (s, e, retimed) in enumerate(pieces):
            trim = f"start={fmt_num(s)}:end={fmt_num(e)}"
            video = f"[0:v]trim={trim},setpts=PTS-STARTPTS"
            if retimed:
                video += f",setpts=PTS/{fmt_num(factor)}"
            parts.append(f"{video}[v{i}]")
            labels.append(f"[v{i}]")

            if has_audio:
                audio = f"[0:a]atrim={trim},asetpts=PTS-STARTPTS"
                if retimed:
                    audio += f",{atempo_filter(factor)}"
                parts.append(f"{audio}[a{i}]")
                labels.append(f"[a{i}]")

        parts.append(
            ''.join(labels)
            + f"concat=n={len(pieces)}:v=1:a={1 if has_audio else 0}[outv]"
            + ('[outa]' if has_audio else '')
        )
        return ';'.join(parts)

    def build_command(self, input_path: Path, operation: SpeedOperation,
                      info: MediaInfo) -> List[str]:
        factor = operation.params.speed
        start, end = operation.window(info.duration)
        args = ['-i', str(input_path)]

        if start <= 0 and end >= info.duration:
            args += ['-filter:v', f"setpts=PTS/{fmt_num(factor)}"]
            if info.has_audio:
                args += ['-filter:a', atempo_filter(factor)]
            return args + encode_args()

        args += ['-filter_complex', self.build_filter(factor, start, end, info), '-map', '[outv]']
        if info.has_audio:
            args += ['-map', '[outa]']
        return args + encode_args()

    def process(self, input_path: Path, output_path: Path, operation: SpeedOperation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        """
        Raises:
            ParameterError: If the speed factor is not positive
        """
        factor = operation.params.speed
        if factor <= 0:
            raise ParameterError(f"Speed factor must be positive, got {factor}")
        if factor == 1:
            return self.passthrough(input_path, output_path, operation,
                                    "speed factor is 1", progress_callback)

        info = self.probe(input_path)
        start, end = operation.window(info.duration)
        new_duration = info.duration - (end - start) + (end - start) / factor

        logger.info(f"Changing speed of {operation.id} by {factor}x "
                    f"({start:.2f}s-{end:.2f}s)")
        self.render(self.build_command(input_path, operation, info), output_path,
                    duration=new_duration, progress_callback=progress_callback)
        return self.result(output_path, operation, speed=factor, duration=new_duration)


class PassthroughProcessor(FFmpegProcessor):
    """Used for operation kinds with no executor; copies the clip unchanged."""

    kind = 'passthrough'

    def process(self, input_path: Path, output_path: Path, operation: Any,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        return self.passthrough(input_path, output_path, operation,
                                f"no executor for kind '{operation.kind}'", progress_callback)
