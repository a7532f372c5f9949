"""Cut silent sections out of a video, keeping audio and video in sync."""
from pathlib import Path
from typing import Dict, Any, List, Tuple, Optional, Sequence
import logging

from .base import FFmpegProcessor, encode_args, scaled_progress
from ..analyzers.silence_detector import SilenceDetector, SilenceRange
from ..core.processor import ExhaustiveRemovalError, OperationProgress
from ..utils.filter_graph import fmt_num
from ..utils.video_utils import copy_media
from ...schemas.edit_plan import RemoveSilenceOperation

logger = logging.getLogger(__name__)

# Share of the operation's progress spent on detection.
DETECTION_SHARE = 30.0


def compute_keep_intervals(silences: Sequence[SilenceRange],
                           duration: float) -> List[Tuple[float, float]]:
    """
    Complement of the silent sections over [0, duration].

    Keeps the gap before each silence when it is non-empty, and the tail
    after the last one.
    """
    keep = []
    last_end = 0.0

    for silence in silences:
        if silence.start > last_end:
            keep.append((last_end, min(silence.start, duration)))
        last_end = max(last_end, silence.end)

    if duration > last_end:
        keep.append((last_end, duration))

    return [(start, end) for start, end in keep if end > start]


def build_concat_filter(keep: Sequence[Tuple[float, float]], has_audio: bool = True) -> str:
    """Trim every keep interval out of the source and concatenate them in order."""
    parts = []
    for i, (start, end) in enumerate(keep):
        s, e = fmt_num(start), fmt_num(end)
        parts.append(f"[0:v]trim=start={s}:end={e},setpts=PTS-STARTPTS[v{i}]")
        if has_audio:
            parts.append(f"[0:a]atrim=start={s}:end={e},asetpts=PTS-STARTPTS[a{i}]")

    n = len(keep)
    parts.append(''.join(f"[v{i}]" for i in range(n)) + f"concat=n={n}:v=1:a=0[outv]")
    if has_audio:
        parts.append(''.join(f"[a{i}]" for i in range(n)) + f"concat=n={n}:v=0:a=1[outa]")
    return ';'.join(parts)


class SilenceRemover(FFmpegProcessor):
    """Strip silences at or above the operation's minimum length."""

    kind = 'remove_silence'

    def __init__(self, detector: Optional[SilenceDetector] = None):
        self.detector = detector or SilenceDetector()

    def process(self, input_path: Path, output_path: Path, operation: RemoveSilenceOperation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        """
        Remove silent sections from the input.

        Raises:
            ExhaustiveRemovalError: If nothing but silence would remain
            EngineError: If detection or rendering fails
        """
        params = operation.params
        info = self.probe(input_path)

        logger.info(f"Detecting silent sections with threshold={params.threshold_db}dB, "
                    f"min_duration={params.min_silence}s")
        silences = self.detector.detect(
            input_path,
            min_silence=params.min_silence,
            threshold_db=params.threshold_db,
            media_info=info,
        )
        if progress_callback:
            progress_callback(DETECTION_SHARE)

        if not silences:
            logger.info("No silent sections found; copying input unchanged")
            copy_media(input_path, output_path)
            if progress_callback:
                progress_callback(100.0)
            return self.result(output_path, operation, silence_ranges=[], removed_sec=0.0)

        keep = compute_keep_intervals(silences, info.duration)
        if not keep:
            raise ExhaustiveRemovalError(
                f"Silence removal would remove the entire input ({info.duration:.2f}s)"
            )

        kept_duration = sum(end - start for start, end in keep)
        logger.info(f"Keeping {len(keep)} segments ({kept_duration:.2f}s of {info.duration:.2f}s)")

        args = [
            '-i', str(input_path),
            '-filter_complex', build_concat_filter(keep, info.has_audio),
            '-map', '[outv]',
        ]
        if info.has_audio:
            args += ['-map', '[outa]']
        args += encode_args()

        self.render(args, output_path, duration=kept_duration,
                    progress_callback=scaled_progress(progress_callback, DETECTION_SHARE, 100.0))

        return self.result(
            output_path,
            operation,
            silence_ranges=[s.to_dict() for s in silences],
            removed_sec=info.duration - kept_duration,
        )
