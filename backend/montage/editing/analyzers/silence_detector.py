"""Detect silent stretches with ffmpeg's silencedetect filter."""
import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .base import BaseAnalyzer
from ..utils.ffmpeg_utils import run_ffmpeg
from ..utils.video_utils import MediaInfo, probe_media
from ..utils.filter_graph import fmt_num

logger = logging.getLogger(__name__)

DEFAULT_MIN_SILENCE = 0.6
DEFAULT_THRESHOLD_DB = -30.0

_SILENCE_START_RE = re.compile(r"silence_start:\s*(-?[\d.]+)")
_SILENCE_END_RE = re.compile(r"silence_end:\s*(-?[\d.]+)")


@dataclass
class SilenceRange:
    """A silent section of the audio track."""
    start: float  # Start time in seconds
    end: float    # End time in seconds

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {'start': self.start, 'end': self.end}


class SilenceMarkerParser:
    """
    Pair silence_start/silence_end markers from the diagnostic stream.

    An end closes the most recently opened interval; an interval still open
    when the stream ends is dropped.
    """

    def __init__(self):
        self.ranges: List[SilenceRange] = []
        self._open_start: Optional[float] = None

    def feed(self, line: str) -> None:
        start_match = _SILENCE_START_RE.search(line)
        if start_match:
            self._open_start = max(0.0, float(start_match.group(1)))
            return

        end_match = _SILENCE_END_RE.search(line)
        if end_match and self._open_start is not None:
            end = float(end_match.group(1))
            if end > self._open_start:
                self.ranges.append(SilenceRange(self._open_start, end))
            self._open_start = None

    def finish(self) -> List[SilenceRange]:
        if self._open_start is not None:
            logger.debug(f"Dropping unterminated silence starting at {self._open_start:.3f}s")
            self._open_start = None
        return list(self.ranges)


def parse_silence_markers(lines: Iterable[str]) -> List[SilenceRange]:
    parser = SilenceMarkerParser()
    for line in lines:
        parser.feed(line)
    return parser.finish()


class SilenceDetector(BaseAnalyzer):
    """Finds silent sections of a file's audio track."""

    def __init__(self, min_silence: float = DEFAULT_MIN_SILENCE,
                 threshold_db: float = DEFAULT_THRESHOLD_DB, **kwargs):
        """
        Initialize the silence detector.

        Args:
            min_silence: Minimum duration in seconds for a silent section to be reported
            threshold_db: Volume threshold in dB below which audio is considered silent
        """
        super().__init__(**kwargs)
        self.min_silence = min_silence
        self.threshold_db = threshold_db

    @property
    def name(self) -> str:
        return "silence_detector"

    def detect(self, path: Union[str, Path], min_silence: Optional[float] = None,
               threshold_db: Optional[float] = None,
               media_info: Optional[MediaInfo] = None) -> List[SilenceRange]:
        """
        Detect silent sections, in stream (time) order.

        Raises:
            EngineError: If ffmpeg fails during analysis
        """
        min_silence = self.min_silence if min_silence is None else min_silence
        threshold_db = self.threshold_db if threshold_db is None else threshold_db

        info = media_info or probe_media(path)
        if not info.has_audio:
            logger.info(f"No audio stream in {path}; nothing to detect")
            return []

        logger.info(f"Detecting silence in {path} "
                    f"(threshold={threshold_db}dB, min_duration={min_silence}s)")

        parser = SilenceMarkerParser()
        run_ffmpeg(
            [
                '-i', str(path),
                '-vn',
                '-af', f"silencedetect=n={fmt_num(threshold_db)}dB:d={fmt_num(min_silence)}",
                '-f', 'null',
                '-',
            ],
            line_callback=parser.feed,
        )
        ranges = parser.finish()

        logger.info(f"Detected {len(ranges)} silent sections in {path}")
        return ranges

    async def _run(self, media_path: Path, **kwargs) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        min_silence = kwargs.get('min_silence')
        threshold_db = kwargs.get('threshold_db')
        ranges = await asyncio.to_thread(self.detect, media_path, min_silence, threshold_db)

        features = {'silence_ranges': [r.to_dict() for r in ranges]}
        metadata = {
            'min_silence': self.min_silence if min_silence is None else min_silence,
            'threshold_db': self.threshold_db if threshold_db is None else threshold_db,
        }
        return features, metadata


def detect_silence(path: Union[str, Path], min_silence: float = DEFAULT_MIN_SILENCE,
                   threshold_db: float = DEFAULT_THRESHOLD_DB) -> List[SilenceRange]:
    """Detect silent sections of `path`'s audio track."""
    return SilenceDetector(min_silence, threshold_db).detect(path)
