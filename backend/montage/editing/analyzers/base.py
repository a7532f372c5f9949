"""
Base classes for media analysis plugins.

An analyzer reads a media file and reports features about it without
writing any output. Analysis runs off the event loop so the API can await
it directly.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field
from pathlib import Path

from ..core.processor import VideoEditingError

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Features reported by one analyzer for one file."""
    analyzer: str = ''
    features: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    elapsed_sec: float = 0.0
    success: bool = True
    error: Optional[str] = None


class BaseAnalyzer(ABC):
    """Base class for all analyzers."""

    def __init__(self, **config):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in registries and log lines."""

    @property
    def version(self) -> str:
        return "1.0.0"

    @abstractmethod
    async def _run(self, media_path: Path, **kwargs) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Return ``(features, metadata)`` for the file; engine errors propagate."""

    async def analyze(self, media_path: Path, **kwargs) -> AnalysisResult:
        """
        Analyze a media file.

        Engine failures are reported on the result (``success=False``)
        instead of being raised.
        """
        started = time.monotonic()
        try:
            features, metadata = await self._run(media_path, **kwargs)
        except VideoEditingError as e:
            logger.error(f"{self} failed for {media_path}: {e}")
            return AnalysisResult(
                analyzer=self.name,
                elapsed_sec=time.monotonic() - started,
                success=False,
                error=str(e),
            )

        return AnalysisResult(
            analyzer=self.name,
            features=features,
            metadata=metadata,
            elapsed_sec=time.monotonic() - started,
        )

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"
