"""
Media analysis plugins.

Available analyzers:
- SilenceDetector: Finds silent sections of the audio track
"""
from typing import Dict, Type
import logging

from .base import BaseAnalyzer, AnalysisResult
from .silence_detector import SilenceDetector, SilenceRange, detect_silence

__all__ = [
    'BaseAnalyzer',
    'AnalysisResult',
    'SilenceDetector',
    'SilenceRange',
    'detect_silence',
    'get_analyzer',
    'register_analyzer',
]

# Default analyzers that come with the package
DEFAULT_ANALYZERS: Dict[str, Type[BaseAnalyzer]] = {
    'silence': SilenceDetector,
}

_analyzer_cache: Dict[str, Type[BaseAnalyzer]] = {}

logger = logging.getLogger(__name__)


def get_analyzer(name: str, **kwargs) -> BaseAnalyzer:
    """
    Get an analyzer instance by name.

    Raises:
        ValueError: If the analyzer is not found
    """
    analyzer_class = DEFAULT_ANALYZERS.get(name) or _analyzer_cache.get(name)
    if analyzer_class is None:
        raise ValueError(f"Unknown analyzer: {name}")
    return analyzer_class(**kwargs)


def register_analyzer(name: str, analyzer_class: Type[BaseAnalyzer]) -> None:
    """
    Register a custom analyzer class.

    Raises:
        TypeError: If analyzer_class is not a subclass of BaseAnalyzer
    """
    if not issubclass(analyzer_class, BaseAnalyzer):
        raise TypeError("Analyzer must be a subclass of BaseAnalyzer")
    _analyzer_cache[name] = analyzer_class
