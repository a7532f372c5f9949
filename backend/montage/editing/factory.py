"""
Factory for creating edit-operation executors.
"""

from typing import Dict
import logging

from .core.processor import VideoProcessor
from .registry import PROCESSOR_REGISTRY, register_processor, get_processor_class

logger = logging.getLogger(__name__)

# Import and register all executors
from .processors.silence_remover import SilenceRemover
from .processors.effects import EffectProcessor
from .processors.color_grade import ColorGradeProcessor
from .processors.captions import CaptionProcessor
from .processors.overlays import ImageOverlayProcessor, AudioOverlayProcessor, VideoOverlayProcessor
from .processors.timeline import TrimProcessor, SpeedProcessor, PassthroughProcessor

# Register all executors
register_processor('remove_silence', SilenceRemover)
register_processor('effect', EffectProcessor)
register_processor('color_grade', ColorGradeProcessor)
register_processor('captions', CaptionProcessor)
register_processor('overlay_image', ImageOverlayProcessor)
register_processor('overlay_audio', AudioOverlayProcessor)
register_processor('overlay_video', VideoOverlayProcessor)
register_processor('trim', TrimProcessor)
register_processor('speed', SpeedProcessor)


class ProcessorFactory:
    """Creates (and caches) one executor per operation kind."""

    def __init__(self):
        self._instances: Dict[str, VideoProcessor] = {}

    @staticmethod
    def supports(kind: str) -> bool:
        return kind.lower() in PROCESSOR_REGISTRY

    @staticmethod
    def create(kind: str, **kwargs) -> VideoProcessor:
        """
        Create an executor for the given operation kind.

        Raises:
            ValueError: If the kind is not recognized
        """
        processor_class = get_processor_class(kind)

        try:
            return processor_class(**kwargs)
        except Exception as e:
            logger.error(f"Error creating executor for {kind}: {e}")
            raise

    def get_processor(self, kind: str) -> VideoProcessor:
        """Executor for `kind`; unknown kinds get the passthrough executor."""
        if not self.supports(kind):
            logger.warning(f"No executor registered for '{kind}', using passthrough")
            kind_key = PassthroughProcessor.kind
            if kind_key not in self._instances:
                self._instances[kind_key] = PassthroughProcessor()
            return self._instances[kind_key]

        kind_key = kind.lower()
        if kind_key not in self._instances:
            self._instances[kind_key] = self.create(kind_key)
        return self._instances[kind_key]
