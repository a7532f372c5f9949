"""
Edit-operation executors.

Each executor implements the VideoProcessor interface and applies one kind
of edit operation, reading one media file and writing another.
"""

from .base import FFmpegProcessor
from .silence_remover import SilenceRemover
from .effects import EffectProcessor
from .color_grade import ColorGradeProcessor
from .captions import CaptionProcessor
from .overlays import ImageOverlayProcessor, AudioOverlayProcessor, VideoOverlayProcessor
from .timeline import TrimProcessor, SpeedProcessor, PassthroughProcessor

__all__ = [
    'FFmpegProcessor',
    'SilenceRemover',
    'EffectProcessor',
    'ColorGradeProcessor',
    'CaptionProcessor',
    'ImageOverlayProcessor',
    'AudioOverlayProcessor',
    'VideoOverlayProcessor',
    'TrimProcessor',
    'SpeedProcessor',
    'PassthroughProcessor',
]
