"""
Edit-operation pipeline.

Applies an ordered plan of edit operations (silence removal, effects,
overlays, captions, trims, speed changes, color grades) to a video, one
ffmpeg pass per operation.
"""

from .core.processor import (
    VideoProcessor,
    VideoEditingError,
    ParameterError,
    AssetResolutionError,
    EngineError,
    ExhaustiveRemovalError,
)
from .factory import ProcessorFactory
from .registry import PROCESSOR_REGISTRY, register_processor, get_processor_class
from .analyzers.silence_detector import SilenceDetector, SilenceRange, detect_silence
from .pipeline.core import (
    EditPipeline,
    PipelineError,
    Progress,
    ProcessingStatus,
    ProgressStream,
    TempArtifactArena,
    normalize_for_source,
    run_pipeline,
)

__all__ = [
    # Core components
    'VideoProcessor',
    'EditPipeline',
    'ProgressStream',
    'TempArtifactArena',
    'Progress',
    'ProcessingStatus',

    # Errors
    'VideoEditingError',
    'ParameterError',
    'AssetResolutionError',
    'EngineError',
    'ExhaustiveRemovalError',
    'PipelineError',

    # Factory and registry
    'ProcessorFactory',
    'PROCESSOR_REGISTRY',
    'register_processor',
    'get_processor_class',

    # Entry points
    'run_pipeline',
    'normalize_for_source',
    'detect_silence',
    'SilenceDetector',
    'SilenceRange',
]
