from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Any, Optional, Callable


class VideoEditingError(Exception):
    """Base exception for video editing errors."""
    pass


class ParameterError(VideoEditingError):
    """A required operation parameter is missing or unusable.

    The pipeline degrades the offending operation to a passthrough copy
    instead of aborting the run.
    """
    pass


class AssetResolutionError(VideoEditingError):
    """An asset reference could not be downloaded, decoded or found."""
    pass


class EngineError(VideoEditingError):
    """ffmpeg/ffprobe exited non-zero, timed out or could not be started."""

    def __init__(self, message: str, returncode: Optional[int] = None, output_tail: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output_tail = output_tail


class ExhaustiveRemovalError(VideoEditingError):
    """Silence removal would delete the entire input."""
    pass


# Called with the operation-local percent (0-100).
OperationProgress = Callable[[float], None]


class VideoProcessor(ABC):
    """Base class for all edit-operation executors."""

    @abstractmethod
    def process(self, input_path: Path, output_path: Path, operation: Any,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        """
        Apply one edit operation.

        Args:
            input_path: Path to the input video file
            output_path: Path where the processed video should be saved
            operation: The edit operation to apply
            progress_callback: Optional callback receiving 0-100 for this operation

        Returns:
            Dict containing processing results and metadata
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the processor."""
        pass
