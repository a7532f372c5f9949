"""
Core components for the edit-operation pipeline.

This module defines the sequencer that chains executors over a clip, the
temp-artifact arena that owns a run's intermediate files, and the progress
types reported while a run is in flight.
"""
import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

from ..core.processor import ParameterError, VideoEditingError
from ..factory import ProcessorFactory
from ..utils.video_utils import copy_media, probe_media
from ...core.config import get_settings
from ...schemas.edit_plan import BaseOperation, parse_plan, validate_and_normalize_plan

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
RawPlan = Sequence[Union[Dict[str, Any], BaseOperation]]


class ProcessingStatus(Enum):
    """Status of a processing operation."""
    PENDING = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass
class Progress:
    """A progress event for a whole run."""
    percent: float = 0.0
    message: str = ""
    status: ProcessingStatus = ProcessingStatus.PENDING
    operation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[Progress], None]


class PipelineError(VideoEditingError):
    """A run was aborted; `operation` is the operation that failed, if any."""

    def __init__(self, message: str, operation: Optional[BaseOperation] = None):
        super().__init__(message)
        self.operation = operation


def new_run_token() -> str:
    """Millisecond timestamp plus a random suffix, unique across concurrent runs."""
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def order_operations(plan: Sequence[BaseOperation]) -> List[BaseOperation]:
    """Silence removal first; relative order is otherwise preserved."""
    return sorted(plan, key=lambda op: op.kind != 'remove_silence')


def aggregate_progress(index: int, total: int, op_percent: float) -> float:
    """Global percent for operation `index` of `total` at `op_percent` of its own work."""
    if total <= 0:
        return 100.0
    return (index / total) * 100 + (op_percent / 100 / total) * 100


class TempArtifactArena:
    """
    Owns the temp files of one run.

    Every path handed out (or tracked) is deleted when the arena closes,
    unless it was promoted.
    """

    def __init__(self, directory: Path, run_token: str):
        self.directory = Path(directory)
        self.run_token = run_token
        self._counter = 0
        self._artifacts: List[Path] = []
        self._promoted: set = set()

    def __enter__(self) -> 'TempArtifactArena':
        self.directory.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def artifacts(self) -> List[Path]:
        return list(self._artifacts)

    def new_path(self, suffix: str = '.mp4') -> Path:
        self._counter += 1
        path = self.directory / f"temp_{self.run_token}_{self._counter}{suffix}"
        self._artifacts.append(path)
        return path

    def track(self, path: Path) -> Path:
        self._artifacts.append(Path(path))
        return Path(path)

    def promote(self, path: Path) -> None:
        self._promoted.add(Path(path))

    def discard(self, path: Path) -> None:
        """Delete an artifact that is no longer current."""
        path = Path(path)
        if path in self._artifacts and path not in self._promoted:
            self._artifacts.remove(path)
            self._unlink(path)

    def release(self) -> None:
        for path in self._artifacts:
            if path not in self._promoted:
                self._unlink(path)
        self._artifacts = [p for p in self._artifacts if p in self._promoted]

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temp artifact {path}: {e}")


class _ProgressEmitter:
    """Holds emitted percentages non-decreasing."""

    def __init__(self, callback: Optional[ProgressCallback]):
        self.callback = callback
        self.last = 0.0

    def emit(self, percent: float, message: str, status: ProcessingStatus,
             operation_id: Optional[str] = None, **metadata) -> None:
        percent = max(self.last, min(100.0, percent))
        self.last = percent
        if self.callback:
            self.callback(Progress(percent, message, status, operation_id, metadata))


class EditPipeline:
    """Applies a plan of edit operations to a clip, one executor at a time."""

    def __init__(self, output_dir: Optional[PathLike] = None,
                 factory: Optional[ProcessorFactory] = None):
        self.output_dir = Path(output_dir) if output_dir else get_settings().output_dir
        self.factory = factory or ProcessorFactory()

    def run(self, source_path: PathLike, plan: RawPlan,
            progress_callback: Optional[ProgressCallback] = None,
            output_path: Optional[PathLike] = None) -> Path:
        """
        Run every operation of the plan over the source clip.

        Args:
            source_path: The clip to edit; never modified
            plan: Operations (validated or raw dicts), at most 50
            progress_callback: Receives Progress events; the last one is
                100% "Complete" on success or FAILED on error
            output_path: Where to write the result (defaults to
                ``<output_dir>/processed_<run token>.mp4``)

        Returns:
            Path to the rendered output

        Raises:
            PipelineError: If an operation fails; no temp files are left behind
        """
        source_path = Path(source_path)
        operations = order_operations(parse_plan(plan))
        run_token = new_run_token()
        final_path = Path(output_path) if output_path else self.output_dir / f"processed_{run_token}.mp4"
        emitter = _ProgressEmitter(progress_callback)
        total = len(operations)

        logger.info(f"Starting run {run_token}: {total} operations on {source_path}")

        operation = None
        label = "setup"
        try:
            with TempArtifactArena(self.output_dir, run_token) as arena:
                arena.track(final_path)
                final_path.parent.mkdir(parents=True, exist_ok=True)

                current = source_path
                for index, operation in enumerate(operations):
                    target = final_path if index == total - 1 else arena.new_path()
                    label = operation.label or operation.kind
                    emitter.emit(aggregate_progress(index, total, 0), label,
                                 ProcessingStatus.RUNNING, operation.id)

                    def _op_progress(percent: float, index=index, label=label,
                                     op_id=operation.id) -> None:
                        emitter.emit(aggregate_progress(index, total, min(percent, 100.0)), label,
                                     ProcessingStatus.RUNNING, op_id)

                    logger.info(f"Running operation {index + 1}/{total}: "
                                f"{operation.kind} ({operation.id})")
                    self._apply(operation, current, target, _op_progress)

                    if current != source_path:
                        arena.discard(current)
                    current = target
                operation = None

                if not operations:
                    label = "copy"
                    logger.info("Empty plan; copying source to output")
                    copy_media(source_path, final_path)

                arena.promote(final_path)
        except Exception as e:
            op_id = operation.id if operation else None
            logger.error(f"Run {run_token} failed at {label}: {e}", exc_info=True)
            emitter.emit(emitter.last, f"Failed: {label}", ProcessingStatus.FAILED, op_id, error=str(e))
            if operation is not None:
                message = f"Operation '{label}' ({operation.kind}) failed: {e}"
            else:
                message = f"Run failed during {label}: {e}"
            raise PipelineError(message, operation=operation) from e

        emitter.emit(100.0, "Complete", ProcessingStatus.COMPLETED)
        logger.info(f"Run {run_token} finished: {final_path}")
        return final_path

    def _apply(self, operation: BaseOperation, input_path: Path, output_path: Path,
               progress: Callable[[float], None]) -> None:
        processor = self.factory.get_processor(operation.kind)
        try:
            processor.process(input_path, output_path, operation, progress)
        except ParameterError as e:
            logger.warning(f"Skipping {operation.kind} operation {operation.id}: {e}")
            copy_media(input_path, output_path)
            progress(100.0)


class ProgressStream:
    """
    Runs a pipeline on a worker thread and yields its Progress events.

    Iteration ends after the terminal event; ``result()`` returns the output
    path or raises the run's error.
    """

    _DONE = object()

    def __init__(self, pipeline: EditPipeline, source_path: PathLike, plan: RawPlan,
                 output_path: Optional[PathLike] = None):
        self.pipeline = pipeline
        self._events: queue.Queue = queue.Queue()
        self._result: Optional[Path] = None
        self._error: Optional[BaseException] = None
        self._finished = False
        self._thread = threading.Thread(
            target=self._run, args=(source_path, plan, output_path), daemon=True
        )
        self._thread.start()

    def _run(self, source_path, plan, output_path) -> None:
        try:
            self._result = self.pipeline.run(source_path, plan, self._events.put, output_path)
        except Exception as e:
            # Re-raised from result()
            self._error = e
        finally:
            self._events.put(self._DONE)

    def __iter__(self) -> Iterator[Progress]:
        while not self._finished:
            event = self._events.get()
            if event is self._DONE:
                self._finished = True
                return
            yield event

    def result(self, timeout: Optional[float] = None) -> Path:
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError("Pipeline run is still in progress")
        if self._error is not None:
            raise self._error
        return self._result


def normalize_for_source(source_path: PathLike, raw_plan: RawPlan) -> List[BaseOperation]:
    """Validate a raw plan and clamp its ranges to the source's duration."""
    info = probe_media(source_path)
    return validate_and_normalize_plan(raw_plan, info.duration)


def run_pipeline(source_path: PathLike, plan: RawPlan,
                 progress_callback: Optional[ProgressCallback] = None,
                 output_dir: Optional[PathLike] = None,
                 output_path: Optional[PathLike] = None) -> Path:
    """Run a plan over a clip and return the output path."""
    return EditPipeline(output_dir).run(source_path, plan, progress_callback, output_path)
