"""
Registry of executor classes, keyed by operation kind.
Kept separate from the factory to avoid circular imports.
"""
from typing import Dict, List, Type
from .core.processor import VideoProcessor

# Operation kind -> executor class
PROCESSOR_REGISTRY: Dict[str, Type[VideoProcessor]] = {}


def register_processor(kind: str, processor_class: Type[VideoProcessor]) -> None:
    """
    Register an executor class for an operation kind.

    Registering a kind again replaces its executor.

    Raises:
        TypeError: If processor_class is not a VideoProcessor
    """
    if not (isinstance(processor_class, type) and issubclass(processor_class, VideoProcessor)):
        raise TypeError(f"Executor for '{kind}' must be a VideoProcessor subclass")
    PROCESSOR_REGISTRY[kind.lower()] = processor_class


def get_processor_class(kind: str) -> Type[VideoProcessor]:
    """
    Get the executor class for an operation kind.

    Raises:
        ValueError: If no executor is registered for the kind
    """
    processor_class = PROCESSOR_REGISTRY.get(kind.lower())
    if not processor_class:
        raise ValueError(f"Unknown operation kind: {kind}")
    return processor_class


def registered_kinds() -> List[str]:
    return sorted(PROCESSOR_REGISTRY)
