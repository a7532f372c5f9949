"""Color grading presets."""
from pathlib import Path
from typing import Dict, Any, Optional, List, Callable
import logging

from .base import FFmpegProcessor, encode_args
from ..core.processor import OperationProgress
from ..utils.filter_graph import fmt_num, gate_chain
from ...schemas.edit_plan import ColorGradeOperation

logger = logging.getLogger(__name__)


def _warm(factor: float) -> List[str]:
    return [
        'eq=saturation=1.2:contrast=1.1',
        f"colorbalance=rs={fmt_num(0.1 * factor)}:gs={fmt_num(0.05 * factor)}:bs={fmt_num(-0.1 * factor)}",
    ]


def _cool(factor: float) -> List[str]:
    return [
        'eq=saturation=1.1',
        f"colorbalance=rs={fmt_num(-0.1 * factor)}:gs={fmt_num(0.05 * factor)}:bs={fmt_num(0.15 * factor)}",
    ]


def _vintage(factor: float) -> List[str]:
    return ['eq=saturation=0.7:contrast=0.9', 'curves=preset=vintage']


def _cinematic(factor: float) -> List[str]:
    return ['eq=contrast=1.3:brightness=-0.05:saturation=0.85', 'curves=preset=strong_contrast']


def _vibrant(factor: float) -> List[str]:
    return [f"eq=saturation={fmt_num(1.5 * factor)}:contrast={fmt_num(1.2 * factor)}"]


def _faded(factor: float) -> List[str]:
    return [f"eq=contrast={fmt_num(0.7 * factor)}:saturation={fmt_num(0.6 * factor)}:brightness=0.05"]


def _high_contrast(factor: float) -> List[str]:
    return [f"eq=contrast={fmt_num(1.5 * factor)}:saturation=1.1"]


def _black_and_white(factor: float) -> List[str]:
    return ['hue=s=0']


COLOR_PRESETS: Dict[str, Callable[[float], List[str]]] = {
    'warm': _warm,
    'warmer': _warm,
    'cool': _cool,
    'cooler': _cool,
    'vintage': _vintage,
    'retro': _vintage,
    'cinematic': _cinematic,
    'filmic': _cinematic,
    'vibrant': _vibrant,
    'saturated': _vibrant,
    'faded': _faded,
    'washed': _faded,
    'high-contrast': _high_contrast,
    'dramatic': _high_contrast,
    'black-and-white': _black_and_white,
    'bw': _black_and_white,
    'grayscale': _black_and_white,
}


def color_filters(preset: str, intensity: float) -> Optional[List[str]]:
    """Filters for a preset at the given 0-100 intensity, or None if unknown."""
    builder = COLOR_PRESETS.get((preset or '').strip().lower())
    if builder is None:
        return None
    return builder(intensity / 100)


class ColorGradeProcessor(FFmpegProcessor):
    kind = 'color_grade'

    def build_filter(self, operation: ColorGradeOperation, duration: float) -> Optional[str]:
        filters = color_filters(operation.params.preset, operation.params.intensity)
        if filters is None:
            return None
        start, end = operation.window(duration)
        return gate_chain(filters, start, end)

    def process(self, input_path: Path, output_path: Path, operation: ColorGradeOperation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        info = self.probe(input_path)
        preset = operation.params.preset

        chain = self.build_filter(operation, info.duration)
        if chain is None:
            logger.warning(f"Unknown color preset '{preset}' on {operation.id}")
            return self.passthrough(input_path, output_path, operation,
                                    f"unknown preset '{preset}'", progress_callback)

        logger.info(f"Applying color grade: {preset} ({chain})")
        self.render(['-i', str(input_path), '-vf', chain] + encode_args(),
                    output_path, duration=info.duration, progress_callback=progress_callback)
        return self.result(output_path, operation, preset=preset)
