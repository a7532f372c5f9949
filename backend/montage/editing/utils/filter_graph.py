"""Helpers for synthesizing ffmpeg filter expressions."""
import math
from typing import List, Sequence, Tuple

ATEMPO_MIN = 0.5
ATEMPO_MAX = 2.0

OVERLAY_MARGIN = 10

# Preset name -> (x, y) overlay coordinates.
OVERLAY_POSITIONS = {
    'top-left': (f'{OVERLAY_MARGIN}', f'{OVERLAY_MARGIN}'),
    'top-right': (f'W-w-{OVERLAY_MARGIN}', f'{OVERLAY_MARGIN}'),
    'bottom-left': (f'{OVERLAY_MARGIN}', f'H-h-{OVERLAY_MARGIN}'),
    'bottom-right': (f'W-w-{OVERLAY_MARGIN}', f'H-h-{OVERLAY_MARGIN}'),
    'center': ('(W-w)/2', '(H-h)/2'),
}


def fmt_num(value: float) -> str:
    """Render a number for a filter expression without float noise."""
    text = f"{float(value):.6f}".rstrip('0').rstrip('.')
    return '0' if text in ('', '-0') else text


def enable_between(start: float, end: float) -> str:
    return f"enable='between(t,{fmt_num(start)},{fmt_num(end)})'"


def gate(filter_expr: str, start: float, end: float) -> str:
    """Attach a timeline predicate so the filter is inert outside [start, end]."""
    separator = ':' if '=' in filter_expr else '='
    return f"{filter_expr}{separator}{enable_between(start, end)}"


def gate_chain(filters: Sequence[str], start: float, end: float) -> str:
    return ','.join(gate(f, start, end) for f in filters)


def overlay_position(name: str) -> Tuple[str, str]:
    return OVERLAY_POSITIONS.get((name or '').lower(), OVERLAY_POSITIONS['center'])


def scale_by(factor: float) -> str:
    """Scale a stream by a factor, never below one pixel."""
    f = fmt_num(factor)
    return f"scale=w='max(1,iw*{f})':h='max(1,ih*{f})'"


def atempo_chain(factor: float) -> List[float]:
    """
    Split a tempo factor into steps the atempo filter accepts.

    atempo only takes values in [0.5, 2.0]; larger changes are chained so
    that the product of the steps equals the requested factor.
    """
    if factor <= 0 or math.isinf(factor) or math.isnan(factor):
        raise ValueError(f"Tempo factor must be positive, got {factor}")

    steps = []
    remaining = float(factor)
    while remaining > ATEMPO_MAX:
        steps.append(ATEMPO_MAX)
        remaining /= ATEMPO_MAX
    while remaining < ATEMPO_MIN:
        steps.append(ATEMPO_MIN)
        remaining /= ATEMPO_MIN
    steps.append(remaining)
    return steps


def atempo_filter(factor: float) -> str:
    return ','.join(f"atempo={fmt_num(step)}" for step in atempo_chain(factor))


def _backslash_escape(text: str, specials: str) -> str:
    return ''.join('\\' + ch if ch in specials else ch for ch in text)


def escape_filter_value(value: str) -> str:
    """Escape an unquoted option value (e.g. a file path) inside a filtergraph."""
    option = _backslash_escape(value, "\\':")
    return _backslash_escape(option, "\\'[],;")


def escape_drawtext(text: str) -> str:
    """
    Escape caption text for an unquoted drawtext `text=` value inside a filtergraph.

    Three levels are unescaped by ffmpeg in turn: the graph parser, the
    option parser and drawtext's own %-expansion.
    """
    expansion = _backslash_escape(text, '\\%')
    option = _backslash_escape(expansion, "\\':")
    return _backslash_escape(option, "\\'[],;")
