"""Burn caption text into the video with drawtext."""
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from .base import FFmpegProcessor, encode_args
from ..core.processor import OperationProgress, ParameterError
from ..utils.filter_graph import enable_between, escape_drawtext, escape_filter_value, fmt_num
from ..utils.video_utils import format_sec
from ...core.config import get_settings
from ...schemas.edit_plan import CaptionOperation

logger = logging.getLogger(__name__)

CAPTION_Y = {
    'top': '100',
    'center': '(h-text_h)/2',
    'bottom': 'h-200',
}
CAPTION_X = '(w-text_w)/2'


def fade_alpha(start: float, end: float, fade: float) -> str:
    """Linear fade in and out; constant when the window is too short to fade."""
    if fade <= 0 or end - start <= 2 * fade:
        return '1'
    s, e, f = fmt_num(start), fmt_num(end), fmt_num(fade)
    return (f"if(lt(t,{fmt_num(start + fade)}),(t-{s})/{f},"
            f"if(gt(t,{fmt_num(end - fade)}),({e}-t)/{f},1))")


def build_drawtext(text: str, params, start: float, end: float,
                   font_file: Optional[str] = None) -> str:
    options = [f"text={escape_drawtext(text)}"]
    if font_file:
        options.append(f"fontfile={escape_filter_value(font_file)}")
    options += [
        f"fontsize={params.font_size}",
        f"fontcolor={params.font_color}",
        'borderw=3',
        'bordercolor=black',
        f"x={CAPTION_X}",
        f"y={CAPTION_Y.get(params.position, CAPTION_Y['bottom'])}",
        'box=1',
        f"boxcolor={params.bg_color}",
        'boxborderw=20',
        enable_between(start, end),
    ]
    if params.animation == 'fade':
        options.append(f"alpha='{fade_alpha(start, end, params.fade_duration)}'")
    return 'drawtext=' + ':'.join(options)


class CaptionProcessor(FFmpegProcessor):
    kind = 'captions'

    def build_filter(self, operation: CaptionOperation, duration: float) -> str:
        start, end = operation.window(duration)
        return build_drawtext(operation.text, operation.params, start, end,
                              font_file=get_settings().font_file)

    def process(self, input_path: Path, output_path: Path, operation: CaptionOperation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        """
        Raises:
            ParameterError: If the caption has neither text nor a label
        """
        if not operation.text.strip():
            raise ParameterError(f"Caption {operation.id} has no text")

        info = self.probe(input_path)
        drawtext = self.build_filter(operation, info.duration)

        start, end = operation.window(info.duration)
        logger.info(f"Adding caption to {operation.id} ({format_sec(start)}-{format_sec(end)}): "
                    f"{operation.text!r}")
        self.render(['-i', str(input_path), '-vf', drawtext] + encode_args(),
                    output_path, duration=info.duration, progress_callback=progress_callback)
        return self.result(output_path, operation, text=operation.text)
