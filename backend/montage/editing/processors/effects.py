"""Named visual and audio effects, active only inside the operation's window."""
from pathlib import Path
from typing import Dict, Any, Optional, Callable
import logging

from .base import FFmpegProcessor, encode_args
from ..core.processor import OperationProgress
from ..utils.filter_graph import fmt_num, gate, gate_chain, enable_between
from ..utils.video_utils import MediaInfo
from ...schemas.edit_plan import EffectOperation

logger = logging.getLogger(__name__)


def punch_in_graph(info: MediaInfo, strength: float, start: float, end: float) -> str:
    """Centre zoom by 1 + strength/100, scaled back to the source frame size."""
    zoom = fmt_num(1 + strength / 100)
    if info.width and info.height:
        rescale = f"scale={info.width}:{info.height}"
    else:
        rescale = f"scale=iw*{zoom}:ih*{zoom}"
    return (
        f"[0:v]split=2[base][fx];"
        f"[fx]crop=w=iw/{zoom}:h=ih/{zoom}:x=(iw-ow)/2:y=(ih-oh)/2,{rescale},setsar=1[fxo];"
        f"[base][fxo]overlay=0:0:{enable_between(start, end)}[vout]"
    )


def shake_graph(info: MediaInfo, strength: float, start: float, end: float) -> str:
    """Per-frame oscillating crop; amplitude grows with strength."""
    amp = fmt_num(max(1.0, strength / 5))
    if info.width and info.height:
        rescale = f"scale={info.width}:{info.height}"
    else:
        rescale = "scale=iw:ih"
    return (
        f"[0:v]split=2[base][fx];"
        f"[fx]crop=w=iw-2*{amp}:h=ih-2*{amp}:x={amp}+{amp}*sin(n*1.7):y={amp}+{amp}*cos(n*2.3),"
        f"{rescale},setsar=1[fxo];"
        f"[base][fxo]overlay=0:0:{enable_between(start, end)}[vout]"
    )


def blur_filter(info: MediaInfo, strength: float, start: float, end: float) -> str:
    sigma = min(strength / 5, 10)
    return gate(f"gblur=sigma={fmt_num(sigma)}", start, end)


def glitch_filter(info: MediaInfo, strength: float, start: float, end: float) -> str:
    noise = int(round(strength / 2))
    return gate_chain(['eq=saturation=0.5', f"noise=alls={noise}:allf=t"], start, end)


def bass_boost_filter(strength: float, start: float, end: float) -> str:
    return gate(f"equalizer=f=100:t=h:width=200:g={fmt_num(strength / 10)}", start, end)


# Effects rendered through a split/overlay graph ending in [vout].
GRAPH_EFFECTS: Dict[str, Callable[[MediaInfo, float, float, float], str]] = {
    'punch-in': punch_in_graph,
    'shake': shake_graph,
}

# Effects that are a plain (timeline-gated) video filter chain.
CHAIN_EFFECTS: Dict[str, Callable[[MediaInfo, float, float, float], str]] = {
    'blur': blur_filter,
    'glitch': glitch_filter,
}

AUDIO_EFFECTS: Dict[str, Callable[[float, float, float], str]] = {
    'bass-boost': bass_boost_filter,
}

VISUAL_EFFECTS = tuple(GRAPH_EFFECTS) + tuple(CHAIN_EFFECTS)


class EffectProcessor(FFmpegProcessor):
    """Applies visual effects (punch-in, shake, blur, glitch) and audio effects (bass-boost)."""

    kind = 'effect'

    def build_command(self, input_path: Path, operation: EffectOperation,
                      info: MediaInfo) -> Optional[list]:
        """Engine arguments for the effect, or None when the name is unknown."""
        effect = operation.effect_name
        strength = operation.params.strength
        start, end = operation.window(info.duration)
        args = ['-i', str(input_path)]

        if effect in GRAPH_EFFECTS:
            graph = GRAPH_EFFECTS[effect](info, strength, start, end)
            return args + ['-filter_complex', graph, '-map', '[vout]', '-map', '0:a?'] + encode_args()

        if effect in CHAIN_EFFECTS:
            chain = CHAIN_EFFECTS[effect](info, strength, start, end)
            return args + ['-vf', chain] + encode_args()

        if effect in AUDIO_EFFECTS:
            chain = AUDIO_EFFECTS[effect](strength, start, end)
            return args + ['-af', chain] + encode_args(copy_video=True)

        return None

    def process(self, input_path: Path, output_path: Path, operation: EffectOperation,
                progress_callback: Optional[OperationProgress] = None) -> Dict[str, Any]:
        info = self.probe(input_path)
        effect = operation.effect_name

        if effect in AUDIO_EFFECTS and not info.has_audio:
            return self.passthrough(input_path, output_path, operation,
                                    f"{effect} needs an audio stream", progress_callback)

        args = self.build_command(input_path, operation, info)
        if args is None:
            logger.warning(f"Unknown effect '{effect}' on {operation.id}")
            return self.passthrough(input_path, output_path, operation,
                                    f"unknown effect '{effect}'", progress_callback)

        logger.info(f"Applying {effect} (strength={operation.params.strength}) "
                    f"to {operation.id}")
        self.render(args, output_path, duration=info.duration, progress_callback=progress_callback)
        return self.result(output_path, operation, effect=effect)
