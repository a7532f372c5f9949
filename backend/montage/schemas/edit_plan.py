"""Edit operations and plans.

Each operation kind carries its own typed parameter model; the wire format
uses camelCase keys (`startSec`, `imagePath`, ...) and may name the kind
either `kind` or `op`.
"""
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

MAX_PLAN_OPERATIONS = 50

KNOWN_KINDS = (
    'remove_silence',
    'effect',
    'overlay_audio',
    'overlay_video',
    'overlay_image',
    'captions',
    'trim',
    'speed',
    'color_grade',
)

OverlayPosition = Literal['top-left', 'top-right', 'bottom-left', 'bottom-right', 'center']


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


# --- Parameter models --------------------------------------------------------

class RemoveSilenceParams(CamelModel):
    min_silence: float = Field(0.6, gt=0)
    threshold_db: float = -30.0


class EffectParams(CamelModel):
    effect: Optional[str] = None
    strength: float = 50.0

    @field_validator('strength')
    @classmethod
    def _clamp_strength(cls, value: float) -> float:
        return _clamp_percent(value)


class ColorGradeParams(CamelModel):
    preset: str = 'warm'
    intensity: float = 100.0

    @field_validator('intensity')
    @classmethod
    def _clamp_intensity(cls, value: float) -> float:
        return _clamp_percent(value)


class CaptionParams(CamelModel):
    text: Optional[str] = None
    position: Literal['top', 'center', 'bottom'] = 'bottom'
    animation: Literal['fade', 'none'] = 'fade'
    font_size: int = Field(72, gt=0)
    font_color: str = 'white'
    bg_color: str = 'black@0.7'
    fade_duration: float = Field(0.3, ge=0)

    @field_validator('animation', mode='before')
    @classmethod
    def _only_fade_or_none(cls, value: Any) -> str:
        # Anything other than an explicit "none" falls back to fade.
        return 'none' if value == 'none' else 'fade'


class ImageOverlayParams(CamelModel):
    image_path: Optional[str] = None
    position: OverlayPosition = 'top-right'
    scale: float = Field(0.3, gt=0)


class AudioOverlayParams(CamelModel):
    audio_path: Optional[str] = None
    volume: float = Field(1.0, ge=0)
    loop: bool = False


class VideoOverlayParams(CamelModel):
    video_path: Optional[str] = None
    position: OverlayPosition = 'bottom-right'
    scale: float = Field(0.3, gt=0)


class SpeedParams(CamelModel):
    speed: float = Field(1.0, validation_alias=AliasChoices('speedFactor', 'speed', 'speed_factor'))


class TrimParams(CamelModel):
    pass


# --- Operations --------------------------------------------------------------

class BaseOperation(CamelModel):
    id: str
    start_sec: float = 0.0
    end_sec: float = 0.0
    label: str = ''
    status: Literal['planned', 'rendered'] = 'planned'

    def window(self, duration: float) -> tuple:
        """Resolve the operation's time window; an end of 0 means the clip end."""
        end = self.end_sec if self.end_sec > 0 else duration
        if duration > 0:
            end = min(end, duration)
        start = max(0.0, min(self.start_sec, end))
        return start, end


class RemoveSilenceOperation(BaseOperation):
    kind: Literal['remove_silence']
    params: RemoveSilenceParams = Field(default_factory=RemoveSilenceParams)


class EffectOperation(BaseOperation):
    kind: Literal['effect']
    params: EffectParams = Field(default_factory=EffectParams)

    @property
    def effect_name(self) -> str:
        """Explicit effect name, else the label slugified ("Punch In" -> "punch-in")."""
        name = self.params.effect or self.label
        return re.sub(r'\s+', '-', name.strip().lower())


class ColorGradeOperation(BaseOperation):
    kind: Literal['color_grade']
    params: ColorGradeParams = Field(default_factory=ColorGradeParams)


class CaptionOperation(BaseOperation):
    kind: Literal['captions']
    params: CaptionParams = Field(default_factory=CaptionParams)

    @property
    def text(self) -> str:
        return self.params.text or self.label


class ImageOverlayOperation(BaseOperation):
    kind: Literal['overlay_image']
    params: ImageOverlayParams = Field(default_factory=ImageOverlayParams)


class AudioOverlayOperation(BaseOperation):
    kind: Literal['overlay_audio']
    params: AudioOverlayParams = Field(default_factory=AudioOverlayParams)


class VideoOverlayOperation(BaseOperation):
    kind: Literal['overlay_video']
    params: VideoOverlayParams = Field(default_factory=VideoOverlayParams)


class TrimOperation(BaseOperation):
    kind: Literal['trim']
    params: TrimParams = Field(default_factory=TrimParams)


class SpeedOperation(BaseOperation):
    kind: Literal['speed']
    params: SpeedParams = Field(default_factory=SpeedParams)


class UnknownOperation(BaseOperation):
    """An operation kind this pipeline does not implement; applied as a passthrough."""
    kind: str
    params: Dict[str, Any] = Field(default_factory=dict)


EditOperation = Annotated[
    Union[
        RemoveSilenceOperation,
        EffectOperation,
        ColorGradeOperation,
        CaptionOperation,
        ImageOverlayOperation,
        AudioOverlayOperation,
        VideoOverlayOperation,
        TrimOperation,
        SpeedOperation,
    ],
    Field(discriminator='kind'),
]

AnyOperation = Union[EditOperation, UnknownOperation]

_operation_adapter = TypeAdapter(EditOperation)


def parse_operation(raw: Union[Dict[str, Any], BaseOperation]) -> BaseOperation:
    """Validate one raw operation into its typed variant."""
    if isinstance(raw, BaseOperation):
        return raw

    data = dict(raw)
    if 'kind' not in data and 'op' in data:
        data['kind'] = data.pop('op')
    if data.get('params') is None:
        data['params'] = {}

    if data.get('kind') in KNOWN_KINDS:
        return _operation_adapter.validate_python(data)
    return UnknownOperation.model_validate(data)


def parse_plan(raw_plan: Sequence[Union[Dict[str, Any], BaseOperation]]) -> List[BaseOperation]:
    """Validate a raw plan (at most MAX_PLAN_OPERATIONS operations)."""
    if len(raw_plan) > MAX_PLAN_OPERATIONS:
        raise ValueError(
            f"Plan has {len(raw_plan)} operations; at most {MAX_PLAN_OPERATIONS} are allowed"
        )
    return [parse_operation(op) for op in raw_plan]


def clamp_range(start_sec: float, end_sec: float, total_duration_sec: float) -> tuple:
    """
    Clamp a range into [0, total]; degenerate ranges collapse to a one-second
    window ending at the clamped end.
    """
    clamped_start = max(0.0, min(start_sec, total_duration_sec))
    clamped_end = max(0.0, min(end_sec, total_duration_sec))

    if clamped_start >= clamped_end:
        return max(0.0, clamped_end - 1), clamped_end

    return clamped_start, clamped_end


def validate_and_normalize_plan(
    raw_plan: Sequence[Union[Dict[str, Any], BaseOperation]],
    total_duration_sec: float,
) -> List[BaseOperation]:
    """
    Validate a plan and clamp every operation's range to the source duration.

    Missing params and status get their defaults during validation. The
    result is a fixed point: normalizing it again returns an equal plan.
    """
    normalized = []
    for operation in parse_plan(raw_plan):
        start_sec, end_sec = clamp_range(operation.start_sec, operation.end_sec, total_duration_sec)
        normalized.append(operation.model_copy(update={'start_sec': start_sec, 'end_sec': end_sec}))
    return normalized
