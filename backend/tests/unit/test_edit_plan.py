"""Tests for edit plan parsing and normalization."""
import pytest
from pydantic import ValidationError

from montage.schemas.edit_plan import (
    MAX_PLAN_OPERATIONS,
    CaptionOperation,
    EffectOperation,
    RemoveSilenceOperation,
    SpeedOperation,
    UnknownOperation,
    clamp_range,
    parse_operation,
    parse_plan,
    validate_and_normalize_plan,
)


def _op(kind, op_id='op1', **fields):
    return {'id': op_id, 'kind': kind, **fields}


class TestParseOperation:
    def test_accepts_op_alias_and_camel_case_params(self):
        operation = parse_operation({
            'id': 'c1',
            'op': 'captions',
            'startSec': 1,
            'endSec': 3,
            'label': 'Hello',
            'params': {'fontSize': 48, 'position': 'top'},
        })

        assert isinstance(operation, CaptionOperation)
        assert operation.start_sec == 1.0
        assert operation.end_sec == 3.0
        assert operation.params.font_size == 48
        assert operation.params.position == 'top'
        assert operation.text == 'Hello'

    def test_defaults_are_filled_in(self):
        operation = parse_operation(_op('remove_silence', params=None))

        assert isinstance(operation, RemoveSilenceOperation)
        assert operation.status == 'planned'
        assert operation.params.min_silence == 0.6
        assert operation.params.threshold_db == -30.0

    def test_unknown_kind_is_kept(self):
        operation = parse_operation(_op('zoom_blur', params={'amount': 3}))

        assert isinstance(operation, UnknownOperation)
        assert operation.kind == 'zoom_blur'
        assert operation.params == {'amount': 3}

    def test_effect_name_falls_back_to_slugified_label(self):
        operation = parse_operation(_op('effect', label='Punch In'))

        assert isinstance(operation, EffectOperation)
        assert operation.effect_name == 'punch-in'

    def test_explicit_effect_name_wins(self):
        operation = parse_operation(_op('effect', label='Punch In', params={'effect': 'blur'}))
        assert operation.effect_name == 'blur'

    @pytest.mark.parametrize("raw,expected", [(150, 100.0), (-5, 0.0), (42, 42.0)])
    def test_strength_is_clamped(self, raw, expected):
        operation = parse_operation(_op('effect', params={'strength': raw}))
        assert operation.params.strength == expected

    def test_speed_factor_aliases(self):
        assert parse_operation(_op('speed', params={'speedFactor': 2})).params.speed == 2.0
        assert parse_operation(_op('speed', params={'speed': 0.5})).params.speed == 0.5
        assert isinstance(parse_operation(_op('speed')), SpeedOperation)

    def test_unsupported_caption_animation_becomes_fade(self):
        operation = parse_operation(_op('captions', params={'animation': 'slide'}))
        assert operation.params.animation == 'fade'

    def test_invalid_params_are_rejected(self):
        with pytest.raises(ValidationError):
            parse_operation(_op('remove_silence', params={'minSilence': -1}))

    def test_window_end_zero_means_clip_end(self):
        operation = parse_operation(_op('trim', startSec=2, endSec=0))
        assert operation.window(30.0) == (2.0, 30.0)

    def test_window_is_capped_at_duration(self):
        operation = parse_operation(_op('trim', startSec=5, endSec=50))
        assert operation.window(30.0) == (5.0, 30.0)


class TestParsePlan:
    def test_plan_size_limit(self):
        plan = [_op('trim', op_id=str(i)) for i in range(MAX_PLAN_OPERATIONS + 1)]
        with pytest.raises(ValueError):
            parse_plan(plan)

    def test_plan_at_limit_is_accepted(self):
        plan = [_op('trim', op_id=str(i)) for i in range(MAX_PLAN_OPERATIONS)]
        assert len(parse_plan(plan)) == MAX_PLAN_OPERATIONS


class TestClampRange:
    @pytest.mark.parametrize("start,end,total,expected", [
        (2, 5, 10, (2, 5)),
        (-2, 4, 10, (0, 4)),
        (3, 15, 10, (3, 10)),
        (5, 3, 10, (2, 3)),
        (12, 15, 10, (9, 10)),
        (0, 0, 10, (0, 0)),
        (0.5, 0.5, 10, (0, 0.5)),
    ])
    def test_clamp(self, start, end, total, expected):
        assert clamp_range(start, end, total) == expected


class TestNormalizePlan:
    def test_ranges_are_clamped(self):
        plan = validate_and_normalize_plan(
            [_op('trim', startSec=8, endSec=40), _op('effect', op_id='e', startSec=25, endSec=30)],
            total_duration_sec=20,
        )

        assert (plan[0].start_sec, plan[0].end_sec) == (8, 20)
        assert (plan[1].start_sec, plan[1].end_sec) == (19, 20)

    def test_normalization_is_idempotent(self):
        raw = [
            _op('remove_silence', op_id='s'),
            _op('captions', op_id='c', startSec=-3, endSec=2, label='Hi'),
            _op('speed', op_id='v', startSec=50, endSec=10, params={'speedFactor': 2}),
            _op('mystery', op_id='m', startSec=1, endSec=4),
        ]

        once = validate_and_normalize_plan(raw, 12.5)
        twice = validate_and_normalize_plan(once, 12.5)

        assert once == twice
