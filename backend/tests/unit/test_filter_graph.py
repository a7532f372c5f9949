"""Tests for filter expression helpers."""
import math

import pytest

from montage.editing.utils.filter_graph import (
    atempo_chain,
    atempo_filter,
    enable_between,
    escape_drawtext,
    escape_filter_value,
    fmt_num,
    gate,
    gate_chain,
    overlay_position,
    scale_by,
)


class TestAtempoChain:
    def test_in_range_factor_is_a_single_step(self):
        assert atempo_chain(1.5) == [1.5]

    def test_quarter_speed_needs_two_steps(self):
        steps = atempo_chain(0.25)
        assert len(steps) == 2
        assert math.isclose(math.prod(steps), 0.25, abs_tol=1e-6)

    def test_five_times_speed(self):
        steps = atempo_chain(5.0)
        assert steps == [2.0, 2.0, 1.25]
        assert len(steps) == math.ceil(math.log2(5))

    @pytest.mark.parametrize("factor", [0.1, 0.3, 0.5, 2.0, 3.7, 16.0, 100.0])
    def test_steps_stay_in_range_and_multiply_back(self, factor):
        steps = atempo_chain(factor)
        assert all(0.5 <= s <= 2.0 for s in steps)
        assert math.isclose(math.prod(steps), factor, rel_tol=1e-6)

    @pytest.mark.parametrize("factor", [0, -1.0, float('inf'), float('nan')])
    def test_rejects_non_positive_factors(self, factor):
        with pytest.raises(ValueError):
            atempo_chain(factor)

    def test_filter_string(self):
        assert atempo_filter(5.0) == "atempo=2,atempo=2,atempo=1.25"


class TestFormatting:
    def test_fmt_num_strips_float_noise(self):
        assert fmt_num(1.0) == "1"
        assert fmt_num(0.1 + 0.2) == "0.3"
        assert fmt_num(-0.0) == "0"
        assert fmt_num(-30) == "-30"

    def test_enable_between(self):
        assert enable_between(1.5, 4) == "enable='between(t,1.5,4)'"

    def test_gate_appends_to_existing_options(self):
        assert gate("gblur=sigma=10", 1, 2) == "gblur=sigma=10:enable='between(t,1,2)'"

    def test_gate_on_bare_filter(self):
        assert gate("hflip", 0, 1.5) == "hflip=enable='between(t,0,1.5)'"

    def test_gate_chain_gates_every_filter(self):
        chain = gate_chain(["eq=saturation=0.5", "hue=s=0"], 2, 3)
        assert chain.count("enable='between(t,2,3)'") == 2
        assert chain.startswith("eq=saturation=0.5:enable=")

    def test_scale_never_below_one_pixel(self):
        assert scale_by(0.3) == "scale=w='max(1,iw*0.3)':h='max(1,ih*0.3)'"


class TestOverlayPosition:
    @pytest.mark.parametrize("name,expected", [
        ('top-left', ('10', '10')),
        ('top-right', ('W-w-10', '10')),
        ('bottom-left', ('10', 'H-h-10')),
        ('bottom-right', ('W-w-10', 'H-h-10')),
        ('center', ('(W-w)/2', '(H-h)/2')),
    ])
    def test_presets(self, name, expected):
        assert overlay_position(name) == expected

    def test_unknown_position_is_centered(self):
        assert overlay_position('somewhere') == ('(W-w)/2', '(H-h)/2')


class TestEscaping:
    def test_plain_text_is_unchanged(self):
        assert escape_drawtext("Hello World") == "Hello World"

    def test_graph_separators_are_escaped(self):
        assert escape_drawtext("a,b") == r"a\,b"

    def test_quote_colon_and_percent(self):
        assert escape_drawtext("It's 50%: done") == r"It\\\'s 50\\\\%\\: done"

    def test_filter_value_escapes_colons(self):
        assert escape_filter_value("C:/fonts/a.ttf") == r"C\\:/fonts/a.ttf"
