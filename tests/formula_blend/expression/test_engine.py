import logging
import math

import numpy as np
import pytest

from formula_blend.exceptions import (
    DisallowedToken,
    EmptyExpression,
    FormulaError,
    FormulaSyntaxError,
    InvalidReturnArity,
)
from formula_blend.expression import Engine, clamp01, compile, expand
from formula_blend.presets import DEFAULT_PRESETS

from ..utils import channels

logger = logging.getLogger(__name__)


@pytest.mark.parametrize(
    "text",
    [
        "[rs, gs, bs]",
        "[rb*rs, gb*gs, bb*bs]",
        "[rb, gb, bb, ab]",
        "B+T",
        "B*T",
        "mix(B, T, 0.5)",
        "max(B, T)",
        "[clamp(rb, 0.1), saturate(gs*2), smoothstep(0, 1, bb)]",
        "[lum(rb, gb, bb), step(0.5, rs), round(gs*10)/10, 1]",
        "[sqrt(rb), pow(gb, 2.2), exp(bb) - 1, log(1 + ab)]",
        "[abs(rb - rs), floor(gb + 0.5), ceil(bb), rb % 0.25]",
        "ab > 0 ? [rb, gb, bb] : [rs, gs, bs]",
        "  [ rb ,\n gb ,\t bb ]  ",
    ]
    + [expr for _, expr in DEFAULT_PRESETS],
)
def test_compile(text: str) -> None:
    engine = compile(text)
    assert isinstance(engine, Engine)
    assert engine.expr == text
    assert engine.arity in (3, 4)


@pytest.mark.parametrize(
    "text, error",
    [
        ("", EmptyExpression),
        ("  ", EmptyExpression),
        ("[rb, gb, bb].length", DisallowedToken),
        ("[rb, gb, x]", DisallowedToken),
        ("[rb = 1, gb, bb]", DisallowedToken),
        ("[this, gb, bb]", DisallowedToken),
        ("[Math.PI, gb, bb]", DisallowedToken),
        ("rb + rs", InvalidReturnArity),
        ("[rb, gb]", InvalidReturnArity),
        ("[rb, gb, bb, ab, 1]", InvalidReturnArity),
        ("lum(rb, gb, bb)", InvalidReturnArity),
        ("lum(B)", FormulaSyntaxError),
    ],
)
def test_compile_error(text: str, error: type) -> None:
    with pytest.raises(error):
        compile(text)


def test_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        compile("[rb, gb, bb")
    assert issubclass(DisallowedToken, FormulaError)


def test_legacy_identity() -> None:
    engine = compile("[rs, gs, bs]")
    out = engine(channels(rb=0.9, gb=0.8, bb=0.7, ab=0.6, rs=0.1, gs=0.2, bs=0.3, as_=0.4))
    assert out == pytest.approx((0.1, 0.2, 0.3))
    assert len(out) == 3
    assert not engine.has_alpha


def test_vector_formula_matches_scalar_formula(random_channels) -> None:
    scaled = {name: value * 1.5 for name, value in random_channels.items()}
    vector = compile("B+T")
    scalar = compile("[rb+rs, gb+gs, bb+bs, ab+as]")
    for env in (random_channels, scaled):
        for a, b in zip(vector(env), scalar(env)):
            np.testing.assert_array_equal(a, b)


def test_vector_formula_has_alpha() -> None:
    engine = compile("B*T")
    assert engine.has_alpha
    assert engine.expanded == "[rb * rs, gb * gs, bb * bs, ab * as]"
    out = engine(channels(rb=0.5, gb=0.5, bb=0.5, ab=1.0, rs=0.5, gs=1.0, bs=0.0, as_=0.5))
    assert out == pytest.approx((0.25, 0.5, 0.0, 0.5))


def test_outputs_are_clamped() -> None:
    engine = compile("[rb + rs, rb - rs, rb / 0, 0 / 0]")
    out = engine(channels(rb=0.8, rs=0.9))
    assert out == (1.0, 0.0, 0.0, 0.0)


def test_non_finite_outputs_are_zero() -> None:
    engine = compile("[log(rb), sqrt(0 - 1), exp(1000), 1]")
    assert engine(channels(rb=0.0)) == (0.0, 0.0, 0.0, 1.0)


def test_evaluation_never_raises() -> None:
    engine = compile("[rb / gb, rb % gb, pow(0 - 1, 0.5)]")
    assert engine(channels()) == (0.0, 0.0, 0.0)
    assert engine({}) == (0.0, 0.0, 0.0)


def test_ternary_per_element(random_channels) -> None:
    engine = compile("rb < 0.5 ? [0, 0, 0] : [1, 1, 1]")
    r, g, b = engine(random_channels)
    expected = np.where(random_channels["rb"] < 0.5, 0.0, 1.0)
    np.testing.assert_array_equal(r, expected)
    np.testing.assert_array_equal(b, expected)


def test_ternary_nan_is_false() -> None:
    engine = compile("[0 / 0 ? 1 : 0, 2 ? 1 : 0, 0 ? 1 : 0]")
    assert engine(channels()) == (0.0, 1.0, 0.0)


def test_modulo_follows_dividend() -> None:
    engine = compile("[rb % 0.25, 0 - rb % 0.25, 1]")
    assert engine(channels(rb=0.3))[0] == pytest.approx(0.05)


def test_array_inputs_keep_shape(random_channels) -> None:
    out = compile("[rb, 0.5, 1, ab]")(random_channels)
    assert all(np.shape(value) == (16, 16) for value in (out[0], out[3]))
    assert out[1] == 0.5


def test_overlay_preset() -> None:
    engine = compile(dict(DEFAULT_PRESETS)["Overlay"])
    dark = engine(channels(rb=0.25, gb=0.25, bb=0.25, rs=0.5, gs=0.5, bs=0.5))
    light = engine(channels(rb=0.75, gb=0.75, bb=0.75, rs=0.5, gs=0.5, bs=0.5))
    assert dark == pytest.approx((0.25, 0.25, 0.25))
    assert light == pytest.approx((0.75, 0.75, 0.75))


@pytest.mark.parametrize("value", [0.0, 0.3, 1.0])
def test_clamp01_idempotent(value: float) -> None:
    assert float(clamp01(value)) == value
    assert float(clamp01(clamp01(value))) == value


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_clamp01_non_finite(value: float) -> None:
    assert float(clamp01(value)) == 0.0


def test_expand() -> None:
    assert expand("B") == "[rb, gb, bb, ab]"
    assert expand("[rb, gb, bb]") == "[rb, gb, bb]"


@pytest.mark.parametrize(
    "text",
    [
        "[" + "+".join(["rb"] * 5000) + ", gb, bb]",
        "[" + "(" * 2000 + "rb" + ")" * 2000 + ", gb, bb]",
        "[" + "-" * 5000 + "rb, gb, bb]",
    ],
)
def test_deeply_nested_formula(text: str) -> None:
    with pytest.raises(FormulaSyntaxError, match="too deeply nested"):
        compile(text)


def test_long_formula_within_limits() -> None:
    engine = compile("[" + "+".join(["rb"] * 50) + ", gb, bb]")
    assert engine(channels(rb=0.01))[0] == pytest.approx(0.5)


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_channels_read_as_zero(value: float) -> None:
    engine = compile("[1 - rb, gs + 0.5, bb]")
    assert engine(channels(rb=value, gs=value)) == pytest.approx((1.0, 0.5, 0.0))


def test_non_finite_channel_arrays() -> None:
    engine = compile("[1 - rb, gb, bb]")
    out = engine(channels(rb=np.array([np.nan, 0.25, np.inf])))
    np.testing.assert_allclose(out[0], [1.0, 0.75, 1.0])
