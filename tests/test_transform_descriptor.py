import pytest

from photoman.models.errors import TransformError
from photoman.models.transform_descriptor import Effect, TransformDescriptor


def test_default_factor():
    assert TransformDescriptor(Effect.BRIGHTNESS).factor == pytest.approx(1.2)


@pytest.mark.parametrize("factor", [0.0, -0.5, 2.01, float("nan")])
def test_factor_out_of_range_is_rejected(factor):
    with pytest.raises(TransformError):
        TransformDescriptor(Effect.CONTRAST, factor)


def test_upper_bound_is_inclusive():
    assert TransformDescriptor(Effect.BRIGHTNESS, 2.0).factor == 2.0


def test_parameterless_effects_ignore_factor():
    assert TransformDescriptor(Effect.INVERT, 9.0).effect is Effect.INVERT


@pytest.mark.parametrize("name, effect", [
    ("grayscale", Effect.GRAYSCALE),
    ("Edge_Detection", Effect.EDGE_DETECTION),
    ("edge-detection", Effect.EDGE_DETECTION),
    (" INVERT ", Effect.INVERT),
])
def test_parse_names(name, effect):
    assert TransformDescriptor.parse(name).effect is effect


def test_parse_factor():
    descriptor = TransformDescriptor.parse("brightness", "1.5")
    assert descriptor == TransformDescriptor(Effect.BRIGHTNESS, 1.5)


@pytest.mark.parametrize("name, factor", [
    ("blur", None),
    ("pixelate", None),
    (None, None),
    ("brightness", "bright"),
])
def test_parse_rejects_bad_input(name, factor):
    with pytest.raises(TransformError):
        TransformDescriptor.parse(name, factor)
