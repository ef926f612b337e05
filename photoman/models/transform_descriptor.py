from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import os

from dotenv import load_dotenv

from .errors import TransformError

# Load environment variables
load_dotenv()

DEFAULT_FACTOR = float(os.getenv("DEFAULT_EFFECT_FACTOR", "1.2"))
MIN_FACTOR = 0.0  # exclusive
MAX_FACTOR = 2.0  # inclusive


class Effect(str, Enum):
    GRAYSCALE = "grayscale"
    EDGE_DETECTION = "edge-detection"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    INVERT = "invert"

    @property
    def takes_factor(self) -> bool:
        return self in (Effect.BRIGHTNESS, Effect.CONTRAST)


@dataclass(frozen=True)
class TransformDescriptor:
    """
    Value-object naming the chosen effect and its scalar parameter.

    Brightness/contrast factors must lie in (0, 2]; the other effects
    ignore the factor.
    """
    effect: Effect
    factor: float = DEFAULT_FACTOR

    def __post_init__(self):
        if not isinstance(self.effect, Effect):
            raise TransformError(f"Unknown effect: {self.effect!r}")
        if self.effect.takes_factor and not (MIN_FACTOR < self.factor <= MAX_FACTOR):
            raise TransformError(
                f"{self.effect.value} factor must be in ({MIN_FACTOR}, {MAX_FACTOR}], got {self.factor}"
            )

    @classmethod
    def parse(cls, name: str, factor: float | str | None = None) -> TransformDescriptor:
        """Build a descriptor from wire values such as ("Edge_Detection", "1.5")."""
        key = (name or "").strip().lower().replace("_", "-")
        try:
            effect = Effect(key)
        except ValueError as err:
            raise TransformError(f"Unknown effect: {name!r}") from err

        if factor is None or factor == "":
            return cls(effect)
        try:
            value = float(factor)
        except (TypeError, ValueError) as err:
            raise TransformError(f"Invalid factor: {factor!r}") from err
        return cls(effect, value)
