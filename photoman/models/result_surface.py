from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from .transform_descriptor import Effect


@dataclass
class ResultSurface:
    """
    Displayable output of a transform, shown in the "after" view.
    Same dimensions as the buffer it was encoded from.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.
    effect: Effect | None = None  # Effect that produced it (None for a plain re-encode).

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def to_buffer(self) -> np.ndarray:
        """Fresh flat RGBA copy, usable as the input of a chained transform."""
        return self.pixels.reshape(-1).copy()
