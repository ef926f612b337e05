from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass
class Image:
    """
    Decoded image source: RGBA pixels (+ the name it was uploaded under).
    No OpenCV logic outside the repository layer.
    """
    pixels: np.ndarray | None  # Shape (H, W, 4), dtype uint8, RGBA order. None = not loaded.
    filename: str | None = None  # Name the user uploaded it under.

    @property
    def is_loaded(self) -> bool:
        return self.pixels is not None

    @property
    def width(self) -> int:
        return 0 if self.pixels is None else int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return 0 if self.pixels is None else int(self.pixels.shape[0])
