from __future__ import annotations
import logging
import os

import numpy as np
import torch
from dotenv import load_dotenv

from ..models.errors import TransformError
from ..models.tensor_engine import TensorEngine
from ..models.transform_descriptor import Effect, TransformDescriptor, DEFAULT_FACTOR
from ..repositories.transform_repository import TransformRepository, PADDING_MODES

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class TransformService:
    """
    Pure buffer → buffer transforms.

    *   Buffers are flat uint8 RGBA arrays of width*height*4 samples.
    *   The input buffer is never modified; a new buffer is returned.
    *   Intermediate tensors live in a TensorEngine scope and are released
        before returning, on success and on failure.
    """

    def __init__(self, padding: str | None = None):
        self.padding = (padding or os.getenv("EDGE_PADDING", "reflect")).lower()
        if self.padding not in PADDING_MODES:
            raise ValueError(f"EDGE_PADDING must be one of {sorted(PADDING_MODES)}, got {self.padding!r}")
        self.engine = TensorEngine()
        self.repository = TransformRepository()

    # ─── Public API ────────────────────────────────────────────────
    def grayscale(self, buffer: np.ndarray, width: int, height: int) -> np.ndarray:
        return self._run(buffer, width, height, self.repository.grayscale)

    def brightness(self, buffer: np.ndarray, width: int, height: int,
                   factor: float = DEFAULT_FACTOR) -> np.ndarray:
        return self._run(buffer, width, height, self.repository.brightness, self._factor(factor))

    def contrast(self, buffer: np.ndarray, width: int, height: int,
                 factor: float = DEFAULT_FACTOR) -> np.ndarray:
        return self._run(buffer, width, height, self.repository.contrast, self._factor(factor))

    def invert(self, buffer: np.ndarray, width: int, height: int) -> np.ndarray:
        return self._run(buffer, width, height, self.repository.invert)

    def edge_detection(self, buffer: np.ndarray, width: int, height: int) -> np.ndarray:
        return self._run(buffer, width, height, self.repository.edge_detection, self.padding)

    def apply(self, buffer: np.ndarray, width: int, height: int,
              descriptor: TransformDescriptor) -> np.ndarray:
        """Dispatch on the descriptor's effect."""
        effect = descriptor.effect
        if effect is Effect.GRAYSCALE:
            return self.grayscale(buffer, width, height)
        if effect is Effect.BRIGHTNESS:
            return self.brightness(buffer, width, height, descriptor.factor)
        if effect is Effect.CONTRAST:
            return self.contrast(buffer, width, height, descriptor.factor)
        if effect is Effect.INVERT:
            return self.invert(buffer, width, height)
        if effect is Effect.EDGE_DETECTION:
            return self.edge_detection(buffer, width, height)
        raise TransformError(f"Unknown effect: {effect!r}")

    # ─── Internal helpers ──────────────────────────────────────────
    @staticmethod
    def _factor(factor) -> float:
        try:
            value = float(factor)
        except (TypeError, ValueError) as err:
            raise TransformError(f"Invalid factor: {factor!r}") from err
        if not np.isfinite(value):
            raise TransformError(f"Factor is not finite: {factor!r}")
        return value

    @staticmethod
    def _validate(buffer: np.ndarray, width: int, height: int) -> np.ndarray:
        if width <= 0 or height <= 0:
            raise TransformError(f"Image dimensions must be positive, got {width}x{height}")
        buffer = np.asarray(buffer)
        if buffer.dtype != np.uint8:
            raise TransformError(f"Expected uint8 buffer, got {buffer.dtype}")
        if buffer.size != width * height * 4:
            raise TransformError(
                f"Buffer length {buffer.size} does not match {width}x{height}x4"
            )
        return buffer

    def _run(self, buffer, width, height, op, *args) -> np.ndarray:
        buffer = self._validate(buffer, width, height)
        # private copy so torch never aliases the caller's memory
        pixels_np = buffer.reshape(height, width, 4).copy()

        with self.engine.scope() as scope:
            try:
                pixels = self.engine.from_numpy(scope, pixels_np)
                out = scope.track(op(scope, pixels, *args))
            except (RuntimeError, ValueError) as err:
                raise TransformError(f"{op.__name__} failed: {err}") from err

            if out.shape != pixels.shape or out.dtype != torch.uint8:
                raise TransformError(
                    f"{op.__name__} produced {tuple(out.shape)} {out.dtype}, expected {tuple(pixels.shape)} uint8"
                )
            result = out.cpu().numpy().reshape(-1).copy()

        logger.debug(f"{op.__name__} done on {width}x{height}")
        return result
