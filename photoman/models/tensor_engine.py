# models/tensor_engine.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, List
import logging
import os
import threading

import torch
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class TensorScope:
    """
    Owns the intermediate tensors of one transform.
    Everything registered with track() is dropped when the scope closes.
    """

    def __init__(self, engine: TensorEngine):
        self._engine = engine
        self._tensors: List[torch.Tensor] = []

    def track(self, tensor: torch.Tensor) -> torch.Tensor:
        self._tensors.append(tensor)
        self._engine._adjust_live(+1)
        return tensor

    def release(self) -> None:
        released = len(self._tensors)
        self._tensors.clear()
        self._engine._adjust_live(-released)


class TensorEngine:
    """
    Singleton wrapper around the torch device used by the transforms.
    • Picks CUDA when available, CPU otherwise (TENSOR_DEVICE overrides).
    • Hands out TensorScope objects and counts the tensors still held by them.
    """

    _instance = None
    _lock = threading.RLock()

    # ───────────────────────── singleton ctor
    def __new__(cls, device: str | None = None):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._init(device)
            return cls._instance

    # ───────────────────────── actual init
    def _init(self, device: str | None):
        device = device or os.getenv("TENSOR_DEVICE")
        if not device:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)
        self._live = 0
        logger.info(f"TensorEngine using device: {self.device}")

    def _adjust_live(self, delta: int) -> None:
        with self._lock:
            self._live += delta

    # ───────────────────────── public API
    @property
    def live_tensors(self) -> int:
        """Intermediate tensors currently held by open scopes."""
        return self._live

    def from_numpy(self, scope: TensorScope, array) -> torch.Tensor:
        return scope.track(torch.from_numpy(array).to(self.device))

    @contextmanager
    def scope(self) -> Iterator[TensorScope]:
        """
        Run a block with autograd off; the tensors it tracks are released
        on every exit path, errors included.
        """
        scope = TensorScope(self)
        try:
            with torch.inference_mode():
                yield scope
        finally:
            scope.release()
            if self.device.type == "cuda":
                torch.cuda.empty_cache()
