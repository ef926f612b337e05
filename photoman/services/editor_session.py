from __future__ import annotations
from typing import Optional, Tuple, Union
import logging
import threading

from ..models.image import Image
from ..models.result_surface import ResultSurface
from ..models.session_state import SessionState, View
from ..models.transform_descriptor import TransformDescriptor
from ..models.errors import DecodeError, EncodeError, SupersededError
from ..pipeline.effect_runner import run_effect
from .image_service import ImageService
from .transform_service import TransformService

logger = logging.getLogger(__name__)


class EditorSession:
    """
    Upload/display state for a single user.

    Holds one explicit SessionState instead of loose flags:
        EMPTY → LOADED → PROCESSING → READY
    A new upload from READY goes back to LOADED; a new effect goes
    through PROCESSING again.

    Effect requests are "latest wins": each one takes a ticket, and a
    finished request only commits its surface if no newer effect or
    upload arrived meanwhile. Failures leave the displayed state as it was.
    """

    def __init__(
        self,
        session_id: str,
        image_service: ImageService = None,
        transform_service: TransformService = None,
    ):
        self.session_id = session_id
        self.image_service = image_service or ImageService()
        self.transform_service = transform_service or TransformService()

        self.state = SessionState.EMPTY
        self.view = View.ORIGINAL
        self.source: Optional[Image] = None
        self.result: Optional[ResultSurface] = None

        self._lock = threading.RLock()
        self._generation = 0  # bumped by every upload / effect request / clear

    # ─── helpers ──────────────────────────────────────────────────────
    def _settled_state(self) -> SessionState:
        if self.result is not None:
            return SessionState.READY
        if self.source is not None:
            return SessionState.LOADED
        return SessionState.EMPTY

    # ─── upload ───────────────────────────────────────────────────────
    def on_file_selected(self, data: bytes, filename: str | None = None) -> Image:
        """
        Decode an uploaded file and make it the new source.
        Any existing result is discarded and the view reverts to the original.
        """
        image = self.image_service.load_bytes(data, filename)

        with self._lock:
            self._generation += 1
            self.source = image
            self.result = None
            self.view = View.ORIGINAL
            self.state = SessionState.LOADED

        logger.info(f"Session {self.session_id}: loaded {filename or '<upload>'} ({image.width}x{image.height})")
        return image

    # ─── effects ──────────────────────────────────────────────────────
    def apply_effect(self, descriptor: TransformDescriptor, chain: bool = True) -> ResultSurface:
        """
        Run Decode → Transform → Encode on the latest result (chain=True and a
        result exists) or on the uploaded source, and display the new surface.
        """
        with self._lock:
            if self.source is None:
                raise DecodeError("No image uploaded yet")
            self._generation += 1
            ticket = self._generation
            target: Union[Image, ResultSurface] = (
                self.result if chain and self.result is not None else self.source
            )
            self.state = SessionState.PROCESSING

        try:
            surface = run_effect(
                target,
                descriptor,
                image_service=self.image_service,
                transform_service=self.transform_service,
            )
        except Exception:
            with self._lock:
                if ticket == self._generation:
                    self.state = self._settled_state()
            raise

        with self._lock:
            if ticket != self._generation:
                logger.info(
                    f"Session {self.session_id}: discarding {descriptor.effect.value} result, superseded by a newer request"
                )
                raise SupersededError(f"{descriptor.effect.value} request was superseded")
            self.result = surface
            self.view = View.RESULT
            self.state = SessionState.READY

        logger.info(f"Session {self.session_id}: {descriptor.effect.value} ready")
        return surface

    # ─── view ─────────────────────────────────────────────────────────
    def show_original(self) -> Image:
        with self._lock:
            if self.source is None:
                raise DecodeError("No image uploaded yet")
            self.view = View.ORIGINAL
            return self.source

    def show_result(self) -> ResultSurface:
        with self._lock:
            if self.result is None:
                raise DecodeError("No manipulated image yet")
            self.view = View.RESULT
            return self.result

    def current_surface(self) -> Union[Image, ResultSurface, None]:
        with self._lock:
            if self.view is View.RESULT and self.result is not None:
                return self.result
            return self.source

    # ─── download ─────────────────────────────────────────────────────
    def download(self, fmt: str = "png") -> Tuple[str, bytes]:
        """Returns (attachment name, encoded bytes) for the result surface."""
        with self._lock:
            surface = self.result
        if surface is None:
            raise EncodeError("No manipulated image to download")
        filename = self.image_service.download_name(fmt)
        return filename, self.image_service.serialize(surface, fmt)

    def clear(self) -> None:
        """Drop everything held by this session."""
        with self._lock:
            self._generation += 1
            self.source = None
            self.result = None
            self.view = View.ORIGINAL
            self.state = SessionState.EMPTY

    def describe(self) -> dict:
        with self._lock:
            shown = self.result if self.view is View.RESULT and self.result is not None else self.source
            return {
                'session_id': self.session_id,
                'state': self.state.value,
                'view': self.view.value,
                'width': shown.width if shown is not None else 0,
                'height': shown.height if shown is not None else 0,
                'effect': self.result.effect.value if self.result is not None and self.result.effect else None,
            }
