from io import BytesIO
import base64
import logging

import numpy as np
import cv2
from PIL import Image as PILImage

from ..models.image import Image
from ..models.result_surface import ResultSurface
from ..models.errors import UploadError, DecodeError, EncodeError

logger = logging.getLogger(__name__)

# Download formats → PIL format names
SERIALIZE_FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG"}


class ImageRepository:
    """
    Handles byte/file I/O and the pixel-buffer <-> image conversions.
    """
    # ─── helpers ──────────────────────────────────────────────────────
    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """OpenCV gives GRAY, BGR or BGRA; always hand back RGBA."""
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.shape[2] == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)

    @staticmethod
    def _freeze(pixels: np.ndarray) -> np.ndarray:
        pixels = np.ascontiguousarray(pixels, dtype=np.uint8)
        pixels.setflags(write=False)
        return pixels

    # ─── loading ──────────────────────────────────────────────────────
    def load_bytes(self, data: bytes, filename: str | None = None) -> Image:
        """
        Decode uploaded bytes into an RGBA Image.
        The filename is bookkeeping only; OpenCV decides what is an image.
        """
        if not data:
            raise UploadError("Uploaded file is empty")

        raw = np.frombuffer(data, dtype=np.uint8)
        try:
            arr = cv2.imdecode(raw, cv2.IMREAD_UNCHANGED)
        except cv2.error as err:
            raise UploadError(f"Image not decodable: {filename or '<upload>'}") from err
        if arr is None or arr.size == 0:
            raise UploadError(f"Image not decodable: {filename or '<upload>'}")

        # 16-bit PNG/TIFF → 8-bit
        if arr.dtype != np.uint8:
            arr = cv2.convertScaleAbs(arr, alpha=255.0 / max(float(arr.max()), 1.0))

        pixels = self._freeze(self._to_rgba(arr))
        logger.debug(f"Decoded upload {filename or '<upload>'}: {pixels.shape}")
        return Image(pixels=pixels, filename=filename)

    # ─── pixel buffer conversion ──────────────────────────────────────
    @staticmethod
    def decode(image: Image) -> np.ndarray:
        """Image → fresh flat RGBA buffer at natural resolution."""
        if image is None or not image.is_loaded:
            raise DecodeError("Image source is not loaded")
        pixels = image.pixels
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            raise DecodeError(f"Expected (H, W, 4) uint8 pixels, got {pixels.shape} {pixels.dtype}")
        if image.width == 0 or image.height == 0:
            raise DecodeError(f"Image source has zero size: {image.width}x{image.height}")
        return pixels.reshape(-1).copy()

    @staticmethod
    def encode(buffer: np.ndarray, width: int, height: int, effect=None) -> ResultSurface:
        """Flat RGBA buffer → new ResultSurface of the given size."""
        if width <= 0 or height <= 0:
            raise EncodeError(f"Surface dimensions must be positive, got {width}x{height}")
        buffer = np.asarray(buffer)
        if buffer.dtype != np.uint8:
            raise EncodeError(f"Expected uint8 buffer, got {buffer.dtype}")
        if buffer.size != width * height * 4:
            raise EncodeError(
                f"Buffer length {buffer.size} does not match {width}x{height}x4"
            )
        pixels = buffer.reshape(height, width, 4).copy()
        pixels.setflags(write=False)
        return ResultSurface(pixels=pixels, effect=effect)

    # ─── serialization ────────────────────────────────────────────────
    @staticmethod
    def serialize(pixels: np.ndarray, fmt: str = "png") -> bytes:
        pil_format = SERIALIZE_FORMATS.get(fmt.lower())
        if pil_format is None:
            raise EncodeError(f"Unsupported download format: {fmt}")

        pil_image = PILImage.fromarray(np.ascontiguousarray(pixels))
        if pil_format == "JPEG":
            pil_image = pil_image.convert("RGB")

        buffer = BytesIO()
        try:
            pil_image.save(buffer, format=pil_format)
        except (OSError, ValueError) as err:
            raise EncodeError(f"Could not write {pil_format}: {err}") from err
        return buffer.getvalue()

    def to_data_url(self, pixels: np.ndarray, fmt: str = "png") -> str:
        img_bytes = self.serialize(pixels, fmt)
        mime = "jpeg" if fmt.lower() in ("jpg", "jpeg") else fmt.lower()
        base64_string = base64.b64encode(img_bytes).decode('utf-8')
        return f"data:image/{mime};base64,{base64_string}"
