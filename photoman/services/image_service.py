from typing import Union

import numpy as np

from ..models.image import Image
from ..models.result_surface import ResultSurface
from ..models.errors import EncodeError
from ..repositories.image_repository import ImageRepository, SERIALIZE_FORMATS

DOWNLOAD_STEM = "manipulated-image"


class ImageService:
    """I/O helpers and buffer conversion.  No effect math here."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def load_bytes(self, data: bytes, filename: str | None = None) -> Image:
        """Decode an uploaded file into an Image source."""
        return self.image_repository.load_bytes(data, filename)

    def decode(self, image: Image) -> np.ndarray:
        return self.image_repository.decode(image)

    def encode(self, buffer: np.ndarray, width: int, height: int, effect=None) -> ResultSurface:
        return self.image_repository.encode(buffer, width, height, effect)

    # ─── download / preview ───────────────────────────────────────────
    @staticmethod
    def download_name(fmt: str) -> str:
        """
        Args:
            fmt (str): "png" or "jpeg" ("jpg" is accepted as "jpeg").
        Returns:
            (str): The attachment name, e.g. "manipulated-image.png".
        """
        ext = fmt.lower()
        if ext == "jpg":
            ext = "jpeg"
        if ext not in SERIALIZE_FORMATS:
            raise EncodeError(f"Unsupported download format: {fmt}")
        return f"{DOWNLOAD_STEM}.{ext}"

    def serialize(self, surface: ResultSurface, fmt: str = "png") -> bytes:
        """Write the surface as PNG or JPEG at default quality."""
        return self.image_repository.serialize(surface.pixels, fmt)

    def to_data_url(self, source: Union[Image, ResultSurface], fmt: str = "png") -> str:
        """Preview string for either side of the before/after view."""
        return self.image_repository.to_data_url(source.pixels, fmt)
