import os
from io import BytesIO

os.environ.setdefault("TENSOR_DEVICE", "cpu")

import numpy as np
import pytest
from PIL import Image as PILImage

from photoman.models.image import Image
from photoman.services.image_service import ImageService
from photoman.services.transform_service import TransformService
from photoman.services.editor_session import EditorSession


def _png_bytes(pixels: np.ndarray) -> bytes:
    buffer = BytesIO()
    PILImage.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_png():
    return _png_bytes


@pytest.fixture
def rgba_pixels():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(5, 7, 4), dtype=np.uint8)


@pytest.fixture
def rgba_image(rgba_pixels):
    return Image(pixels=rgba_pixels)


@pytest.fixture
def image_service():
    return ImageService()


@pytest.fixture
def transform_service():
    return TransformService(padding="reflect")


@pytest.fixture
def session(image_service, transform_service):
    return EditorSession("test", image_service=image_service, transform_service=transform_service)
