# pipeline/effect_runner.py
from typing import Union
import logging

from ..models.image import Image
from ..models.result_surface import ResultSurface
from ..models.transform_descriptor import TransformDescriptor
from ..services.image_service import ImageService
from ..services.transform_service import TransformService

logger = logging.getLogger(__name__)


def run_effect(
    source: Union[Image, ResultSurface],
    descriptor: TransformDescriptor,
    *,
    image_service: ImageService = ImageService(),
    transform_service: TransformService = TransformService(),
) -> ResultSurface:
    """
    Decode → Transform → Encode for one effect request.

    *source* is either the uploaded Image or the previous ResultSurface
    (chained effects). Returns a **new** ResultSurface at the same size;
    neither input is modified. DecodeError / TransformError / EncodeError
    propagate to the caller untouched.
    """
    # 1. decode → flat RGBA buffer
    if isinstance(source, ResultSurface):
        buffer = source.to_buffer()
    else:
        buffer = image_service.decode(source)
    width, height = source.width, source.height

    # 2. transform → new buffer
    logger.info(f"Applying {descriptor.effect.value} (factor={descriptor.factor}) to {width}x{height}")
    out = transform_service.apply(buffer, width, height, descriptor)

    # 3. encode → result surface
    return image_service.encode(out, width, height, effect=descriptor.effect)
