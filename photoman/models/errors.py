class PhotomanError(Exception):
    """Base class for every failure the editor surfaces to a session."""


class UploadError(PhotomanError):
    """The uploaded file is empty, not an image, or cannot be decoded."""


class DecodeError(PhotomanError):
    """The image source is not loaded yet or has no pixels."""


class TransformError(PhotomanError):
    """Dimension/format mismatch, unknown effect, or numerical failure."""


class SupersededError(TransformError):
    """A newer request replaced this one before its result was committed."""


class EncodeError(PhotomanError):
    """A result surface could not be allocated or serialized."""
