"""
Error types raised by the classification pipeline.

All errors derive from ImageClassifierError so callers (the CLI) can catch
one type. Every failure is terminal for the operation that raised it.
"""

from typing import Optional


class ImageClassifierError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ImageClassifierError):
    """Label configuration or pipeline settings are invalid."""


class ImageFormatError(ImageClassifierError):
    """An image cannot be used: undecodable, unsupported type or not square."""

    def __init__(self, message: str, path: Optional[str] = None, label: Optional[str] = None):
        self.message = message
        self.path = path
        self.label = label
        super().__init__(self._describe(message))

    def _describe(self, message: str) -> str:
        details = []
        if self.label is not None:
            details.append(f"label '{self.label}'")
        if self.path is not None:
            details.append(f"path '{self.path}'")
        if not details:
            return message
        return f"{message} ({', '.join(details)})"


class UnsupportedFormatError(ImageFormatError):
    """Image MIME type is neither PNG nor JPEG."""


class PoolingTooSmallError(ImageClassifierError):
    """Pooling was attempted on a grid below the minimum side length."""


class NotTrainedError(ImageClassifierError):
    """Prediction was requested from a model that has not been trained."""


class EmptyTrainingSetError(ImageClassifierError):
    """Training was invoked without any feature vectors."""


class DimensionMismatchError(ImageClassifierError):
    """Feature vectors of different lengths were mixed."""
