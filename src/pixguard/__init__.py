"""Duplicate and non-vehicle image gate for car listing uploads."""

from .config import Settings
from .errors import (
    ImageDecodeError,
    InvalidInputError,
    LengthMismatchError,
    PixguardError,
    RemoteClassifierUnavailable,
)
from .imaging import ImageBytes

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "ImageBytes",
    "PixguardError",
    "InvalidInputError",
    "ImageDecodeError",
    "LengthMismatchError",
    "RemoteClassifierUnavailable",
]
