"""Error taxonomy shared by hashing, comparison and classification."""


class PixguardError(Exception):
    """Base class for all pixguard errors."""


class InvalidInputError(PixguardError):
    """Raised for empty or unreadable byte buffers and malformed fingerprints."""


class ImageDecodeError(PixguardError):
    """Raised when bytes cannot be decoded as a raster image."""


class LengthMismatchError(PixguardError):
    """Raised when comparing fingerprints produced under different grid sizes."""

    def __init__(self, left: int, right: int):
        super().__init__(
            f"Cannot compare fingerprints of length {left} and {right}; "
            f"stored fingerprints must share one grid size"
        )
        self.left = left
        self.right = right


class RemoteClassifierUnavailable(PixguardError):
    """Raised by a remote classifier delegate on timeout, transport or payload errors."""
