"""Exact content hashing and perceptual fingerprinting."""

import hashlib

import numpy as np
from PIL import Image

from ..errors import ImageDecodeError
from ..imaging import ImageInput, as_bytes, decode_image
from ..logging import get_logger

logger = get_logger(__name__)

DEFAULT_GRID_SIZE = 8


def compute_content_hash(image: ImageInput) -> str:
    """
    Compute the SHA-256 digest of raw image bytes.

    Any byte difference, including re-encoding at another quality, yields a
    different hash. This is the exact-duplicate key.

    Args:
        image: ImageBytes or a raw byte buffer

    Returns:
        64-character lowercase hex digest

    Raises:
        InvalidInputError: If the payload is empty
    """
    return hashlib.sha256(as_bytes(image)).hexdigest()


def compute_fingerprint(image: ImageInput, grid_size: int = DEFAULT_GRID_SIZE) -> str:
    """
    Compute an average-hash fingerprint of an image.

    The image is box-resampled to a grid_size x grid_size RGB grid. Each cell's
    brightness is the mean of its three channels; a cell emits '1' when brighter
    than the grid mean, '0' otherwise, in row-major order.

    Args:
        image: ImageBytes or a raw byte buffer
        grid_size: Side length of the sample grid

    Returns:
        String of grid_size ** 2 binary digits

    Raises:
        InvalidInputError: If the payload is empty
        ImageDecodeError: If the bytes cannot be decoded
    """
    if grid_size < 2:
        raise ValueError(f"grid_size must be at least 2, got {grid_size}")

    img = decode_image(image)
    try:
        small = img.resize((grid_size, grid_size), Image.Resampling.BOX)
    except (OSError, ValueError) as exc:
        raise ImageDecodeError(f"Failed to resample image: {exc}") from exc

    pixels = np.asarray(small, dtype=np.float64)
    brightness = pixels.mean(axis=2)
    bits = brightness > brightness.mean()

    fingerprint = ''.join('1' if bit else '0' for bit in bits.flatten())
    logger.debug(f"Computed {grid_size}x{grid_size} fingerprint {fingerprint}")
    return fingerprint


class ContentHasher:
    """Callable wrapper around compute_content_hash for injection."""

    def __call__(self, image: ImageInput) -> str:
        return self.hash(image)

    def hash(self, image: ImageInput) -> str:
        return compute_content_hash(image)


class PerceptualFingerprinter:
    """Average-hash fingerprinter with a fixed grid size."""

    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE):
        if grid_size < 2:
            raise ValueError(f"grid_size must be at least 2, got {grid_size}")
        self.grid_size = grid_size

    @property
    def fingerprint_length(self) -> int:
        return self.grid_size * self.grid_size

    def __call__(self, image: ImageInput) -> str:
        return self.fingerprint(image)

    def fingerprint(self, image: ImageInput) -> str:
        return compute_fingerprint(image, grid_size=self.grid_size)

