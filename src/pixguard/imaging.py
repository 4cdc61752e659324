"""Image payload type and Pillow decoding helpers."""

from __future__ import annotations

import io
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError, InvalidInputError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ImageBytes:
    """Raw upload payload. Owned by the caller for the duration of one check."""
    data: bytes
    mime_type: str = "application/octet-stream"
    file_name: str = ""

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageBytes":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            data=path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            file_name=path.name,
        )


ImageInput = Union[ImageBytes, bytes, bytearray, memoryview]


def as_bytes(image: ImageInput) -> bytes:
    """Return the raw buffer of an image payload, rejecting empty input."""
    if isinstance(image, ImageBytes):
        data = image.data
    elif isinstance(image, (bytes, bytearray, memoryview)):
        data = bytes(image)
    else:
        raise InvalidInputError(f"Unsupported image payload type: {type(image).__name__}")

    if not data:
        raise InvalidInputError("Image payload is empty")
    return data


def decode_image(image: ImageInput) -> Image.Image:
    """
    Decode an image payload into an RGB Pillow image.

    Raises:
        InvalidInputError: If the payload is empty
        ImageDecodeError: If the bytes are not a decodable raster image
    """
    data = as_bytes(image)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Failed to decode image ({len(data)} bytes): {exc}") from exc

    return _to_rgb(img)


def image_dimensions(image: ImageInput) -> Tuple[int, int]:
    """Read width and height from the image header without decoding pixels."""
    data = as_bytes(image)
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Failed to read image dimensions: {exc}") from exc

    if width <= 0 or height <= 0:
        raise ImageDecodeError(f"Invalid image dimensions {width}x{height}")
    return width, height


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode == 'RGB':
        return img
    # Composite transparent images over white so alpha does not read as black
    if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
        rgba = img.convert('RGBA')
        background = Image.new('RGB', rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return img.convert('RGB')
