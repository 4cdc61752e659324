"""Helpers for synthesising test images as encoded byte buffers."""

import io
import struct
import zlib
from typing import Optional

import numpy as np
from PIL import Image

from pixguard.imaging import ImageBytes

_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


def photo_like_array(seed: int, width: int = 800, height: int = 600, noise: int = 30) -> np.ndarray:
    """
    Build an RGB array resembling a busy photograph.

    The frame is split into an 8x8 grid of bright or dark tinted blocks with
    per-pixel noise on top, so every fingerprint cell sits well clear of the
    mean brightness and the sampled color variance is high.
    """
    rng = np.random.RandomState(seed)
    bright = rng.rand(8, 8) > 0.5
    tint = rng.randint(-25, 26, size=(8, 8, 3))
    blocks = np.where(bright[..., None], 210, 45) + tint

    rows = np.minimum(np.arange(height) * 8 // height, 7)
    cols = np.minimum(np.arange(width) * 8 // width, 7)
    base = blocks[rows][:, cols].astype(np.int16)

    jitter = rng.randint(-noise, noise + 1, size=(height, width, 3))
    return np.clip(base + jitter, 0, 255).astype(np.uint8)


def encode(pil_image: Image.Image, fmt: str = "JPEG", quality: int = 92) -> bytes:
    buffer = io.BytesIO()
    if fmt == "JPEG":
        pil_image.convert("RGB").save(buffer, format=fmt, quality=quality)
    else:
        pil_image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_photo(seed: int = 1,
               fmt: str = "JPEG",
               file_name: Optional[str] = None,
               width: int = 800,
               height: int = 600,
               quality: int = 92) -> ImageBytes:
    """Encode a photo-like synthetic image."""
    pil_image = Image.fromarray(photo_like_array(seed, width, height))
    extension = "jpg" if fmt == "JPEG" else fmt.lower()
    return ImageBytes(
        data=encode(pil_image, fmt, quality),
        mime_type=_MIME_TYPES[fmt],
        file_name=file_name or f"photo_{seed}.{extension}",
    )


def make_solid(color=(128, 128, 128),
               fmt: str = "PNG",
               file_name: str = "solid.png",
               width: int = 400,
               height: int = 300) -> ImageBytes:
    """Encode a single-color image."""
    pil_image = Image.new("RGB", (width, height), color)
    return ImageBytes(data=encode(pil_image, fmt), mime_type=_MIME_TYPES[fmt], file_name=file_name)


def reencode(image: ImageBytes, fmt: str = "PNG", quality: int = 92, file_name: Optional[str] = None) -> ImageBytes:
    """Decode an encoded image and save it again in another format or quality."""
    with Image.open(io.BytesIO(image.data)) as pil_image:
        pil_image.load()
        data = encode(pil_image, fmt, quality)
    extension = "jpg" if fmt == "JPEG" else fmt.lower()
    return ImageBytes(
        data=data,
        mime_type=_MIME_TYPES[fmt],
        file_name=file_name or f"reencoded.{extension}",
    )


def crop_margin(image: ImageBytes, fraction: float = 0.01, fmt: str = "JPEG") -> ImageBytes:
    """Trim a small margin from every edge and re-encode."""
    with Image.open(io.BytesIO(image.data)) as pil_image:
        pil_image.load()
        width, height = pil_image.size
        dx, dy = int(width * fraction), int(height * fraction)
        cropped = pil_image.crop((dx, dy, width - dx, height - dy))
        data = encode(cropped, fmt)
    return ImageBytes(data=data, mime_type=_MIME_TYPES[fmt], file_name="cropped.jpg")


def pad_bytes(image: ImageBytes, size: int) -> ImageBytes:
    """Append trailing bytes after the image data until it reaches size bytes."""
    padding = max(0, size - image.byte_length)
    return ImageBytes(data=image.data + b"\0" * padding, mime_type=image.mime_type, file_name=image.file_name)


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))


def make_oversized_png(width: int = 30_000,
                       height: int = 20_000,
                       size: int = 60_000,
                       file_name: str = "IMG_big.png") -> ImageBytes:
    """A PNG whose header declares huge dimensions, followed by an IDAT of filler."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    data = (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", b"\0" * size)
        + _png_chunk(b"IEND", b"")
    )
    return ImageBytes(data=data, mime_type="image/png", file_name=file_name)
