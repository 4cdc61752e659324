"""
Heuristic measurements for vehicle-photo classification.

These helpers measure cheap structural properties of an upload (filename
tokens, dimensions, color spread) without any model inference. The ordering
and thresholds that turn measurements into a verdict live in model.py.
"""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import Iterable, Optional

import numpy as np
from PIL import Image

from ..imaging import ImageBytes, decode_image, image_dimensions
from ..logging import get_logger

logger = get_logger(__name__)

_NAME_SEPARATORS = re.compile(r"[_\-. ]+")


def find_keyword(file_name: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first keyword contained in the filename (case-insensitive), if any."""
    lowered = file_name.lower()
    for keyword in keywords:
        if keyword and keyword in lowered:
            return keyword
    return None


def find_name_token(file_name: str, words: Iterable[str]) -> Optional[str]:
    """
    Return the first word that appears as a whole token of the filename, if any.

    The name is split on underscores, hyphens, dots and spaces, so
    "car_windscreen.jpg" does not match "screen".
    """
    tokens = set(_NAME_SEPARATORS.split(file_name.lower()))
    for word in words:
        if word and word in tokens:
            return word
    return None


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower().lstrip(".")


def upload_metadata_problem(image: ImageBytes,
                            file_name: str,
                            allowed_extensions: Iterable[str]) -> Optional[str]:
    """
    Describe why an upload's declared metadata is unacceptable, or None if it is fine.

    Checks the filename extension against the allowed list and that the declared
    MIME type is an image type. A missing filename or an unset MIME type is not
    held against the upload.
    """
    extension = file_extension(file_name)
    allowed = tuple(allowed_extensions)
    if file_name and extension not in allowed:
        return f"extension '{extension or '(none)'}' not in {', '.join(allowed)}"

    mime_type = (image.mime_type or "").lower()
    if mime_type and mime_type != "application/octet-stream" and not mime_type.startswith("image/"):
        return f"declared MIME type '{image.mime_type}' is not an image type"
    return None


def aspect_ratio(image: ImageBytes) -> float:
    """
    Width over height read from the image header.

    Raises:
        ImageDecodeError: If dimensions cannot be determined
    """
    width, height = image_dimensions(image)
    return width / height


def sampled_color_variance(pil_image: Image.Image, stride: int = 100) -> float:
    """
    Population variance of R+G+B over every stride-th pixel in raster order.

    Near-uniform images (logos, blank scans) score low; photographs of real
    scenes score high.
    """
    if stride < 1:
        raise ValueError(f"stride must be at least 1, got {stride}")
    if pil_image.mode != 'RGB':
        pil_image = pil_image.convert('RGB')

    pixels = np.asarray(pil_image, dtype=np.uint8).reshape(-1, 3)
    samples = pixels[::stride].sum(axis=1, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(samples.var())


def color_variance(image: ImageBytes, stride: int = 100) -> float:
    """
    Decode an upload and measure its sampled color variance.

    Raises:
        InvalidInputError: If the payload is empty
        ImageDecodeError: If the image cannot be decoded
    """
    variance = sampled_color_variance(decode_image(image), stride)
    logger.debug(f"Color variance for {image.file_name or 'upload'}: {variance:.1f}")
    return variance
