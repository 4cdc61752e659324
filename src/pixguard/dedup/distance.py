"""Similarity metrics for perceptual fingerprint comparison."""

import numpy as np
import imagehash

from ..errors import InvalidInputError, LengthMismatchError

DEFAULT_SIMILARITY_THRESHOLD = 0.90


def fingerprint_to_hash(fingerprint: str) -> imagehash.ImageHash:
    """
    Convert a binary-digit fingerprint string into an ImageHash.

    Raises:
        InvalidInputError: If the string is empty or contains non-binary characters
    """
    if not fingerprint:
        raise InvalidInputError("Fingerprint is empty")
    if set(fingerprint) - {'0', '1'}:
        raise InvalidInputError(f"Fingerprint contains non-binary characters: {fingerprint!r}")
    return imagehash.ImageHash(np.array([c == '1' for c in fingerprint], dtype=bool))


def hamming_distance(a: str, b: str) -> int:
    """
    Count positions where two equal-length fingerprints differ.

    Raises:
        LengthMismatchError: If the fingerprints have different lengths
    """
    if len(a) != len(b):
        raise LengthMismatchError(len(a), len(b))
    return fingerprint_to_hash(a) - fingerprint_to_hash(b)


def similarity(a: str, b: str) -> float:
    """
    Normalized Hamming agreement between two fingerprints.

    Returns:
        Fraction of matching bit positions: 1.0 for identical fingerprints,
        0.0 for complementary ones

    Raises:
        LengthMismatchError: If the fingerprints have different lengths
        InvalidInputError: If either fingerprint is empty or not binary
    """
    distance = hamming_distance(a, b)
    return 1.0 - distance / len(a)


class SimilarityComparator:
    """
    Near-duplicate decision over perceptual fingerprints.

    The threshold is a calibration knob. Raising it reduces false duplicate
    flags but lets more aggressively edited re-uploads through; lowering it
    does the reverse.
    """

    def __init__(self, threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold

    def similarity(self, a: str, b: str) -> float:
        return similarity(a, b)

    def is_similar(self, a: str, b: str) -> bool:
        return similarity(a, b) >= self.threshold
