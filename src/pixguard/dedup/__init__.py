"""Exact and perceptual duplicate detection for uploaded images."""

from .model import (
    DuplicateDetectionService,
    DuplicateType,
    DuplicateVerdict,
    ImageRecord,
    build_record,
)
from .hash import ContentHasher, PerceptualFingerprinter, compute_content_hash, compute_fingerprint
from .distance import SimilarityComparator, hamming_distance, similarity

__all__ = [
    "DuplicateDetectionService",
    "DuplicateType",
    "DuplicateVerdict",
    "ImageRecord",
    "build_record",
    "ContentHasher",
    "PerceptualFingerprinter",
    "compute_content_hash",
    "compute_fingerprint",
    "SimilarityComparator",
    "hamming_distance",
    "similarity",
]
