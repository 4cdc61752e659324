"""Owner-scoped duplicate detection against previously accepted images."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from ..imaging import ImageInput
from ..logging import get_logger
from .distance import DEFAULT_SIMILARITY_THRESHOLD, SimilarityComparator
from .hash import DEFAULT_GRID_SIZE, ContentHasher, PerceptualFingerprinter

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ImageRecord:
    """Persisted association between an owner's accepted image and its hashes."""
    owner_id: str
    listing_ref: str
    content_hash: str
    perceptual_fingerprint: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "listing_ref": self.listing_ref,
            "content_hash": self.content_hash,
            "perceptual_fingerprint": self.perceptual_fingerprint,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRecord":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            owner_id=str(data["owner_id"]),
            listing_ref=str(data["listing_ref"]),
            content_hash=data["content_hash"],
            perceptual_fingerprint=data.get("perceptual_fingerprint"),
            created_at=created_at or _utcnow(),
        )


class DuplicateType(Enum):
    EXACT = "exact"
    SIMILAR = "similar"
    NONE = "none"


@dataclass(frozen=True)
class DuplicateVerdict:
    """Result of a duplicate check, carrying the hashes computed along the way."""
    is_duplicate: bool
    duplicate_type: DuplicateType
    content_hash: str
    matched_record: Optional[ImageRecord] = None
    perceptual_fingerprint: Optional[str] = None  # None when the exact path matched
    similarity: Optional[float] = None


class DuplicateDetectionService:
    """
    Detects exact and near-identical resubmissions of an owner's own images.

    Detection strategy:
    1. Exact match on the SHA-256 content hash (authoritative)
    2. On a miss, compute the perceptual fingerprint and report the first prior
       record whose fingerprint agrees at or above the similarity threshold

    Only records owned by the requesting owner are considered. Two sellers may
    legitimately post visually similar cars.
    """

    def __init__(self,
                 grid_size: int = DEFAULT_GRID_SIZE,
                 similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
                 hasher: Optional[ContentHasher] = None,
                 fingerprinter: Optional[PerceptualFingerprinter] = None,
                 comparator: Optional[SimilarityComparator] = None):
        self.hasher = hasher or ContentHasher()
        self.fingerprinter = fingerprinter or PerceptualFingerprinter(grid_size)
        self.comparator = comparator or SimilarityComparator(similarity_threshold)

    @classmethod
    def from_settings(cls, settings) -> "DuplicateDetectionService":
        return cls(
            grid_size=settings.grid_size,
            similarity_threshold=settings.similarity_threshold,
        )

    def check(self,
              owner_id: str,
              image: ImageInput,
              prior_records: Iterable[ImageRecord]) -> DuplicateVerdict:
        """
        Check an image against the owner's previously accepted records.

        Args:
            owner_id: Requesting owner
            image: Upload payload
            prior_records: The owner's existing records, in the order to report matches

        Returns:
            DuplicateVerdict with the matched record when a duplicate is found

        Raises:
            InvalidInputError: If the payload is empty
            ImageDecodeError: If the payload is needed for fingerprinting and cannot be decoded
            LengthMismatchError: If a stored fingerprint was produced under another grid size
        """
        content_hash = self.hasher.hash(image)
        records = self._owned_records(owner_id, prior_records)

        for record in records:
            if record.content_hash == content_hash:
                logger.info(
                    f"Exact duplicate for owner {owner_id}: matches listing {record.listing_ref}"
                )
                return DuplicateVerdict(
                    is_duplicate=True,
                    duplicate_type=DuplicateType.EXACT,
                    content_hash=content_hash,
                    matched_record=record,
                    similarity=1.0,
                )

        fingerprint = self.fingerprinter.fingerprint(image)

        for record in records:
            if not record.perceptual_fingerprint:
                continue
            score = self.comparator.similarity(fingerprint, record.perceptual_fingerprint)
            if score >= self.comparator.threshold:
                logger.info(
                    f"Similar duplicate for owner {owner_id}: matches listing "
                    f"{record.listing_ref} (similarity {score:.3f})"
                )
                return DuplicateVerdict(
                    is_duplicate=True,
                    duplicate_type=DuplicateType.SIMILAR,
                    content_hash=content_hash,
                    matched_record=record,
                    perceptual_fingerprint=fingerprint,
                    similarity=score,
                )

        logger.debug(f"No duplicate for owner {owner_id} among {len(records)} records")
        return DuplicateVerdict(
            is_duplicate=False,
            duplicate_type=DuplicateType.NONE,
            content_hash=content_hash,
            perceptual_fingerprint=fingerprint,
        )

    def _owned_records(self, owner_id: str, prior_records: Iterable[ImageRecord]) -> list[ImageRecord]:
        owned = []
        for record in prior_records:
            if record.owner_id != owner_id:
                logger.debug(
                    f"Ignoring record of owner {record.owner_id} while checking owner {owner_id}"
                )
                continue
            owned.append(record)
        return owned


def build_record(owner_id: str,
                 listing_ref: str,
                 verdict: DuplicateVerdict,
                 created_at: Optional[datetime] = None) -> ImageRecord:
    """
    Build the record a caller must persist for an accepted, non-duplicate image.

    Raises:
        ValueError: If the verdict reports a duplicate
    """
    if verdict.is_duplicate:
        raise ValueError(
            f"Refusing to record a {verdict.duplicate_type.value} duplicate for owner {owner_id}"
        )
    return ImageRecord(
        owner_id=owner_id,
        listing_ref=listing_ref,
        content_hash=verdict.content_hash,
        perceptual_fingerprint=verdict.perceptual_fingerprint,
        created_at=created_at or _utcnow(),
    )
