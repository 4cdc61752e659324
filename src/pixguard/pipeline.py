"""
Upload pipeline: classify, hash, check for duplicates and record accepted images.

The pipeline owns no storage. Records come from an ImageRecordStore supplied by
the caller; InMemoryRecordStore is enough for tools and tests.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .classifier.model import ClassificationVerdict, HeuristicImageClassifier, check_upload_metadata
from .classifier.remote import ImageClassifierDelegate
from .config import Settings
from .dedup.model import (
    DuplicateDetectionService,
    DuplicateType,
    DuplicateVerdict,
    ImageRecord,
    build_record,
)
from .errors import ImageDecodeError, InvalidInputError
from .imaging import ImageBytes
from .logging import get_logger

logger = get_logger(__name__)


class ImageRecordStore(Protocol):
    def records_for(self, owner_id: str) -> Sequence[ImageRecord]:
        ...

    def add(self, record: ImageRecord) -> None:
        ...


class InMemoryRecordStore:
    """Thread-safe record store keyed by owner, preserving insertion order."""

    def __init__(self, records: Iterable[ImageRecord] = ()):
        self._lock = threading.Lock()
        self._records: Dict[str, List[ImageRecord]] = defaultdict(list)
        for record in records:
            self._records[record.owner_id].append(record)

    def records_for(self, owner_id: str) -> List[ImageRecord]:
        with self._lock:
            return list(self._records.get(owner_id, ()))

    def add(self, record: ImageRecord) -> None:
        with self._lock:
            self._records[record.owner_id].append(record)

    def all_records(self) -> List[ImageRecord]:
        with self._lock:
            return [record for records in self._records.values() for record in records]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(records) for records in self._records.values())


class UploadStatus(Enum):
    ACCEPTED = "accepted"
    NOT_VEHICLE = "not-vehicle"
    EXACT_DUPLICATE = "exact-duplicate"
    SIMILAR_DUPLICATE = "similar-duplicate"
    INVALID_IMAGE = "invalid-image"
    UNSUPPORTED_FORMAT = "unsupported-format"


_MESSAGES = {
    UploadStatus.ACCEPTED: "Photo accepted.",
    UploadStatus.NOT_VEHICLE: "This doesn't look like a vehicle photo.",
    UploadStatus.EXACT_DUPLICATE: "You've already uploaded this photo.",
    UploadStatus.SIMILAR_DUPLICATE: "You've already uploaded a very similar photo.",
    UploadStatus.INVALID_IMAGE: "This file could not be read as an image.",
    UploadStatus.UNSUPPORTED_FORMAT: "Only JPG, PNG and WebP photos can be uploaded.",
}


@dataclass(frozen=True)
class UploadOutcome:
    """Result of running one upload through the pipeline."""
    status: UploadStatus
    file_name: str
    classification: Optional[ClassificationVerdict] = None
    duplicate: Optional[DuplicateVerdict] = None
    record: Optional[ImageRecord] = None
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is UploadStatus.ACCEPTED

    @property
    def message(self) -> str:
        """User-facing message, distinct per rejection cause."""
        return _MESSAGES[self.status]


class UploadPipeline:
    """
    Runs uploads through the metadata gate, classifier and duplicate check.

    Accepted images are committed to the store immediately so later checks for
    the same owner see them.
    """

    def __init__(self,
                 store: ImageRecordStore,
                 settings: Optional[Settings] = None,
                 delegate: Optional[ImageClassifierDelegate] = None,
                 max_workers: int = 4):
        self.settings = settings or Settings()
        self.store = store
        self.classifier = HeuristicImageClassifier(self.settings, delegate)
        self.detector = DuplicateDetectionService.from_settings(self.settings)
        self.max_workers = max_workers

    def process(self, owner_id: str, listing_ref: str, image: ImageBytes) -> UploadOutcome:
        """Evaluate one upload and record it when accepted."""
        outcome = self.evaluate(owner_id, listing_ref, image, self.store.records_for(owner_id))
        if outcome.record is not None:
            self.store.add(outcome.record)
        return outcome

    def evaluate(self,
                 owner_id: str,
                 listing_ref: str,
                 image: ImageBytes,
                 prior_records: Sequence[ImageRecord]) -> UploadOutcome:
        """
        Evaluate one upload against the given records without committing anything.

        The returned outcome carries the record to persist when the upload is accepted.
        """
        file_name = image.file_name

        if self.settings.enforce_upload_metadata:
            rejection = check_upload_metadata(image, file_name, self.settings)
            if rejection is not None:
                return UploadOutcome(UploadStatus.UNSUPPORTED_FORMAT, file_name, classification=rejection)

        classification = self.classifier.classify(image, file_name)
        if not classification.accepted:
            return UploadOutcome(UploadStatus.NOT_VEHICLE, file_name, classification=classification)

        try:
            duplicate = self.detector.check(owner_id, image, prior_records)
        except (InvalidInputError, ImageDecodeError) as exc:
            logger.warning(f"Rejected unreadable upload {file_name} for owner {owner_id}: {exc}")
            return UploadOutcome(
                UploadStatus.INVALID_IMAGE, file_name, classification=classification, error=str(exc),
            )

        if duplicate.duplicate_type is DuplicateType.EXACT:
            status = UploadStatus.EXACT_DUPLICATE
        elif duplicate.duplicate_type is DuplicateType.SIMILAR:
            status = UploadStatus.SIMILAR_DUPLICATE
        else:
            record = build_record(owner_id, listing_ref, duplicate)
            logger.info(f"Accepted {file_name} for owner {owner_id} ({duplicate.content_hash[:12]})")
            return UploadOutcome(
                UploadStatus.ACCEPTED, file_name,
                classification=classification, duplicate=duplicate, record=record,
            )

        return UploadOutcome(status, file_name, classification=classification, duplicate=duplicate)

    def process_batch(self,
                      owner_id: str,
                      listing_ref: str,
                      images: Sequence[ImageBytes],
                      parallel: bool = False) -> List[UploadOutcome]:
        """
        Process a multi-image upload.

        Sequential mode commits each accepted image before checking the next, so
        near-duplicates inside the batch are caught. Parallel mode checks every
        image against the records as they stood before the batch and commits the
        accepted ones in input order; near-duplicates within the batch are not
        detected in that mode.
        """
        if not parallel:
            outcomes = [self.process(owner_id, listing_ref, image) for image in images]
        else:
            snapshot = self.store.records_for(owner_id)
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(
                    lambda image: self.evaluate(owner_id, listing_ref, image, snapshot),
                    images,
                ))
            for outcome in outcomes:
                if outcome.record is not None:
                    self.store.add(outcome.record)

        accepted = sum(1 for outcome in outcomes if outcome.accepted)
        logger.info(f"Batch for owner {owner_id}: {accepted}/{len(outcomes)} images accepted")
        return outcomes
