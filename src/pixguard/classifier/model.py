"""
Rule-ordered classifier deciding whether an upload is plausibly a vehicle photo.

Local heuristics run first and are cheap enough to run on every upload. An
optional remote delegate gives a second opinion once the structural checks
pass; if it cannot be reached the classifier fails closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import Settings
from ..errors import ImageDecodeError, InvalidInputError, RemoteClassifierUnavailable
from ..imaging import ImageBytes
from ..logging import get_logger
from .heuristics import (
    aspect_ratio,
    color_variance,
    find_keyword,
    find_name_token,
    upload_metadata_problem,
)
from .remote import ImageClassifierDelegate

logger = get_logger(__name__)


class Reason(Enum):
    """Why a classification verdict was reached."""
    # Accept reasons
    FILENAME_KEYWORD = "filename-keyword"
    STRUCTURAL_CHECKS = "structural-checks"
    REMOTE_CONFIRMED = "remote-confirmed"
    # Reject reasons
    TOO_SMALL = "too-small"
    PROHIBITED_NAME = "prohibited-name"
    UNSUPPORTED_FORMAT = "unsupported-format"
    UNDECODABLE = "undecodable"
    ASPECT_RATIO = "aspect-ratio"
    LOW_COLOR_VARIANCE = "low-color-variance"
    REMOTE_REJECTED = "remote-rejected"
    REMOTE_UNAVAILABLE = "remote-unavailable"


@dataclass(frozen=True)
class ClassificationVerdict:
    """Outcome of classifying one upload."""
    accepted: bool
    reason: Reason
    detail: str = ""
    signals: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def accept(cls, reason: Reason, detail: str = "", **signals: Any) -> "ClassificationVerdict":
        return cls(accepted=True, reason=reason, detail=detail, signals=signals)

    @classmethod
    def reject(cls, reason: Reason, detail: str = "", **signals: Any) -> "ClassificationVerdict":
        return cls(accepted=False, reason=reason, detail=detail, signals=signals)


def check_upload_metadata(image: ImageBytes,
                          file_name: str,
                          settings: Optional[Settings] = None) -> Optional[ClassificationVerdict]:
    """
    Gate uploads on filename extension and declared MIME type.

    Returns:
        A rejecting verdict, or None when the metadata is acceptable
    """
    settings = settings or Settings()
    problem = upload_metadata_problem(image, file_name, settings.allowed_extensions)
    if problem is None:
        return None
    logger.info(f"Rejected {file_name}: {problem}")
    return ClassificationVerdict.reject(Reason.UNSUPPORTED_FORMAT, problem)


class HeuristicImageClassifier:
    """
    Accept/reject classifier for vehicle listing photos.

    Rules, in order (the first decisive rule wins):
    1. Size floor: files under min_byte_size are rejected
    2. Vehicle filename tokens accept without further checks
    3. Prohibited filename words reject (off by default)
    4. Undecodable images are rejected
    5. Aspect ratio outside [min_aspect_ratio, max_aspect_ratio] rejects
    6. Sampled color variance under min_color_variance rejects
    7. The remote delegate, if any, has the final say; without one the
       upload is accepted
    """

    def __init__(self,
                 settings: Optional[Settings] = None,
                 delegate: Optional[ImageClassifierDelegate] = None):
        self.settings = settings or Settings()
        self.delegate = delegate

        logger.info(
            f"HeuristicImageClassifier initialized: remote={'enabled' if delegate else 'disabled'}"
        )

    def classify(self, image: ImageBytes, file_name: Optional[str] = None) -> ClassificationVerdict:
        """
        Classify an upload.

        Args:
            image: Upload payload
            file_name: Original filename; defaults to image.file_name

        Returns:
            ClassificationVerdict; decode failures are reported as rejections
        """
        settings = self.settings
        file_name = file_name if file_name is not None else image.file_name
        byte_length = image.byte_length

        if byte_length < settings.min_byte_size:
            return self._log(file_name, ClassificationVerdict.reject(
                Reason.TOO_SMALL,
                f"{byte_length} bytes is below the {settings.min_byte_size} byte floor",
                byte_length=byte_length,
            ))

        token = find_keyword(file_name, settings.vehicle_keywords)
        if token:
            return self._log(file_name, ClassificationVerdict.accept(
                Reason.FILENAME_KEYWORD,
                f"filename contains '{token}'",
                byte_length=byte_length,
            ))

        if settings.reject_prohibited_names:
            token = find_name_token(file_name, settings.prohibited_keywords)
            if token:
                return self._log(file_name, ClassificationVerdict.reject(
                    Reason.PROHIBITED_NAME,
                    f"filename contains the word '{token}'",
                    byte_length=byte_length,
                ))

        try:
            ratio = aspect_ratio(image)
        except (ImageDecodeError, InvalidInputError) as exc:
            return self._log(file_name, ClassificationVerdict.reject(
                Reason.UNDECODABLE, str(exc), byte_length=byte_length,
            ))

        if not settings.min_aspect_ratio <= ratio <= settings.max_aspect_ratio:
            return self._log(file_name, ClassificationVerdict.reject(
                Reason.ASPECT_RATIO,
                f"aspect ratio {ratio:.2f} outside "
                f"[{settings.min_aspect_ratio}, {settings.max_aspect_ratio}]",
                byte_length=byte_length,
                aspect_ratio=ratio,
            ))

        try:
            variance = color_variance(image, settings.sample_stride)
        except (ImageDecodeError, InvalidInputError) as exc:
            return self._log(file_name, ClassificationVerdict.reject(
                Reason.UNDECODABLE, str(exc), byte_length=byte_length, aspect_ratio=ratio,
            ))

        signals = {"byte_length": byte_length, "aspect_ratio": ratio, "color_variance": variance}

        if variance < settings.min_color_variance:
            return self._log(file_name, ClassificationVerdict.reject(
                Reason.LOW_COLOR_VARIANCE,
                f"color variance {variance:.1f} below {settings.min_color_variance}",
                **signals,
            ))

        if self.delegate is None:
            return self._log(file_name, ClassificationVerdict.accept(
                Reason.STRUCTURAL_CHECKS, **signals,
            ))

        return self._log(file_name, self._ask_delegate(image, signals))

    def _ask_delegate(self, image: ImageBytes, signals: Dict[str, Any]) -> ClassificationVerdict:
        try:
            is_vehicle = self.delegate.is_vehicle_image(image)
        except RemoteClassifierUnavailable as exc:
            logger.warning(f"Remote classifier unavailable, rejecting upload: {exc}")
            return ClassificationVerdict.reject(Reason.REMOTE_UNAVAILABLE, str(exc), **signals)

        if is_vehicle:
            return ClassificationVerdict.accept(Reason.REMOTE_CONFIRMED, **signals)
        return ClassificationVerdict.reject(
            Reason.REMOTE_REJECTED, "remote classifier did not recognise a vehicle", **signals,
        )

    def _log(self, file_name: str, verdict: ClassificationVerdict) -> ClassificationVerdict:
        outcome = "accepted" if verdict.accepted else "rejected"
        logger.debug(f"Classification for {file_name or 'upload'}: {outcome} ({verdict.reason.value})")
        return verdict

    def classify_batch(
        self, items: Iterable[Tuple[ImageBytes, Optional[str]]]
    ) -> List[ClassificationVerdict]:
        """Classify (image, file_name) pairs in order."""
        results = [self.classify(image, file_name) for image, file_name in items]
        accepted = sum(1 for r in results if r.accepted)
        logger.info(f"Batch classification complete: {accepted}/{len(results)} accepted")
        return results
