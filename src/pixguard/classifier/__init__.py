"""
Vehicle-photo classifier

Cheap structural heuristics that gate uploads before any hashing, with an
optional remote second opinion.
"""

from .model import ClassificationVerdict, HeuristicImageClassifier, Reason, check_upload_metadata
from .remote import HttpImageClassifierDelegate, ImageClassifierDelegate

__all__ = [
    "ClassificationVerdict",
    "HeuristicImageClassifier",
    "Reason",
    "check_upload_metadata",
    "HttpImageClassifierDelegate",
    "ImageClassifierDelegate",
]
