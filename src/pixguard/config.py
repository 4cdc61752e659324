from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Optional, Tuple

# Filename tokens that short-circuit the structural checks.
DEFAULT_VEHICLE_KEYWORDS: Tuple[str, ...] = (
    "car", "auto", "vehicle", "araba", "otomobil", "araç",
)

# Filename tokens that mark obviously unrelated uploads.
DEFAULT_PROHIBITED_KEYWORDS: Tuple[str, ...] = (
    "person", "people", "face", "human", "kişi", "insan", "yüz",
    "food", "yemek", "meal", "restaurant",
    "animal", "hayvan", "pet", "dog", "köpek", "kedi",
    "building", "house", "bina", "architecture",
    "nature", "landscape", "doğa", "manzara",
    "screenshot", "ekran", "screen",
)

DEFAULT_ALLOWED_EXTENSIONS: Tuple[str, ...] = ("jpg", "jpeg", "png", "webp")


@dataclass
class Settings:
    # Changing grid_size invalidates every stored fingerprint.
    grid_size: int = 8
    similarity_threshold: float = 0.90
    min_byte_size: int = 50_000
    min_aspect_ratio: float = 0.5
    max_aspect_ratio: float = 3.0
    min_color_variance: float = 1000.0
    sample_stride: int = 100
    vehicle_keywords: Tuple[str, ...] = DEFAULT_VEHICLE_KEYWORDS
    prohibited_keywords: Tuple[str, ...] = DEFAULT_PROHIBITED_KEYWORDS
    allowed_extensions: Tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    reject_prohibited_names: bool = False
    enforce_upload_metadata: bool = True
    remote_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.grid_size < 2:
            raise ValueError(f"grid_size must be at least 2, got {self.grid_size}")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}"
            )
        if self.min_byte_size < 0:
            raise ValueError(f"min_byte_size must be non-negative, got {self.min_byte_size}")
        if self.min_aspect_ratio <= 0 or self.min_aspect_ratio > self.max_aspect_ratio:
            raise ValueError(
                f"Invalid aspect ratio bounds [{self.min_aspect_ratio}, {self.max_aspect_ratio}]"
            )
        if self.min_color_variance < 0:
            raise ValueError(
                f"min_color_variance must be non-negative, got {self.min_color_variance}"
            )
        if self.sample_stride < 1:
            raise ValueError(f"sample_stride must be at least 1, got {self.sample_stride}")
        if self.remote_timeout <= 0:
            raise ValueError(f"remote_timeout must be positive, got {self.remote_timeout}")

        self.vehicle_keywords = tuple(k.lower() for k in self.vehicle_keywords)
        self.prohibited_keywords = tuple(k.lower() for k in self.prohibited_keywords)
        self.allowed_extensions = tuple(e.lower().lstrip(".") for e in self.allowed_extensions)

    @classmethod
    def from_env(cls, prefix: str = "PIXGUARD_", environ: Optional[dict] = None) -> "Settings":
        """
        Build settings from environment variables.

        Numeric and boolean knobs can be overridden as ``<prefix><FIELD_NAME>``,
        e.g. ``PIXGUARD_SIMILARITY_THRESHOLD=0.95``. Keyword lists keep their defaults.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            default = getattr(cls, f.name)
            if isinstance(default, bool):
                overrides[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            elif isinstance(default, int):
                overrides[f.name] = int(raw)
            elif isinstance(default, float):
                overrides[f.name] = float(raw)
        return cls(**overrides)
