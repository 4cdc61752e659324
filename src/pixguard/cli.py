import json
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer

from .config import Settings
from .logging import get_logger
from .imaging import ImageBytes
from .errors import PixguardError
from .classifier.model import HeuristicImageClassifier
from .classifier.remote import HttpImageClassifierDelegate
from .dedup.hash import compute_content_hash, compute_fingerprint
from .dedup.distance import SimilarityComparator
from .dedup.model import ImageRecord
from .pipeline import InMemoryRecordStore, UploadPipeline

app = typer.Typer(help="pixguard - duplicate and non-vehicle upload gate", no_args_is_help=True)

logger = get_logger(__name__)


def _settings(threshold: Optional[float], grid_size: Optional[int]) -> Settings:
    overrides = {}
    if threshold is not None:
        overrides["similarity_threshold"] = threshold
    if grid_size is not None:
        overrides["grid_size"] = grid_size
    return replace(Settings.from_env(), **overrides)


def _load_records(path: Path) -> List[ImageRecord]:
    if not path.exists():
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    return [ImageRecord.from_dict(item) for item in data]


def _write_records(path: Path, records: List[ImageRecord]) -> None:
    path.write_text(
        json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


@app.command("hash")
def hash_files(
    files: List[Path] = typer.Argument(..., exists=True, readable=True, help="Image files to hash"),
    grid_size: Optional[int] = typer.Option(None, help="Fingerprint grid size"),
) -> None:
    """Print the content hash and perceptual fingerprint of each file."""
    settings = _settings(None, grid_size)
    failed = False
    for path in files:
        image = ImageBytes.from_path(path)
        try:
            content_hash = compute_content_hash(image)
            fingerprint = compute_fingerprint(image, settings.grid_size)
        except PixguardError as exc:
            typer.echo(f"{path.name}: error: {exc}", err=True)
            failed = True
            continue
        typer.echo(f"{path.name}\t{content_hash}\t{fingerprint}")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def compare(
    first: Path = typer.Argument(..., exists=True, readable=True),
    second: Path = typer.Argument(..., exists=True, readable=True),
    threshold: Optional[float] = typer.Option(None, help="Similarity threshold in [0, 1]"),
    grid_size: Optional[int] = typer.Option(None, help="Fingerprint grid size"),
) -> None:
    """Compare two images and report their fingerprint similarity."""
    settings = _settings(threshold, grid_size)
    comparator = SimilarityComparator(settings.similarity_threshold)
    try:
        a = compute_fingerprint(ImageBytes.from_path(first), settings.grid_size)
        b = compute_fingerprint(ImageBytes.from_path(second), settings.grid_size)
    except PixguardError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)

    score = comparator.similarity(a, b)
    verdict = "similar" if score >= comparator.threshold else "distinct"
    typer.echo(f"similarity={score:.4f} threshold={comparator.threshold} verdict={verdict}")


@app.command()
def classify(
    files: List[Path] = typer.Argument(..., exists=True, readable=True, help="Image files to classify"),
    remote_url: Optional[str] = typer.Option(None, envvar="PIXGUARD_REMOTE_URL", help="Remote classifier endpoint"),
    remote_key: Optional[str] = typer.Option(None, envvar="PIXGUARD_REMOTE_KEY", help="Remote classifier API key"),
) -> None:
    """Run the vehicle-photo classifier and print each verdict with its signals."""
    settings = Settings.from_env()
    delegate = (
        HttpImageClassifierDelegate(remote_url, remote_key, timeout=settings.remote_timeout)
        if remote_url else None
    )
    classifier = HeuristicImageClassifier(settings, delegate)

    rejected = 0
    for path in files:
        verdict = classifier.classify(ImageBytes.from_path(path), path.name)
        status = "ACCEPT" if verdict.accepted else "REJECT"
        rejected += 0 if verdict.accepted else 1
        typer.echo(f"{status}\t{path.name}\t{verdict.reason.value}\t{verdict.detail}\t{verdict.signals}")

    if rejected:
        raise typer.Exit(code=1)


@app.command()
def check(
    files: List[Path] = typer.Argument(..., exists=True, readable=True, help="Images to upload"),
    owner: str = typer.Option(..., "--owner", help="Uploading owner id"),
    listing: str = typer.Option("cli", "--listing", help="Listing reference for accepted images"),
    records: Path = typer.Option(Path("records.json"), "--records", help="JSON file of prior image records"),
    write: bool = typer.Option(False, "--write/--no-write", help="Write accepted records back to the file"),
    threshold: Optional[float] = typer.Option(None, help="Similarity threshold in [0, 1]"),
    grid_size: Optional[int] = typer.Option(None, help="Fingerprint grid size"),
) -> None:
    """Run images through the full upload pipeline against a record file."""
    settings = _settings(threshold, grid_size)
    store = InMemoryRecordStore(_load_records(records))
    pipeline = UploadPipeline(store, settings)

    logger.info(f"Loaded {len(store)} records from {records}")
    outcomes = pipeline.process_batch(owner, listing, [ImageBytes.from_path(p) for p in files])

    for outcome in outcomes:
        typer.echo(f"{outcome.status.value}\t{outcome.file_name}\t{outcome.message}")

    if write:
        _write_records(records, store.all_records())
        logger.info(f"Wrote {len(store)} records to {records}")

    if not all(outcome.accepted for outcome in outcomes):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
