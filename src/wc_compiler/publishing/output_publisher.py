"""
Output publisher.

Two steps, kept apart so the first can be tested without a filesystem:

``plan_publication`` (pure) assigns every referenced poster its published
filename from its content hash, reusing the previous manifest's name for
known content, renders the output documents, and works out which
previously published posters are stale.

``OutputPublisher.apply`` writes the plan: posters first, then each
document, then the manifest, each atomically (temporary file in the same
directory, then ``os.replace``). Stale posters are deleted only after
everything else is in place, so published documents never reference a
missing poster.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import structlog

from wc_compiler.catalog.input_library import PosterSource
from wc_compiler.domain.calendar import CompiledCalendar
from wc_compiler.infra.exceptions import FileSystemError
from wc_compiler.publishing.calendar_document import (
    CALENDAR_FILE,
    POSTER_DIR,
    render_documents,
)
from wc_compiler.publishing.manifest import (
    MANIFEST_FILE,
    PosterManifest,
    content_hash,
    poster_filename,
)

_log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PosterCopy:
    filename: str
    content: bytes


@dataclass(frozen=True)
class PublicationPlan:
    """Everything one publication will write and delete."""

    documents: Mapping[str, bytes]
    manifest: PosterManifest
    copies: tuple[PosterCopy, ...] = ()
    stale: tuple[str, ...] = ()


@dataclass
class PublishSummary:
    documents: list[str] = field(default_factory=list)
    copied: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


def plan_publication(
    calendar: CompiledCalendar,
    posters: Mapping[str, PosterSource],
    previous_manifest: PosterManifest,
) -> PublicationPlan:
    """Assign poster filenames and render documents. No I/O."""
    poster_files: dict[str, str] = {}
    published: dict[str, str] = {}
    contents: dict[str, bytes] = {}

    for name in calendar.poster_names():
        source = posters[name]
        digest = content_hash(source.content)
        filename = (
            published.get(digest)
            or previous_manifest.filename_for(digest)
            or poster_filename(digest, source.extension)
        )
        published[digest] = filename
        contents.setdefault(filename, source.content)
        poster_files[name] = filename

    manifest = PosterManifest(posters=dict(sorted(published.items())))
    return PublicationPlan(
        documents=render_documents(calendar, poster_files),
        manifest=manifest,
        copies=tuple(PosterCopy(name, content) for name, content in sorted(contents.items())),
        stale=tuple(sorted(previous_manifest.filenames() - manifest.filenames())),
    )


def _atomic_write(path: Path, content: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class OutputPublisher:
    """Owns one output directory for the duration of a publication."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / MANIFEST_FILE

    @property
    def poster_dir(self) -> Path:
        return self.output_dir / POSTER_DIR

    def load_manifest(self) -> PosterManifest:
        """Read the previous run's manifest; an absent one is empty."""
        try:
            text = self.manifest_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return PosterManifest()
        except (OSError, UnicodeDecodeError) as e:
            raise FileSystemError(f"Cannot read manifest: {e}", source=MANIFEST_FILE) from e
        return PosterManifest.from_json(text)

    def apply(self, plan: PublicationPlan) -> PublishSummary:
        summary = PublishSummary()
        try:
            self.poster_dir.mkdir(parents=True, exist_ok=True)

            for copy in plan.copies:
                target = self.poster_dir / copy.filename
                if target.is_file():
                    continue
                _atomic_write(target, copy.content)
                summary.copied.append(copy.filename)

            for name, content in sorted(plan.documents.items()):
                _atomic_write(self.output_dir / name, content)
                summary.documents.append(name)
            _atomic_write(self.manifest_path, plan.manifest.to_json().encode("utf-8"))

            for filename in plan.stale:
                (self.poster_dir / filename).unlink(missing_ok=True)
                summary.removed.append(filename)
            for path in self._stale_documents(plan):
                path.unlink()
                summary.removed.append(path.name)
        except OSError as e:
            raise FileSystemError(f"Cannot publish to {str(self.output_dir)!r}: {e}") from e

        _log.info(
            "calendar_published",
            output_dir=str(self.output_dir),
            documents=len(summary.documents),
            posters_copied=len(summary.copied),
            posters_removed=len(plan.stale),
        )
        return summary

    def _stale_documents(self, plan: PublicationPlan) -> list[Path]:
        """Language projections from an earlier run whose language is gone."""
        stem = Path(CALENDAR_FILE).stem
        return [
            path
            for path in sorted(self.output_dir.glob(f"{stem}.*.json"))
            if path.name not in plan.documents
        ]
