"""
Poster manifest: the persisted map from poster content hash to published
filename.

The manifest is the only state carried from one compile to the next. It is
what keeps an unchanged poster at the same published filename across
builds, and what tells the publisher which old files are stale.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Mapping

from wc_compiler.infra.exceptions import FileSystemError

MANIFEST_FILE = "manifest.json"
MANIFEST_VERSION = 1


def content_hash(content: bytes) -> str:
    """SHA-256 hex digest of poster bytes."""
    return hashlib.sha256(content).hexdigest()


def poster_filename(digest: str, extension: str) -> str:
    return f"{digest}{extension}"


def _is_plain_filename(name: str) -> bool:
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name


@dataclass(frozen=True)
class PosterManifest:
    """Content hash -> published filename. Never maps two hashes to one filename."""

    posters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        filenames = list(self.posters.values())
        if len(set(filenames)) != len(filenames):
            raise ValueError("Manifest maps more than one content hash to the same filename")

    def filename_for(self, digest: str) -> str | None:
        return self.posters.get(digest)

    def filenames(self) -> frozenset[str]:
        return frozenset(self.posters.values())

    def to_json(self) -> str:
        payload = {"version": MANIFEST_VERSION, "posters": dict(self.posters)}
        return json.dumps(payload, indent=2, sort_keys=True) + "\n"

    @classmethod
    def from_json(cls, text: str, *, source: str = MANIFEST_FILE) -> PosterManifest:
        """Parse a stored manifest. Anything unexpected is a FileSystemError."""
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise FileSystemError(f"Manifest is not valid JSON: {e}", source=source) from e

        if not isinstance(payload, dict) or payload.get("version") != MANIFEST_VERSION:
            raise FileSystemError(
                f"Unsupported manifest format, expected version {MANIFEST_VERSION}", source=source
            )
        posters = payload.get("posters", {})
        if not isinstance(posters, dict) or not all(
            isinstance(k, str) and isinstance(v, str) and _is_plain_filename(v)
            for k, v in posters.items()
        ):
            raise FileSystemError("Manifest posters must map hashes to filenames", source=source)
        try:
            return cls(posters=posters)
        except ValueError as e:
            raise FileSystemError(str(e), source=source) from e
