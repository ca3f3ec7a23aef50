"""
InputLibrary: enumerates an input directory into typed documents and
poster bytes for the compile pipeline.

Usage:
    from wc_compiler.catalog.input_library import InputLibrary
    inputs = InputLibrary("events/").load()
    for diagnostic in inputs.diagnostics:
        print(diagnostic.render())

Layout:
    meta.toml            calendar metadata (required)
    <identity>.toml      one event per file
    <identity>.<ext>     optional poster, ext in webp, jpeg, jpg, png
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

import structlog

from wc_compiler.domain.calendar import Diagnostic
from wc_compiler.domain.documents import CalendarMeta, EventDocument
from wc_compiler.infra.exceptions import (
    AmbiguousPosterFormat,
    CompilerError,
    FileSystemError,
    ParseError,
)
from wc_compiler.runtime.document_parser import parse_event, parse_meta, parse_toml

_log = structlog.get_logger(__name__)

META_FILE = "meta.toml"
EVENT_SUFFIX = ".toml"
# Poster discovery order; the first match is the poster.
POSTER_EXTENSIONS = (".webp", ".jpeg", ".jpg", ".png")


@dataclass(frozen=True)
class PosterSource:
    """An input poster, treated as an opaque blob."""

    name: str  # path relative to the input directory
    extension: str  # lowercase, with leading dot
    content: bytes


@dataclass
class InputSet:
    """Everything read from one input directory."""

    meta: CalendarMeta | None = None
    documents: list[EventDocument] = field(default_factory=list)
    posters: dict[str, PosterSource] = field(default_factory=dict)
    guessed_posters: dict[str, str] = field(default_factory=dict)  # identity -> poster name
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


class InputLibrary:
    """Read-only view of an input directory.

    Problems with individual files become diagnostics; only an unreadable
    input directory raises.
    """

    def __init__(self, input_dir: str | Path) -> None:
        self.input_dir = Path(input_dir)

    def load(self) -> InputSet:
        if not self.input_dir.is_dir():
            raise FileSystemError(f"Input directory {str(self.input_dir)!r} does not exist")

        inputs = InputSet()
        inputs.meta = self._collect(inputs, META_FILE, self._load_meta)

        try:
            entries = sorted(self.input_dir.iterdir())
        except OSError as e:
            raise FileSystemError(f"Cannot list input directory: {e}") from e

        for path in entries:
            if path.suffix != EVENT_SUFFIX or path.name == META_FILE or not path.is_file():
                continue
            document = self._collect(inputs, path.name, partial(self._load_event, path))
            if document is None:
                continue
            inputs.documents.append(document)
            self._collect(inputs, path.name, partial(self._guess_poster, inputs, document))
            for field_path, name in document.poster_references():
                loader = partial(self._load_poster, inputs, name, field_path=field_path)
                self._collect(inputs, path.name, loader)

        _log.info(
            "inputs_loaded",
            input_dir=str(self.input_dir),
            events=len(inputs.documents),
            posters=len(inputs.posters),
            errors=sum(1 for d in inputs.diagnostics if d.is_error),
        )
        return inputs

    @staticmethod
    def _collect(inputs: InputSet, source: str, load):
        try:
            return load()
        except CompilerError as e:
            inputs.diagnostics.append(Diagnostic.from_error(e.attribute(source=source)))
            return None

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"File is not valid UTF-8: {e}", source=path.name) from e
        except OSError as e:
            raise FileSystemError(f"Cannot read {path.name!r}: {e}", source=path.name) from e

    def _load_meta(self) -> CalendarMeta:
        path = self.input_dir / META_FILE
        if not path.is_file():
            raise FileSystemError(f"Calendar metadata file {META_FILE!r} not found")
        return parse_meta(parse_toml(self._read_text(path), source=META_FILE), source=META_FILE)

    def _load_event(self, path: Path) -> EventDocument:
        tree = parse_toml(self._read_text(path), source=path.name)
        return parse_event(tree, identity=path.stem, source=path.name)

    def _guess_poster(self, inputs: InputSet, document: EventDocument) -> None:
        candidates = [
            self.input_dir / f"{document.identity}{extension}"
            for extension in POSTER_EXTENSIONS
            if (self.input_dir / f"{document.identity}{extension}").is_file()
        ]
        if not candidates:
            return
        if len(candidates) > 1:
            raise AmbiguousPosterFormat(candidates[0], candidates[1])
        name = candidates[0].name
        self._load_poster(inputs, name, field_path="poster")
        inputs.guessed_posters[document.identity] = name

    def _load_poster(self, inputs: InputSet, name: str, *, field_path: str) -> None:
        if name in inputs.posters:
            return
        path = self.input_dir / name
        extension = path.suffix.lower()
        if extension not in POSTER_EXTENSIONS:
            raise ParseError(
                f"Poster {name!r} must have one of the extensions: {', '.join(POSTER_EXTENSIONS)}",
                field=field_path,
            )
        root = self.input_dir.resolve()
        if not path.resolve().is_relative_to(root):
            raise ParseError(f"Poster {name!r} is outside the input directory", field=field_path)
        if not path.is_file():
            raise FileSystemError(f"Poster file {name!r} not found", field=field_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise FileSystemError(f"Cannot read poster {name!r}: {e}", field=field_path) from e
        inputs.posters[name] = PosterSource(name=name, extension=extension, content=content)
