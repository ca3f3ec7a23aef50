"""
Compiled calendar model: resolved field sets, concrete occurrences, and the
diagnostics produced while compiling them.

These types are produced by the runtime layer and consumed by the publisher.
All of them are immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Mapping

from wc_compiler.domain.documents import CalendarMeta, User, World
from wc_compiler.domain.types import ConfirmationStatus, Platform, Severity
from wc_compiler.infra.exceptions import CompilerError


@dataclass(frozen=True)
class ResolvedFieldSet:
    """The fully merged, day- and language-specific view of an event."""

    name: str
    timezone: str
    start: time
    duration: timedelta
    poster: str | None = None
    description: str | None = None
    web: str | None = None
    discord: str | None = None
    twitter: str | None = None
    group: str | None = None
    hashtag: str | None = None
    platforms: tuple[Platform, ...] = (Platform.PC,)
    join: tuple[User, ...] = ()
    world: World | None = None
    weeks: frozenset[int] | None = None


@dataclass(frozen=True)
class CompileWindow:
    """Inclusive range of civil dates to generate occurrences for."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before window start {self.start}")


@dataclass(frozen=True)
class Occurrence:
    """One concrete calendar instance of an event."""

    event: str
    date: date
    status: ConfirmationStatus
    start: datetime  # aware, UTC
    end: datetime  # aware, UTC
    fields: ResolvedFieldSet  # language-neutral view
    languages: Mapping[str, ResolvedFieldSet] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.event}/{self.date.isoformat()}"

    def view(self, language: str | None) -> ResolvedFieldSet:
        if language is None:
            return self.fields
        return self.languages.get(language, self.fields)


@dataclass(frozen=True)
class CompiledCalendar:
    """Aggregate compile output, ready for publication."""

    meta: CalendarMeta
    window: CompileWindow
    languages: tuple[str, ...] = ()
    occurrences: tuple[Occurrence, ...] = ()

    def poster_names(self) -> list[str]:
        """Every poster source referenced by any occurrence view, sorted."""
        names = set()
        for occurrence in self.occurrences:
            for view in (occurrence.fields, *occurrence.languages.values()):
                if view.poster is not None:
                    names.add(view.poster)
        return sorted(names)


@dataclass(frozen=True)
class Diagnostic:
    """A problem found while compiling, attributed to its source."""

    severity: Severity
    kind: str
    message: str
    source: str | None = None
    field: str | None = None
    context: str | None = None

    @classmethod
    def from_error(cls, error: CompilerError, severity: Severity = Severity.ERROR) -> Diagnostic:
        return cls(
            severity=severity,
            kind=error.kind,
            message=error.message,
            source=error.source,
            field=error.field,
            context=error.context,
        )

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def render(self) -> str:
        """Format as ``source: field [context]: severity: message``."""
        location = self.source or "<input>"
        if self.field:
            location += f": {self.field}"
        if self.context:
            location += f" [{self.context}]"
        return f"{location}: {self.severity.value}: {self.message} ({self.kind})"
