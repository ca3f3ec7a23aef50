"""
Source document model: one event's raw override layers and the calendar
metadata, exactly as authored and before any resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterator, Mapping

from wc_compiler.domain.types import Platform, weekday_name


@dataclass(frozen=True)
class User:
    """A person to join in-platform (name shown, id used for linking)."""

    name: str
    id: str


@dataclass(frozen=True)
class World:
    """The in-platform location where an event takes place."""

    name: str
    id: str


@dataclass(frozen=True)
class FieldLayer:
    """
    One layer of optional field values.

    ``None`` means the layer does not set the field. Collection values
    (platforms, join, weeks) are whole values: a layer that sets one
    replaces it entirely.
    """

    name: str | None = None
    poster: str | None = None
    description: str | None = None
    web: str | None = None
    discord: str | None = None
    twitter: str | None = None
    group: str | None = None
    hashtag: str | None = None
    platforms: tuple[Platform, ...] | None = None
    join: tuple[User, ...] | None = None
    world: World | None = None

    # Timing: only allowed in base and weekday layers
    timezone: str | None = None
    start: time | None = None
    duration: timedelta | None = None
    weeks: frozenset[int] | None = None


EMPTY_LAYER = FieldLayer()


@dataclass(frozen=True)
class DateSet:
    """A set of civil dates, or every date when ``everything`` is true."""

    everything: bool = False
    dates: frozenset[date] = frozenset()

    def __contains__(self, day: object) -> bool:
        return self.everything or day in self.dates

    def __iter__(self) -> Iterator[date]:
        return iter(sorted(self.dates))


@dataclass(frozen=True)
class EventDocument:
    """One event's raw, unresolved data."""

    identity: str  # source file stem, doubles as default display name
    source: str  # source file name, used in diagnostics
    base: FieldLayer = EMPTY_LAYER
    days: Mapping[int, FieldLayer] = field(default_factory=dict)
    languages: Mapping[str, FieldLayer] = field(default_factory=dict)
    language_days: Mapping[tuple[int, str], FieldLayer] = field(default_factory=dict)
    start_date: date | None = None
    end_date: date | None = None
    confirmed: DateSet = DateSet()
    canceled: DateSet = DateSet()
    regular: bool = True  # False for an explicitly empty days table

    def layers(self) -> Iterator[tuple[str, FieldLayer]]:
        """Yield every layer with its dotted path, base first."""
        yield "", self.base
        for weekday in sorted(self.days):
            yield f"days.{weekday_name(weekday)}", self.days[weekday]
        for language in sorted(self.languages):
            yield f"languages.{language}", self.languages[language]
        for weekday, language in sorted(self.language_days):
            yield (
                f"languages.{language}.{weekday_name(weekday)}",
                self.language_days[(weekday, language)],
            )

    def poster_references(self) -> list[tuple[str, str]]:
        """Return (field path, poster name) for every explicitly set poster."""
        references = []
        for path, layer in self.layers():
            if layer.poster is not None:
                references.append((f"{path}.poster" if path else "poster", layer.poster))
        return references

    def declared_languages(self) -> frozenset[str]:
        return frozenset(self.languages) | frozenset(lang for _, lang in self.language_days)


@dataclass(frozen=True)
class MetaLanguage:
    """Per-language overrides of the calendar metadata."""

    title: str | None = None
    description: str | None = None
    link: str | None = None


@dataclass(frozen=True)
class CalendarMeta:
    """Calendar-wide title, description, and link."""

    title: str
    description: str | None = None
    link: str | None = None
    languages: Mapping[str, MetaLanguage] = field(default_factory=dict)

    def for_language(self, language: str | None) -> MetaLanguage:
        """Return the metadata as seen in one language, falling back to the base values."""
        override = self.languages.get(language) if language else None
        if override is None:
            return MetaLanguage(self.title, self.description, self.link)
        return MetaLanguage(
            title=override.title if override.title is not None else self.title,
            description=(
                override.description if override.description is not None else self.description
            ),
            link=override.link if override.link is not None else self.link,
        )
