"""
Event and metadata document parser.

Types the raw tree delivered by ``tomllib`` into the document model.
Every rejection carries a dotted field path (``days.monday.start``) so the
author can find the offending value. Parsing stops at the first problem in
a document; the pipeline keeps going with the other documents.
"""

from __future__ import annotations

import re
import tomllib
from datetime import date, datetime, time, timedelta
from typing import Any, Callable

from wc_compiler.domain.documents import (
    CalendarMeta,
    DateSet,
    EventDocument,
    FieldLayer,
    MetaLanguage,
    User,
    World,
)
from wc_compiler.domain.types import DOW_INDEX, DOW_NAMES, Platform
from wc_compiler.infra.exceptions import (
    CompilerError,
    InvalidDateOrTime,
    MissingRequiredField,
    ParseError,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LANGUAGE_CODE = re.compile(r"^[a-z]{2}$")
MINUTES_PER_DAY = 24 * 60
MAX_MINUTES = 0xFFFF
ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
MAX_WEEK_OF_MONTH = 5

INFO_KEYS = frozenset(
    {
        "name",
        "poster",
        "description",
        "web",
        "discord",
        "twitter",
        "group",
        "hashtag",
        "platforms",
        "join",
        "world",
    }
)
TIMING_KEYS = frozenset({"timezone", "start", "duration", "weeks"})
DAY_KEYS = INFO_KEYS | TIMING_KEYS
EVENT_KEYS = DAY_KEYS | {"start_date", "end_date", "confirmed", "canceled", "days", "languages"}
META_LANGUAGE_KEYS = frozenset({"title", "description", "link"})
META_KEYS = META_LANGUAGE_KEYS | {"languages"}


def _path(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


# ---------------------------------------------------------------------------
# Scalar parsing
# ---------------------------------------------------------------------------


def _string(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise ParseError(f"Expected a string, got {type(value).__name__}", field=path)
    return value


def _table(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(f"Expected a table, got {type(value).__name__}", field=path)
    return value


def _check_keys(table: dict[str, Any], allowed: frozenset[str], prefix: str) -> None:
    for key in table:
        if key in allowed:
            continue
        if key in TIMING_KEYS:
            raise ParseError(f"Field {key!r} cannot vary by language", field=_path(prefix, key))
        raise ParseError(f"Unknown field {key!r}", field=_path(prefix, key))


def _bounded(minutes: int, path: str) -> int:
    if minutes > MAX_MINUTES:
        raise InvalidDateOrTime(f"Too many minutes: {minutes} (maximum {MAX_MINUTES})", field=path)
    return minutes


def parse_minutes(value: Any, path: str) -> int:
    """
    Parse ``"HH:MM"``, a minute count, or a TOML local time into minutes.

    Values above ``MAX_MINUTES`` are rejected.
    """
    if isinstance(value, bool):
        raise ParseError("Expected a time, got a boolean", field=path)
    if isinstance(value, int):
        if value < 0:
            raise InvalidDateOrTime(f"Minutes must not be negative, got {value}", field=path)
        return _bounded(value, path)
    if isinstance(value, time):
        if value.second or value.microsecond:
            raise InvalidDateOrTime("Time must contain whole minutes", field=path)
        return value.hour * 60 + value.minute
    if isinstance(value, str):
        hours, sep, minutes = value.strip().partition(":")
        if not sep:
            hours, minutes = "0", hours
        if not all(part.isascii() and part.isdecimal() for part in (hours, minutes)):
            raise InvalidDateOrTime(f"Cannot parse time {value!r}", field=path)
        if sep and int(minutes) >= 60:
            raise InvalidDateOrTime(f"Minutes out of range in {value!r}", field=path)
        return _bounded(int(hours) * 60 + int(minutes), path)
    raise ParseError(f"Expected a time, got {type(value).__name__}", field=path)


def parse_start(value: Any, path: str) -> time:
    minutes = parse_minutes(value, path)
    if minutes >= MINUTES_PER_DAY:
        raise InvalidDateOrTime("Time must be less than 24:00", field=path)
    return time(minutes // 60, minutes % 60)


def parse_duration(value: Any, path: str) -> timedelta:
    minutes = parse_minutes(value, path)
    if minutes <= 0:
        raise InvalidDateOrTime("Duration must be positive", field=path)
    return timedelta(minutes=minutes)


def parse_date(value: Any, path: str) -> date:
    """Accept a TOML local date or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        raise InvalidDateOrTime("Date should not have a time", field=path)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not ISO_DATE.fullmatch(value):
            raise InvalidDateOrTime(f"Cannot parse date {value!r}, expected YYYY-MM-DD", field=path)
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise InvalidDateOrTime(f"Cannot parse date {value!r}", field=path) from None
    raise ParseError(f"Expected a date, got {type(value).__name__}", field=path)


def parse_date_set(value: Any, path: str) -> DateSet:
    """``true`` means every date, ``false`` none, a list names explicit dates."""
    if isinstance(value, bool):
        return DateSet(everything=value)
    if isinstance(value, list):
        return DateSet(
            dates=frozenset(parse_date(item, f"{path}[{i}]") for i, item in enumerate(value))
        )
    raise ParseError("Expected a boolean or a list of dates", field=path)


# ---------------------------------------------------------------------------
# Structured values
# ---------------------------------------------------------------------------


def _named(value: Any, path: str) -> tuple[str, str]:
    table = _table(value, path)
    _check_keys(table, frozenset({"name", "id"}), path)
    for key in ("name", "id"):
        if key not in table:
            raise MissingRequiredField(key, field=_path(path, key))
    return _string(table["name"], _path(path, "name")), _string(table["id"], _path(path, "id"))


def _world(value: Any, path: str) -> World:
    return World(*_named(value, path))


def _join(value: Any, path: str) -> tuple[User, ...]:
    if not isinstance(value, list):
        raise ParseError("Expected a list of users", field=path)
    return tuple(User(*_named(item, f"{path}[{i}]")) for i, item in enumerate(value))


def _platforms(value: Any, path: str) -> tuple[Platform, ...]:
    if not isinstance(value, list):
        raise ParseError("Expected a list of platforms", field=path)
    platforms = []
    for i, item in enumerate(value):
        try:
            platform = Platform(_string(item, f"{path}[{i}]"))
        except ValueError:
            choices = ", ".join(p.value for p in Platform)
            raise ParseError(
                f"Unknown platform {item!r}, expected one of: {choices}", field=f"{path}[{i}]"
            ) from None
        if platform not in platforms:
            platforms.append(platform)
    return tuple(platforms)


def _weeks(value: Any, path: str) -> frozenset[int]:
    if not isinstance(value, list) or not value:
        raise ParseError("Expected a non-empty list of weeks", field=path)
    weeks = set()
    for i, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, int):
            raise ParseError("Expected a week number", field=f"{path}[{i}]")
        if not 1 <= item <= MAX_WEEK_OF_MONTH:
            raise ParseError(
                f"Week of month must be between 1 and {MAX_WEEK_OF_MONTH}, got {item}",
                field=f"{path}[{i}]",
            )
        weeks.add(item)
    return frozenset(weeks)


_LAYER_PARSERS: dict[str, Callable[[Any, str], Any]] = {
    "name": _string,
    "poster": _string,
    "description": _string,
    "web": _string,
    "discord": _string,
    "twitter": _string,
    "group": _string,
    "hashtag": _string,
    "platforms": _platforms,
    "join": _join,
    "world": _world,
    "timezone": _string,
    "start": parse_start,
    "duration": parse_duration,
    "weeks": _weeks,
}


def _layer(table: dict[str, Any], prefix: str) -> FieldLayer:
    values = {
        key: _LAYER_PARSERS[key](value, _path(prefix, key))
        for key, value in table.items()
        if key in _LAYER_PARSERS
    }
    return FieldLayer(**values)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def parse_toml(text: str, *, source: str) -> dict[str, Any]:
    """Parse TOML text, turning decoder failures into ParseError."""
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ParseError(f"Invalid TOML: {e}", source=source) from e


def _parse_days(value: Any) -> dict[int, FieldLayer]:
    table = _table(value, "days")
    days = {}
    for key, day in table.items():
        path = _path("days", key)
        if key not in DOW_INDEX:
            raise ParseError(f"Unknown weekday {key!r}", field=path)
        day_table = _table(day, path)
        _check_keys(day_table, DAY_KEYS, path)
        days[DOW_INDEX[key]] = _layer(day_table, path)
    return days


def _parse_languages(
    value: Any,
) -> tuple[dict[str, FieldLayer], dict[tuple[int, str], FieldLayer]]:
    table = _table(value, "languages")
    languages: dict[str, FieldLayer] = {}
    language_days: dict[tuple[int, str], FieldLayer] = {}
    for code, language in table.items():
        path = _path("languages", code)
        if not LANGUAGE_CODE.match(code):
            raise ParseError(
                f"Invalid language code {code!r}, expected two lowercase letters", field=path
            )
        language_table = _table(language, path)
        _check_keys(language_table, INFO_KEYS | frozenset(DOW_NAMES), path)
        languages[code] = _layer(language_table, path)
        for weekday_name in DOW_NAMES:
            if weekday_name not in language_table:
                continue
            day_path = _path(path, weekday_name)
            day_table = _table(language_table[weekday_name], day_path)
            _check_keys(day_table, INFO_KEYS, day_path)
            language_days[(DOW_INDEX[weekday_name], code)] = _layer(day_table, day_path)
    return languages, language_days


def parse_event(tree: dict[str, Any], *, identity: str, source: str) -> EventDocument:
    """
    Type one event document.

    A missing ``days`` table means the event runs daily; an explicitly empty
    one means it has no day pattern and only runs on confirmed dates.
    """
    try:
        _check_keys(tree, EVENT_KEYS, "")
        base = _layer(tree, "")

        days: dict[int, FieldLayer] = {}
        regular = True
        if "days" in tree:
            days = _parse_days(tree["days"])
            regular = bool(days)

        languages: dict[str, FieldLayer] = {}
        language_days: dict[tuple[int, str], FieldLayer] = {}
        if "languages" in tree:
            languages, language_days = _parse_languages(tree["languages"])

        start_date = parse_date(tree["start_date"], "start_date") if "start_date" in tree else None
        end_date = parse_date(tree["end_date"], "end_date") if "end_date" in tree else None
        if start_date and end_date and end_date < start_date:
            raise InvalidDateOrTime(
                f"end_date {end_date} is before start_date {start_date}", field="end_date"
            )

        confirmed = parse_date_set(tree.get("confirmed", False), "confirmed")
        canceled = parse_date_set(tree.get("canceled", False), "canceled")
    except CompilerError as e:
        raise e.attribute(source=source)

    return EventDocument(
        identity=identity,
        source=source,
        base=base,
        days=days,
        languages=languages,
        language_days=language_days,
        start_date=start_date,
        end_date=end_date,
        confirmed=confirmed,
        canceled=canceled,
        regular=regular,
    )


def _meta_language(value: Any, path: str) -> MetaLanguage:
    table = _table(value, path)
    _check_keys(table, META_LANGUAGE_KEYS, path)
    return MetaLanguage(
        **{key: _string(table[key], _path(path, key)) for key in META_LANGUAGE_KEYS if key in table}
    )


def parse_meta(tree: dict[str, Any], *, source: str = "meta.toml") -> CalendarMeta:
    """Type the calendar metadata document. ``title`` is required."""
    try:
        _check_keys(tree, META_KEYS, "")
        if "title" not in tree:
            raise MissingRequiredField("title")
        languages = {}
        for code, value in _table(tree.get("languages", {}), "languages").items():
            path = _path("languages", code)
            if not LANGUAGE_CODE.match(code):
                raise ParseError(
                    f"Invalid language code {code!r}, expected two lowercase letters", field=path
                )
            languages[code] = _meta_language(value, path)
        return CalendarMeta(
            title=_string(tree["title"], "title"),
            description=_string(tree["description"], "description")
            if "description" in tree
            else None,
            link=_string(tree["link"], "link") if "link" in tree else None,
            languages=languages,
        )
    except CompilerError as e:
        raise e.attribute(source=source)
