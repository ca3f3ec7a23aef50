"""
Calendar output documents.

Renders a CompiledCalendar into the JSON documents read by the viewer:

    calendar.json          every occurrence, default view plus all languages
    calendar.<lang>.json   one language's projection

Schema version 1. Keys with no value are omitted. Output is deterministic
(no timestamps, stable ordering) so an unchanged calendar rebuilds to
byte-identical files.
"""

from __future__ import annotations

import json
from typing import Any, Mapping
from urllib.parse import quote

from wc_compiler.domain.calendar import CompiledCalendar, Occurrence, ResolvedFieldSet
from wc_compiler.domain.documents import MetaLanguage
from wc_compiler.runtime.time_normalizer import to_local

SCHEMA_VERSION = 1
CALENDAR_FILE = "calendar.json"
POSTER_DIR = "posters"

# URL component encoding: everything but unreserved characters, !'()* and %
_HASHTAG_SAFE = "!'()*%~"


def calendar_filename(language: str | None = None) -> str:
    return CALENDAR_FILE if language is None else f"calendar.{language}.json"


def render_hashtag(hashtag: str) -> str | dict[str, str]:
    """A plain string when URL-safe, otherwise both display and escaped forms."""
    escaped = quote(hashtag, safe=_HASHTAG_SAFE)
    if escaped == hashtag:
        return hashtag
    return {"display": hashtag, "escaped": escaped}


def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if value is not None and value != [] and value != {}:
        target[key] = value


def render_meta(meta: MetaLanguage) -> dict[str, Any]:
    rendered: dict[str, Any] = {}
    _put(rendered, "title", meta.title)
    _put(rendered, "desc", meta.description)
    _put(rendered, "link", meta.link)
    return rendered


def render_view(view: ResolvedFieldSet, poster_files: Mapping[str, str]) -> dict[str, Any]:
    """Render one resolved field set; ``poster_files`` maps poster source to published name."""
    rendered: dict[str, Any] = {"name": view.name}
    _put(rendered, "desc", view.description)
    _put(rendered, "group", view.group)
    _put(rendered, "platforms", [platform.value for platform in view.platforms])
    if view.hashtag:
        rendered["hashtag"] = render_hashtag(view.hashtag)
    _put(rendered, "web", view.web)
    _put(rendered, "discord", view.discord)
    _put(rendered, "twitter", view.twitter)
    if view.world is not None:
        rendered["world"] = {"name": view.world.name, "id": view.world.id}
    _put(rendered, "join", [{"name": user.name, "id": user.id} for user in view.join])
    if view.poster is not None:
        rendered["poster"] = poster_files[view.poster]
    return rendered


def _render_timing(occurrence: Occurrence) -> dict[str, Any]:
    timezone_id = occurrence.fields.timezone
    return {
        "id": occurrence.id,
        "event": occurrence.event,
        "date": occurrence.date.isoformat(),
        "status": occurrence.status.value,
        "start": to_local(occurrence.start, timezone_id).isoformat(),
        "end": to_local(occurrence.end, timezone_id).isoformat(),
        "tz": timezone_id,
        "duration": int((occurrence.end - occurrence.start).total_seconds() // 60),
    }


def _header(calendar: CompiledCalendar) -> dict[str, Any]:
    return {
        "version": SCHEMA_VERSION,
        "window": {
            "start": calendar.window.start.isoformat(),
            "end": calendar.window.end.isoformat(),
        },
        "posters": f"{POSTER_DIR}/",
        "languages": list(calendar.languages),
    }


def render_calendar(
    calendar: CompiledCalendar, poster_files: Mapping[str, str]
) -> dict[str, Any]:
    """The combined document: default view plus every language view."""
    document = _header(calendar)
    meta = render_meta(calendar.meta.for_language(None))
    _put(
        meta,
        "lang",
        {code: render_meta(calendar.meta.for_language(code)) for code in calendar.languages},
    )
    document["meta"] = meta

    occurrences = []
    for occurrence in calendar.occurrences:
        rendered = _render_timing(occurrence)
        rendered["info"] = render_view(occurrence.fields, poster_files)
        _put(
            rendered,
            "lang",
            {
                code: render_view(occurrence.view(code), poster_files)
                for code in calendar.languages
            },
        )
        occurrences.append(rendered)
    document["occurrences"] = occurrences
    return document


def render_language(
    calendar: CompiledCalendar, language: str, poster_files: Mapping[str, str]
) -> dict[str, Any]:
    """One language's projection: metadata and views as seen in ``language``."""
    document = _header(calendar)
    document["language"] = language
    document["meta"] = render_meta(calendar.meta.for_language(language))
    occurrences = []
    for occurrence in calendar.occurrences:
        rendered = _render_timing(occurrence)
        rendered["info"] = render_view(occurrence.view(language), poster_files)
        occurrences.append(rendered)
    document["occurrences"] = occurrences
    return document


def encode_document(document: Mapping[str, Any]) -> bytes:
    return (json.dumps(document, ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")


def render_documents(
    calendar: CompiledCalendar, poster_files: Mapping[str, str]
) -> dict[str, bytes]:
    """Every output document, keyed by filename."""
    documents = {calendar_filename(): encode_document(render_calendar(calendar, poster_files))}
    for language in calendar.languages:
        documents[calendar_filename(language)] = encode_document(
            render_language(calendar, language, poster_files)
        )
    return documents
