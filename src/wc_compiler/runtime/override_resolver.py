"""
Override resolver.

Merges an event's cascading override layers into one concrete field set for
a given weekday and language.

Layer precedence (highest to lowest):
1. Weekday + language (``languages.ja.monday``)
2. Language (``languages.ja``)
3. Weekday (``days.monday``)
4. Base (top level of the event document)

Each field is resolved independently: the most specific layer that sets a
field wins outright. Collection fields are never combined across layers.
"""

from __future__ import annotations

from typing import TypeVar

from wc_compiler.domain.calendar import ResolvedFieldSet
from wc_compiler.domain.documents import EMPTY_LAYER, EventDocument, FieldLayer
from wc_compiler.domain.types import Platform, weekday_name
from wc_compiler.infra.exceptions import MissingRequiredField

T = TypeVar("T")

DEFAULT_PLATFORMS = (Platform.PC,)


def layer_stack(
    document: EventDocument, weekday: int, language: str | None = None
) -> tuple[FieldLayer, ...]:
    """Return the document's layers for one weekday/language, most specific first."""
    if language is None:
        return (document.days.get(weekday, EMPTY_LAYER), document.base)
    return (
        document.language_days.get((weekday, language), EMPTY_LAYER),
        document.languages.get(language, EMPTY_LAYER),
        document.days.get(weekday, EMPTY_LAYER),
        document.base,
    )


def _cascade(*values: T | None) -> T | None:
    for value in values:
        if value is not None:
            return value
    return None


def resolve(
    document: EventDocument,
    weekday: int,
    language: str | None = None,
    *,
    fallback_name: str | None = None,
    fallback_poster: str | None = None,
) -> ResolvedFieldSet:
    """
    Resolve every field of ``document`` for one weekday and language.

    ``language=None`` gives the default view built from the weekday and base
    layers only. ``fallback_name`` defaults to the document identity;
    ``fallback_poster`` is the poster file found next to the document, if any.

    Raises MissingRequiredField if timezone, start, or duration stay unset.
    """
    layers = layer_stack(document, weekday, language)
    context = weekday_name(weekday) if language is None else f"{weekday_name(weekday)}/{language}"

    timezone = _cascade(*(layer.timezone for layer in layers))
    start = _cascade(*(layer.start for layer in layers))
    duration = _cascade(*(layer.duration for layer in layers))
    for field_name, value in (("timezone", timezone), ("start", start), ("duration", duration)):
        if value is None:
            raise MissingRequiredField(field_name, source=document.source, context=context)

    return ResolvedFieldSet(
        name=_cascade(*(layer.name for layer in layers), fallback_name, document.identity),
        timezone=timezone,
        start=start,
        duration=duration,
        poster=_cascade(*(layer.poster for layer in layers), fallback_poster),
        description=_cascade(*(layer.description for layer in layers)),
        web=_cascade(*(layer.web for layer in layers)),
        discord=_cascade(*(layer.discord for layer in layers)),
        twitter=_cascade(*(layer.twitter for layer in layers)),
        group=_cascade(*(layer.group for layer in layers)),
        hashtag=_cascade(*(layer.hashtag for layer in layers)),
        platforms=_cascade(*(layer.platforms for layer in layers), DEFAULT_PLATFORMS),
        join=_cascade(*(layer.join for layer in layers), ()),
        world=_cascade(*(layer.world for layer in layers)),
        weeks=_cascade(*(layer.weeks for layer in layers)),
    )
