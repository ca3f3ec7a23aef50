"""
Tests for the override resolver.

Covers: per-field layer precedence, whole-value collections, fallbacks,
and required-field failures.
"""

from __future__ import annotations

from datetime import time, timedelta

import pytest

from wc_compiler.domain.documents import EventDocument, FieldLayer, User
from wc_compiler.domain.types import Platform
from wc_compiler.infra.exceptions import MissingRequiredField
from wc_compiler.runtime.override_resolver import layer_stack, resolve

MONDAY, WEDNESDAY, FRIDAY = 0, 2, 4

TIMING = dict(timezone="UTC", start=time(17, 0), duration=timedelta(hours=1))


def _document(**kwargs) -> EventDocument:
    kwargs.setdefault("base", FieldLayer(description="base", **TIMING))
    return EventDocument(identity="book-club", source="book-club.toml", **kwargs)


def _layered() -> EventDocument:
    return _document(
        days={MONDAY: FieldLayer(description="monday")},
        languages={"ja": FieldLayer(description="ja")},
        language_days={(MONDAY, "ja"): FieldLayer(description="monday ja")},
    )


class TestLayerPrecedence:
    def test_base_only(self):
        assert resolve(_layered(), WEDNESDAY).description == "base"

    def test_weekday_overrides_base(self):
        assert resolve(_layered(), MONDAY).description == "monday"

    def test_language_overrides_base(self):
        assert resolve(_layered(), WEDNESDAY, "ja").description == "ja"

    def test_weekday_language_overrides_everything(self):
        assert resolve(_layered(), MONDAY, "ja").description == "monday ja"

    def test_language_beats_weekday(self):
        document = _document(
            days={MONDAY: FieldLayer(description="monday")},
            languages={"ja": FieldLayer(description="ja")},
        )
        assert resolve(document, MONDAY, "ja").description == "ja"

    def test_default_view_ignores_language_layers(self):
        assert resolve(_layered(), MONDAY, None).description == "monday"

    def test_unknown_language_falls_back_to_weekday(self):
        assert resolve(_layered(), MONDAY, "fr").description == "monday"

    def test_fields_resolve_independently(self):
        document = _document(
            base=FieldLayer(description="base", group="grp_base", **TIMING),
            days={MONDAY: FieldLayer(group="grp_monday")},
            languages={"ja": FieldLayer(description="ja")},
        )
        resolved = resolve(document, MONDAY, "ja")
        assert resolved.description == "ja"
        assert resolved.group == "grp_monday"

    def test_timing_from_weekday_layer(self):
        document = _document(days={FRIDAY: FieldLayer(start=time(20, 30))})
        assert resolve(document, FRIDAY).start == time(20, 30)
        assert resolve(document, WEDNESDAY).start == time(17, 0)

    def test_layer_stack_order(self):
        document = _layered()
        assert layer_stack(document, MONDAY) == (document.days[MONDAY], document.base)
        stack = layer_stack(document, MONDAY, "ja")
        assert stack[0] is document.language_days[(MONDAY, "ja")]
        assert stack[1] is document.languages["ja"]
        assert stack[3] is document.base


class TestCollections:
    def test_platforms_replaced_wholesale(self):
        document = _document(
            base=FieldLayer(platforms=(Platform.PC, Platform.QUEST), **TIMING),
            days={MONDAY: FieldLayer(platforms=(Platform.QUEST,))},
        )
        assert resolve(document, MONDAY).platforms == (Platform.QUEST,)
        assert resolve(document, WEDNESDAY).platforms == (Platform.PC, Platform.QUEST)

    def test_join_replaced_wholesale(self):
        base_join = (User("Alice", "usr_a"), User("Bob", "usr_b"))
        document = _document(
            base=FieldLayer(join=base_join, **TIMING),
            languages={"ja": FieldLayer(join=(User("Chika", "usr_c"),))},
        )
        assert resolve(document, MONDAY, "ja").join == (User("Chika", "usr_c"),)
        assert resolve(document, MONDAY).join == base_join

    def test_empty_collection_counts_as_set(self):
        document = _document(
            base=FieldLayer(join=(User("Alice", "usr_a"),), **TIMING),
            days={MONDAY: FieldLayer(join=())},
        )
        assert resolve(document, MONDAY).join == ()

    def test_defaults(self):
        resolved = resolve(_document(), MONDAY)
        assert resolved.platforms == (Platform.PC,)
        assert resolved.join == ()
        assert resolved.world is None
        assert resolved.weeks is None


class TestFallbacks:
    def test_name_defaults_to_identity(self):
        assert resolve(_document(), MONDAY).name == "book-club"

    def test_fallback_name(self):
        assert resolve(_document(), MONDAY, fallback_name="Book Club").name == "Book Club"

    def test_explicit_name_wins(self):
        document = _document(languages={"ja": FieldLayer(name="読書会")})
        assert resolve(document, MONDAY, "ja", fallback_name="Book Club").name == "読書会"
        assert resolve(document, MONDAY, fallback_name="Book Club").name == "Book Club"

    def test_fallback_poster(self):
        assert resolve(_document(), MONDAY, fallback_poster="book-club.png").poster == "book-club.png"

    def test_explicit_poster_wins(self):
        document = _document(days={MONDAY: FieldLayer(poster="art/monday.png")})
        resolved = resolve(document, MONDAY, fallback_poster="book-club.png")
        assert resolved.poster == "art/monday.png"

    def test_no_poster(self):
        assert resolve(_document(), MONDAY).poster is None


class TestRequiredFields:
    @pytest.mark.parametrize("missing", ["timezone", "start", "duration"])
    def test_missing_required_field(self, missing):
        timing = {k: v for k, v in TIMING.items() if k != missing}
        document = _document(base=FieldLayer(**timing))
        with pytest.raises(MissingRequiredField) as exc_info:
            resolve(document, MONDAY)
        assert exc_info.value.field == missing
        assert exc_info.value.source == "book-club.toml"
        assert exc_info.value.context == "monday"

    def test_missing_field_context_includes_language(self):
        document = _document(base=FieldLayer(timezone="UTC", start=time(17, 0)))
        with pytest.raises(MissingRequiredField) as exc_info:
            resolve(document, FRIDAY, "ja")
        assert exc_info.value.context == "friday/ja"

    def test_required_field_only_on_some_days(self):
        document = _document(
            base=FieldLayer(timezone="UTC", duration=timedelta(hours=1)),
            days={MONDAY: FieldLayer(start=time(9, 0))},
        )
        assert resolve(document, MONDAY).start == time(9, 0)
        with pytest.raises(MissingRequiredField):
            resolve(document, WEDNESDAY)
