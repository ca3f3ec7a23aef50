"""
Tests for calendar output document rendering.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time, timedelta, timezone

from wc_compiler.domain.calendar import (
    CompiledCalendar,
    CompileWindow,
    Occurrence,
    ResolvedFieldSet,
)
from wc_compiler.domain.documents import CalendarMeta, MetaLanguage, User, World
from wc_compiler.domain.types import ConfirmationStatus, Platform
from wc_compiler.publishing.calendar_document import (
    encode_document,
    render_calendar,
    render_documents,
    render_hashtag,
    render_language,
    render_view,
)

WINDOW = CompileWindow(date(2024, 1, 1), date(2024, 1, 31))


def _fields(**kwargs) -> ResolvedFieldSet:
    values = dict(
        name="Book Club",
        timezone="America/New_York",
        start=time(17, 0),
        duration=timedelta(hours=1),
    )
    values.update(kwargs)
    return ResolvedFieldSet(**values)


def _calendar() -> CompiledCalendar:
    fields = _fields(poster="book-club.png", hashtag="bookclub")
    occurrence = Occurrence(
        event="book-club",
        date=date(2024, 1, 15),
        status=ConfirmationStatus.CONFIRMED,
        start=datetime(2024, 1, 15, 22, 0, tzinfo=timezone.utc),
        end=datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc),
        fields=fields,
        languages={"ja": _fields(name="読書会", poster="book-club.png")},
    )
    meta = CalendarMeta(
        title="Events",
        link="https://example.com",
        languages={"ja": MetaLanguage(title="イベント")},
    )
    return CompiledCalendar(meta=meta, window=WINDOW, languages=("ja",), occurrences=(occurrence,))


POSTER_FILES = {"book-club.png": "abc123.png"}


class TestHashtag:
    def test_safe_hashtag_is_plain(self):
        assert render_hashtag("bookclub") == "bookclub"
        assert render_hashtag("wow!") == "wow!"
        assert render_hashtag("a-b_c.d~e") == "a-b_c.d~e"

    def test_unsafe_hashtag_is_escaped(self):
        assert render_hashtag("book club") == {"display": "book club", "escaped": "book%20club"}
        assert render_hashtag("a/b") == {"display": "a/b", "escaped": "a%2Fb"}

    def test_non_ascii_hashtag(self):
        rendered = render_hashtag("読書")
        assert rendered["display"] == "読書"
        assert rendered["escaped"] == "%E8%AA%AD%E6%9B%B8"


class TestRenderView:
    def test_minimal_view_omits_unset_values(self):
        assert render_view(_fields(), {}) == {"name": "Book Club", "platforms": ["pc"]}

    def test_full_view(self):
        view = _fields(
            description="Monthly reading",
            group="grp_1",
            platforms=(Platform.PC, Platform.QUEST),
            hashtag="book club",
            web="https://example.com/club",
            discord="bookclub",
            twitter="bookclub",
            world=World("Reading Room", "wrld_1"),
            join=(User("Alice", "usr_a"),),
            poster="book-club.png",
        )
        assert render_view(view, POSTER_FILES) == {
            "name": "Book Club",
            "desc": "Monthly reading",
            "group": "grp_1",
            "platforms": ["pc", "quest"],
            "hashtag": {"display": "book club", "escaped": "book%20club"},
            "web": "https://example.com/club",
            "discord": "bookclub",
            "twitter": "bookclub",
            "world": {"name": "Reading Room", "id": "wrld_1"},
            "join": [{"name": "Alice", "id": "usr_a"}],
            "poster": "abc123.png",
        }


class TestRenderCalendar:
    def test_structure(self):
        document = render_calendar(_calendar(), POSTER_FILES)
        assert document["version"] == 1
        assert document["window"] == {"start": "2024-01-01", "end": "2024-01-31"}
        assert document["posters"] == "posters/"
        assert document["languages"] == ["ja"]
        assert document["meta"] == {
            "title": "Events",
            "link": "https://example.com",
            "lang": {"ja": {"title": "イベント", "link": "https://example.com"}},
        }

    def test_occurrence(self):
        (occurrence,) = render_calendar(_calendar(), POSTER_FILES)["occurrences"]
        assert occurrence["id"] == "book-club/2024-01-15"
        assert occurrence["status"] == "confirmed"
        assert occurrence["start"] == "2024-01-15T17:00:00-05:00"
        assert occurrence["end"] == "2024-01-15T18:00:00-05:00"
        assert occurrence["tz"] == "America/New_York"
        assert occurrence["duration"] == 60
        assert occurrence["info"]["hashtag"] == "bookclub"
        assert occurrence["info"]["poster"] == "abc123.png"
        assert occurrence["lang"]["ja"]["name"] == "読書会"

    def test_language_projection(self):
        document = render_language(_calendar(), "ja", POSTER_FILES)
        assert document["language"] == "ja"
        assert document["meta"]["title"] == "イベント"
        (occurrence,) = document["occurrences"]
        assert occurrence["info"]["name"] == "読書会"
        assert "lang" not in occurrence

    def test_no_languages(self):
        calendar = CompiledCalendar(meta=CalendarMeta(title="Events"), window=WINDOW)
        document = render_calendar(calendar, {})
        assert document["meta"] == {"title": "Events"}
        assert document["occurrences"] == []


class TestEncoding:
    def test_compact_utf8_with_trailing_newline(self):
        encoded = encode_document({"title": "イベント", "n": [1, 2]})
        assert encoded == '{"title":"イベント","n":[1,2]}\n'.encode("utf-8")

    def test_render_documents(self):
        documents = render_documents(_calendar(), POSTER_FILES)
        assert sorted(documents) == ["calendar.ja.json", "calendar.json"]
        assert json.loads(documents["calendar.ja.json"])["language"] == "ja"

    def test_deterministic(self):
        assert render_documents(_calendar(), POSTER_FILES) == render_documents(
            _calendar(), POSTER_FILES
        )
