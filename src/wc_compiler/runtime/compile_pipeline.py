"""
Compile pipeline.

Orchestrates one compile: enumerate inputs -> resolve overrides -> expand
recurrence -> normalize times -> aggregate -> publish.

Per-event work (resolution, expansion, normalization) is independent and
runs on a thread pool. Aggregation, ordering, and poster naming happen
afterwards on the calling thread so output is reproducible.

Errors are collected rather than raised, so an author sees every problem in
one pass. Any error-severity diagnostic means nothing is published.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from wc_compiler.catalog.input_library import InputLibrary, InputSet
from wc_compiler.domain.calendar import (
    CompiledCalendar,
    CompileWindow,
    Diagnostic,
    Occurrence,
    ResolvedFieldSet,
)
from wc_compiler.domain.documents import EventDocument
from wc_compiler.domain.types import DOW_NAMES, Severity, weekday_name
from wc_compiler.infra.exceptions import CompilerError, FileSystemError
from wc_compiler.publishing.manifest import PosterManifest
from wc_compiler.publishing.output_publisher import (
    OutputPublisher,
    PublicationPlan,
    PublishSummary,
    plan_publication,
)
from wc_compiler.runtime.override_resolver import resolve
from wc_compiler.runtime.recurrence import (
    RecurrencePattern,
    expand,
    stray_cancellations,
    stray_confirmations,
)
from wc_compiler.runtime.time_normalizer import load_zone, normalize

_log = structlog.get_logger(__name__)

ALL_WEEKDAYS = frozenset(range(len(DOW_NAMES)))


@dataclass(frozen=True)
class CompileResult:
    """Outcome of the pure compile. ``plan`` is None whenever an error was found."""

    calendar: CompiledCalendar | None = None
    plan: PublicationPlan | None = None
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not any(d.is_error for d in self.diagnostics)


@dataclass(frozen=True)
class CompileReport:
    """Outcome of a compile against real directories."""

    diagnostics: tuple[Diagnostic, ...] = ()
    occurrences: int = 0
    summary: PublishSummary | None = None

    @property
    def ok(self) -> bool:
        return not any(d.is_error for d in self.diagnostics)


@dataclass
class _EventOutcome:
    occurrences: list[Occurrence] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


# ---------------------------------------------------------------------------
# Per-event compilation
# ---------------------------------------------------------------------------


def candidate_weekdays(document: EventDocument) -> list[int]:
    """Weekdays the event can occur on: its day set plus confirmed dates within its bounds."""
    weekdays: set[int] = set()
    if document.regular:
        weekdays |= set(document.days) or ALL_WEEKDAYS
    bounds = RecurrencePattern.from_document(document)
    weekdays |= {day.weekday() for day in document.confirmed if bounds.in_bounds(day)}
    return sorted(weekdays)


def _warning(document: EventDocument, kind: str, field_path: str, message: str) -> Diagnostic:
    return Diagnostic(
        severity=Severity.WARNING,
        kind=kind,
        message=message,
        source=document.source,
        field=field_path,
    )


def compile_event(
    document: EventDocument,
    languages: tuple[str, ...],
    window: CompileWindow,
    *,
    fallback_poster: str | None = None,
) -> _EventOutcome:
    """Resolve, expand, and normalize one event. Never raises CompilerError."""
    outcome = _EventOutcome()
    views: dict[tuple[int, str | None], ResolvedFieldSet] = {}

    for weekday in candidate_weekdays(document):
        for language in (None, *languages):
            context = weekday_name(weekday)
            if language is not None:
                context = f"{context}/{language}"
            try:
                view = resolve(
                    document,
                    weekday,
                    language,
                    fallback_name=document.identity,
                    fallback_poster=fallback_poster,
                )
                if language is None:
                    load_zone(view.timezone)
            except CompilerError as e:
                e.attribute(source=document.source, context=context)
                outcome.diagnostics.append(Diagnostic.from_error(e))
                continue
            views[(weekday, language)] = view

    weeks = {
        weekday: view.weeks
        for (weekday, language), view in views.items()
        if language is None and view.weeks is not None
    }
    pattern = RecurrencePattern.from_document(document, weeks)
    for day in stray_confirmations(pattern):
        outcome.diagnostics.append(
            _warning(
                document,
                "StrayConfirmation",
                "confirmed",
                f"Confirmed date {day} is outside the event's start_date/end_date",
            )
        )
    for day in stray_cancellations(pattern):
        outcome.diagnostics.append(
            _warning(
                document,
                "StrayCancellation",
                "canceled",
                f"Canceled date {day} is not a date the event would occur on",
            )
        )

    if outcome.has_errors:
        return outcome

    for day, status in expand(pattern, window.start, window.end):
        weekday = day.weekday()
        fields = views[(weekday, None)]
        try:
            start, end = normalize(day, fields.start, fields.duration, fields.timezone)
        except CompilerError as e:
            e.attribute(source=document.source, context=weekday_name(weekday))
            outcome.diagnostics.append(Diagnostic.from_error(e))
            continue
        outcome.occurrences.append(
            Occurrence(
                event=document.identity,
                date=day,
                status=status,
                start=start,
                end=end,
                fields=fields,
                languages={code: views[(weekday, code)] for code in languages},
            )
        )

    return outcome


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def collapse_diagnostics(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    """Merge diagnostics that differ only in context, keeping first-seen order."""
    merged: dict[tuple, list] = {}
    for diagnostic in diagnostics:
        key = (
            diagnostic.severity,
            diagnostic.kind,
            diagnostic.source,
            diagnostic.field,
            diagnostic.message,
        )
        contexts = merged.setdefault(key, [diagnostic, []])[1]
        if diagnostic.context and diagnostic.context not in contexts:
            contexts.append(diagnostic.context)

    collapsed = []
    for first, contexts in merged.values():
        collapsed.append(
            Diagnostic(
                severity=first.severity,
                kind=first.kind,
                message=first.message,
                source=first.source,
                field=first.field,
                context=", ".join(contexts) or None,
            )
        )
    return collapsed


def supported_languages(inputs: InputSet) -> tuple[str, ...]:
    languages: set[str] = set(inputs.meta.languages) if inputs.meta else set()
    for document in inputs.documents:
        languages |= document.declared_languages()
    return tuple(sorted(languages))


def compile_inputs(
    inputs: InputSet,
    previous_manifest: PosterManifest,
    window: CompileWindow,
    *,
    workers: int = 1,
) -> CompileResult:
    """
    Compile loaded inputs into a publication plan.

    Pure apart from logging: nothing is read or written. The result carries
    a plan only when no error-severity diagnostic was produced.
    """
    languages = supported_languages(inputs)

    def _compile(document: EventDocument) -> _EventOutcome:
        return compile_event(
            document,
            languages,
            window,
            fallback_poster=inputs.guessed_posters.get(document.identity),
        )

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        outcomes = list(pool.map(_compile, inputs.documents))

    diagnostics = list(inputs.diagnostics)
    occurrences: list[Occurrence] = []
    for outcome in outcomes:
        diagnostics.extend(outcome.diagnostics)
        occurrences.extend(outcome.occurrences)
    diagnostics = collapse_diagnostics(diagnostics)

    if inputs.meta is None or any(d.is_error for d in diagnostics):
        return CompileResult(diagnostics=tuple(diagnostics))

    occurrences.sort(key=lambda o: (o.start, o.event, o.date))
    calendar = CompiledCalendar(
        meta=inputs.meta,
        window=window,
        languages=languages,
        occurrences=tuple(occurrences),
    )
    plan = plan_publication(calendar, inputs.posters, previous_manifest)
    return CompileResult(calendar=calendar, plan=plan, diagnostics=tuple(diagnostics))


def compile_calendar(
    input_dir: str | Path,
    output_dir: str | Path,
    window: CompileWindow,
    *,
    workers: int = 1,
) -> CompileReport:
    """
    Compile ``input_dir`` and publish into ``output_dir``.

    Collected errors are returned in the report and leave ``output_dir``
    untouched. A FileSystemError while publishing is raised.
    """
    _log.info(
        "compile_started",
        input_dir=str(input_dir),
        output_dir=str(output_dir),
        window_start=window.start.isoformat(),
        window_end=window.end.isoformat(),
    )
    inputs = InputLibrary(input_dir).load()
    publisher = OutputPublisher(output_dir)

    manifest_errors: list[Diagnostic] = []
    try:
        previous_manifest = publisher.load_manifest()
    except FileSystemError as e:
        manifest_errors.append(Diagnostic.from_error(e))
        previous_manifest = PosterManifest()

    result = compile_inputs(inputs, previous_manifest, window, workers=workers)
    diagnostics = (*manifest_errors, *result.diagnostics)
    errors = sum(1 for d in diagnostics if d.is_error)
    warnings = len(diagnostics) - errors

    if errors or result.plan is None:
        _log.warning("compile_failed", errors=errors, warnings=warnings)
        return CompileReport(diagnostics=diagnostics)

    summary = publisher.apply(result.plan)
    occurrences = len(result.calendar.occurrences) if result.calendar else 0
    _log.info("compile_finished", occurrences=occurrences, warnings=warnings)
    return CompileReport(diagnostics=diagnostics, occurrences=occurrences, summary=summary)
