"""
Custom exceptions for wc-compiler.

Every error raised while compiling a calendar derives from CompilerError.
Errors carry an optional field path, source file, and weekday/language
context; callers further up the stack attach what the raiser did not know
via ``attribute()``.
"""

from __future__ import annotations

from pathlib import Path


class CompilerError(Exception):
    """Base exception for all wc-compiler errors."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        source: str | None = None,
        context: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.source = source
        self.context = context

    @property
    def kind(self) -> str:
        return type(self).__name__

    def attribute(
        self,
        *,
        field: str | None = None,
        source: str | None = None,
        context: str | None = None,
    ) -> CompilerError:
        """Fill in attribution that is still missing and return self."""
        if self.field is None:
            self.field = field
        if self.source is None:
            self.source = source
        if self.context is None:
            self.context = context
        return self


class ParseError(CompilerError):
    """Raised for malformed structured text or a value of the wrong type."""

    pass


class MissingRequiredField(CompilerError):
    """Raised when a required field is unset after override resolution."""

    def __init__(self, field_name: str, **kwargs) -> None:
        kwargs.setdefault("field", field_name)
        super().__init__(f"Required field {field_name!r} is not set", **kwargs)


class InvalidTimezone(CompilerError):
    """Raised for a timezone identifier that is not in the IANA database."""

    def __init__(self, name: str, **kwargs) -> None:
        kwargs.setdefault("field", "timezone")
        super().__init__(f"Unknown time zone {name!r}", **kwargs)
        self.name = name


class InvalidDateOrTime(CompilerError):
    """Raised for malformed or impossible date, time, or duration values."""

    pass


class AmbiguousPosterFormat(CompilerError):
    """Raised when an event has more than one poster candidate."""

    def __init__(self, found: Path, extra: Path, **kwargs) -> None:
        kwargs.setdefault("field", "poster")
        super().__init__(
            f"Found poster {found.name!r} and also {extra.name!r}; "
            "events must have exactly one poster file",
            **kwargs,
        )
        self.found = found
        self.extra = extra


class FileSystemError(CompilerError):
    """Raised when reading inputs or writing outputs fails."""

    pass
