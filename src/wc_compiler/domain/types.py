"""
Shared types and enums for wc-compiler.

This module contains common types and enums that are used across
the domain, runtime, publishing, and CLI layers.
"""

from __future__ import annotations

from enum import Enum

# Weekday names in datetime.date.weekday() order (0 = Monday).
DOW_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DOW_INDEX = {name: index for index, name in enumerate(DOW_NAMES)}


class ConfirmationStatus(str, Enum):
    """Whether an occurrence has been confirmed by the event's organizers."""

    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"
    CANCELED = "canceled"


class Platform(str, Enum):
    """Client platforms an event can be joined from."""

    PC = "pc"
    QUEST = "quest"


class Severity(str, Enum):
    """Severity of a compile diagnostic. Only errors block publication."""

    ERROR = "error"
    WARNING = "warning"


def weekday_name(weekday: int) -> str:
    return DOW_NAMES[weekday]
