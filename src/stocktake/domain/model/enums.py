"""Domain enums and count-type constants (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

FIRST_PASS: Final[int] = 1
SECOND_PASS: Final[int] = 2
CONTROL_PASS: Final[int] = 3


class ConflictStatus(StrEnum):
    OPEN = "open"
    RESOLVED = "resolved"


class CountProgress(StrEnum):
    """Where a zone stands for one count type."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def counterpart_count_type(count_type: int) -> int | None:
    if count_type == FIRST_PASS:
        return SECOND_PASS
    if count_type == SECOND_PASS:
        return FIRST_PASS
    return None


def describe_count_type(count_type: int) -> str:
    if count_type == FIRST_PASS:
        return "first pass"
    if count_type == SECOND_PASS:
        return "second pass"
    if count_type == CONTROL_PASS:
        return "control pass"
    return f"pass {count_type}"
