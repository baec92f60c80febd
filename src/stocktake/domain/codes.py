"""Normalisation and validation of scannable product codes."""

from __future__ import annotations

import re
from typing import Final

CODE_MAX_LENGTH: Final[int] = 64
_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[\w\s\-#°'.]+$")


def normalize_code(raw: str | None) -> str | None:
    """Trim a raw code, returning ``None`` when nothing is left."""

    if raw is None:
        return None
    trimmed = raw.strip()
    return trimmed or None


def validate_code(code: str | None) -> str:
    """Return the normalised code or raise ``ValueError`` describing the problem."""

    normalized = normalize_code(code)
    if normalized is None:
        raise ValueError("Product code is required")
    if len(normalized) > CODE_MAX_LENGTH:
        raise ValueError(f"Product code must be at most {CODE_MAX_LENGTH} characters")
    if _CODE_PATTERN.fullmatch(normalized) is None:
        raise ValueError(
            "Product code may only contain letters, digits, spaces and _ - # ° ' ."
        )
    return normalized
