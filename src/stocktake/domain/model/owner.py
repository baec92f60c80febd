"""Run ownership value object."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID  # noqa: TC003


def _clean_label(label: str | None) -> str | None:
    if label is None:
        return None
    cleaned = label.strip()
    return cleaned or None


@dataclass(frozen=True, slots=True)
class OwnerRef:
    """Either an authenticated user (``user_id``) or a free-text operator label.

    A user owner may carry a display label for messages; identity comparison only
    looks at the ``user_id`` in that case. Operator owners compare on their label,
    trimmed and case-insensitive.
    """

    user_id: UUID | None = None
    label: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "label", _clean_label(self.label))
        if self.user_id is None and self.label is None:
            raise ValueError("An owner needs a user id or an operator label")

    @classmethod
    def user(cls, user_id: UUID, display_name: str | None = None) -> OwnerRef:
        return cls(user_id=user_id, label=display_name)

    @classmethod
    def operator(cls, label: str) -> OwnerRef:
        return cls(label=label)

    @property
    def display(self) -> str:
        if self.label is not None:
            return self.label
        return str(self.user_id)

    def matches(self, other: OwnerRef) -> bool:
        """Return whether ``other`` designates the same counting identity."""

        if self.user_id is not None and other.user_id is not None:
            return self.user_id == other.user_id
        if self.user_id is not None or other.user_id is not None:
            return False
        return (self.label or "").casefold() == (other.label or "").casefold()
