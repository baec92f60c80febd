from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest

from stocktake.domain.model import CountingRun, OwnerRef

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def test_owner_requires_identity_or_label() -> None:
    with pytest.raises(ValueError, match="user id or an operator label"):
        OwnerRef()

    with pytest.raises(ValueError):
        OwnerRef.operator("   ")


def test_user_owners_match_on_user_id_only() -> None:
    first = OwnerRef.user(USER_ID, "Alice")
    renamed = OwnerRef.user(USER_ID, "Alice M.")
    other = OwnerRef.user(uuid.uuid4(), "Alice")

    assert first.matches(renamed)
    assert not first.matches(other)


def test_operator_owners_match_on_trimmed_casefolded_label() -> None:
    owner = OwnerRef.operator("  Carol ")

    assert owner.label == "Carol"
    assert owner.matches(OwnerRef.operator("CAROL"))
    assert not owner.matches(OwnerRef.operator("Caroline"))


def test_user_and_operator_owners_never_match() -> None:
    assert not OwnerRef.user(USER_ID, "Carol").matches(OwnerRef.operator("Carol"))


def test_display_falls_back_to_user_id() -> None:
    assert OwnerRef.user(USER_ID).display == str(USER_ID)
    assert OwnerRef.user(USER_ID, "Alice").display == "Alice"


def test_run_ownership_round_trips_through_columns() -> None:
    run = CountingRun(
        session_id=uuid.uuid4(),
        zone_id=uuid.uuid4(),
        count_type=1,
        started_at=datetime(2025, 3, 1, tzinfo=UTC),
    )

    assert run.owner is None
    assert run.is_owned_by(OwnerRef.operator("anyone"))

    run.assign_owner(OwnerRef.user(USER_ID, "Alice"))

    assert run.owner_user_id == USER_ID
    assert run.operator_display_name == "Alice"
    assert run.owner == OwnerRef.user(USER_ID, "Alice")
    assert not run.is_owned_by(OwnerRef.operator("Alice"))
