from __future__ import annotations

import json
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from stocktake.adapters.payloads import CompleteRunPayload, load_complete_payload
from stocktake.domain.counting.lifecycle import parse_quantity
from stocktake.domain.model import OwnerRef

if TYPE_CHECKING:
    from pathlib import Path

ZONE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b1")
USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def test_payload_accepts_client_aliases() -> None:
    payload = CompleteRunPayload.model_validate_json(
        json.dumps(
            {
                "locationId": str(ZONE_ID),
                "countType": 2,
                "operatorDisplayName": " Carol ",
                "items": [
                    {"ean": "3017620422003", "quantity": 2.5, "isManual": True},
                    {"code": "5449000000996", "quantity": "4"},
                ],
                "unused": "ignored",
            }
        )
    )

    request = payload.to_request()

    assert request.zone_id == ZONE_ID
    assert request.count_type == 2
    assert request.owner == OwnerRef.operator("Carol")
    assert request.run_id is None
    first, second = request.lines
    assert first.code == "3017620422003"
    assert first.manual
    assert parse_quantity(first.quantity) == Decimal("2.5")
    assert second.code == "5449000000996"
    assert not second.manual
    assert parse_quantity(second.quantity) == Decimal(4)


def test_payload_keeps_invalid_lines_for_domain_validation() -> None:
    payload = CompleteRunPayload.model_validate(
        {
            "zone_id": str(ZONE_ID),
            "count_type": 1,
            "owner_user_id": str(USER_ID),
            "items": [{"quantity": "abc"}, {"code": "111"}],
        }
    )

    missing_code, missing_quantity = payload.to_request().lines

    assert missing_code.code is None
    assert missing_code.quantity == "abc"
    assert missing_quantity.quantity is None
    assert payload.owner == OwnerRef.user(USER_ID)


def test_payload_requires_an_owner() -> None:
    with pytest.raises(ValidationError, match="owner_user_id or operator"):
        CompleteRunPayload.model_validate(
            {"zone_id": str(ZONE_ID), "count_type": 1, "operator": "  ", "items": []}
        )


def test_payload_requires_zone_and_count_type() -> None:
    with pytest.raises(ValidationError):
        CompleteRunPayload.model_validate({"operator": "Carol"})


def test_load_complete_payload_reads_json_file(tmp_path: Path) -> None:
    run_id = uuid.uuid4()
    path = tmp_path / "payload.json"
    path.write_text(
        json.dumps(
            {
                "zoneId": str(ZONE_ID),
                "countType": 1,
                "runId": str(run_id),
                "ownerUserId": str(USER_ID),
                "items": [{"code": "111", "quantity": 3}],
            }
        ),
        encoding="utf-8",
    )

    request = load_complete_payload(path).to_request()

    assert request.run_id == run_id
    assert request.owner.user_id == USER_ID
    assert [line.code for line in request.lines] == ["111"]
