"""Pydantic models for externally supplied completion payloads."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from stocktake.domain.counting.lifecycle import CompleteRunRequest, CountLineInput
from stocktake.domain.model import OwnerRef

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)


class PayloadBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CountLinePayload(PayloadBaseModel):
    # Codes and quantities stay loose here; the counting core reports every bad line.
    code: str | None = Field(default=None, validation_alias=AliasChoices("code", "ean"))
    quantity: Decimal | str | None = None
    manual: bool = Field(default=False, validation_alias=AliasChoices("manual", "isManual"))

    def to_input(self) -> CountLineInput:
        return CountLineInput(code=self.code, quantity=self.quantity, manual=self.manual)


class CompleteRunPayload(PayloadBaseModel):
    zone_id: UUID = Field(validation_alias=AliasChoices("zone_id", "zoneId", "locationId"))
    count_type: int = Field(validation_alias=AliasChoices("count_type", "countType"))
    run_id: UUID | None = Field(default=None, validation_alias=AliasChoices("run_id", "runId"))
    owner_user_id: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("owner_user_id", "ownerUserId"),
    )
    operator: str | None = Field(
        default=None,
        validation_alias=AliasChoices("operator", "operatorDisplayName"),
    )
    items: list[CountLinePayload] = Field(default_factory=list["CountLinePayload"])

    @model_validator(mode="after")
    def _require_owner(self) -> CompleteRunPayload:
        if self.owner_user_id is None and not (self.operator or "").strip():
            raise ValueError("Either owner_user_id or operator is required")
        return self

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef(user_id=self.owner_user_id, label=self.operator)

    def to_request(self) -> CompleteRunRequest:
        return CompleteRunRequest(
            zone_id=self.zone_id,
            count_type=self.count_type,
            owner=self.owner,
            lines=[item.to_input() for item in self.items],
            run_id=self.run_id,
        )


def load_complete_payload(path: Path) -> CompleteRunPayload:
    """Read and validate a completion payload from a JSON file."""

    raw = path.read_text(encoding="utf-8")
    payload = CompleteRunPayload.model_validate_json(raw)
    log.debug("Loaded completion payload with %s items from %s", len(payload.items), path)
    return payload

