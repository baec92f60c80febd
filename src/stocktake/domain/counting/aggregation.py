"""Quantity aggregation by product key.

Submitted lines are aggregated before they are persisted, and persisted lines are
aggregated again per run before runs are compared. Both paths go through
:func:`product_key` so that a product is identified the same way on either side.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

    from stocktake.domain.model import LineSnapshot

ZERO = Decimal(0)


@dataclass(frozen=True, slots=True)
class SubmittedLine:
    """A validated line of a completion request."""

    code: str
    quantity: Decimal
    manual: bool = False


@dataclass(frozen=True, slots=True)
class AggregatedLine:
    code: str
    quantity: Decimal
    manual: bool


def product_key(code: str | None, product_id: UUID | None = None) -> str:
    """Return the trimmed code when present, else the product id as text."""

    if code is not None:
        trimmed = code.strip()
        if trimmed:
            return trimmed
    if product_id is None:
        raise ValueError("A product key needs a code or a product id")
    return str(product_id)


def aggregate_quantities(pairs: Iterable[tuple[str, Decimal]]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for key, quantity in pairs:
        totals[key] += quantity
    return dict(totals)


def aggregate_submission(lines: Iterable[SubmittedLine]) -> list[AggregatedLine]:
    """Merge duplicate codes: quantities summed, manual flags OR-combined."""

    quantities: dict[str, Decimal] = {}
    manual: dict[str, bool] = {}
    for line in lines:
        key = product_key(line.code)
        quantities[key] = quantities.get(key, ZERO) + line.quantity
        manual[key] = manual.get(key, False) or line.manual
    return [
        AggregatedLine(code=key, quantity=quantity, manual=manual[key])
        for key, quantity in quantities.items()
    ]


def quantities_by_run(snapshots: Iterable[LineSnapshot]) -> dict[UUID, dict[str, Decimal]]:
    grouped: dict[UUID, list[tuple[str, Decimal]]] = defaultdict(list)
    for snapshot in snapshots:
        key = product_key(snapshot.product_code, snapshot.product_id)
        grouped[snapshot.run_id].append((key, snapshot.quantity))
    return {run_id: aggregate_quantities(pairs) for run_id, pairs in grouped.items()}


def differing_keys(left: Mapping[str, Decimal], right: Mapping[str, Decimal]) -> list[str]:
    """Keys whose quantities differ, a missing key counting as zero."""

    keys = sorted(set(left) | set(right))
    return [key for key in keys if left.get(key, ZERO) != right.get(key, ZERO)]


def same_quantities(left: Mapping[str, Decimal], right: Mapping[str, Decimal]) -> bool:
    return not differing_keys(left, right)
