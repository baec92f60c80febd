from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from stocktake.domain.counting.aggregation import (
    AggregatedLine,
    SubmittedLine,
    aggregate_quantities,
    aggregate_submission,
    differing_keys,
    product_key,
    quantities_by_run,
    same_quantities,
)
from stocktake.domain.model import LineSnapshot

COUNTED_AT = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _snapshot(
    run_id: uuid.UUID,
    code: str | None,
    quantity: str,
    *,
    product_id: uuid.UUID | None = None,
) -> LineSnapshot:
    return LineSnapshot(
        line_id=uuid.uuid4(),
        run_id=run_id,
        product_id=product_id or uuid.uuid4(),
        product_code=code,
        sku=f"SKU-{code}",
        name=f"Product {code}",
        quantity=Decimal(quantity),
        counted_at=COUNTED_AT,
    )


def test_product_key_prefers_trimmed_code() -> None:
    product_id = uuid.uuid4()

    assert product_key("  3017620422003 ", product_id) == "3017620422003"


def test_product_key_falls_back_to_product_id() -> None:
    product_id = uuid.uuid4()

    assert product_key(None, product_id) == str(product_id)
    assert product_key("   ", product_id) == str(product_id)


def test_product_key_requires_code_or_id() -> None:
    with pytest.raises(ValueError, match="code or a product id"):
        product_key(None)


def test_aggregate_quantities_sums_per_key() -> None:
    totals = aggregate_quantities(
        [("A", Decimal(2)), ("B", Decimal("1.5")), ("A", Decimal(3))],
    )

    assert totals == {"A": Decimal(5), "B": Decimal("1.5")}


def test_aggregate_submission_merges_duplicates_in_first_seen_order() -> None:
    aggregated = aggregate_submission(
        [
            SubmittedLine(code="B", quantity=Decimal(1)),
            SubmittedLine(code="A", quantity=Decimal(2)),
            SubmittedLine(code="B", quantity=Decimal(4), manual=True),
        ]
    )

    assert aggregated == [
        AggregatedLine(code="B", quantity=Decimal(5), manual=True),
        AggregatedLine(code="A", quantity=Decimal(2), manual=False),
    ]


def test_quantities_by_run_groups_snapshots_per_run() -> None:
    first_run = uuid.uuid4()
    second_run = uuid.uuid4()
    shared_product = uuid.uuid4()

    quantities = quantities_by_run(
        [
            _snapshot(first_run, "A", "2"),
            _snapshot(first_run, "A", "3"),
            _snapshot(second_run, None, "7", product_id=shared_product),
        ]
    )

    assert quantities == {
        first_run: {"A": Decimal(5)},
        second_run: {str(shared_product): Decimal(7)},
    }


def test_differing_keys_treats_missing_keys_as_zero() -> None:
    left = {"A": Decimal(5), "B": Decimal(0)}
    right = {"A": Decimal("5.000"), "C": Decimal(1)}

    assert differing_keys(left, right) == ["C"]
    assert not same_quantities(left, right)
    assert same_quantities({"A": Decimal(1), "Z": Decimal(0)}, {"A": Decimal("1.0")})
