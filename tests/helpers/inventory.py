"""Reusable fakes and builders for inventory counting tests."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from stocktake.domain.counting import (
    CompleteRunRequest,
    CompleteRunResult,
    CountLineInput,
    StartRunRequest,
    StartRunResult,
    complete_run,
    start_run,
)
from stocktake.domain.model import CountLine, OwnerRef, Product, Zone

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from stocktake.domain.ports import InventoryUnitOfWork

    UnitOfWorkFactory = Callable[[], InventoryUnitOfWork]

SHOP_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
ALICE = OwnerRef.user(uuid.UUID("00000000-0000-0000-0000-000000000001"), "Alice")
BOB = OwnerRef.user(uuid.UUID("00000000-0000-0000-0000-000000000002"), "Bob")
CAROL = OwnerRef.operator("Carol")


class TickingClock:
    """Deterministic clock advancing by ``step`` on every reading."""

    def __init__(
        self,
        start: datetime | None = None,
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.current = start or datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
        self.step = step

    def now(self) -> datetime:
        self.current += self.step
        return self.current


@dataclass(slots=True)
class RecordedAudit:
    message: str
    actor: str | None
    category: str


@dataclass(slots=True)
class RecordingAuditSink:
    entries: list[RecordedAudit] = field(default_factory=list["RecordedAudit"])

    def record(self, message: str, *, actor: str | None, category: str) -> None:
        self.entries.append(RecordedAudit(message=message, actor=actor, category=category))

    @property
    def categories(self) -> list[str]:
        return [entry.category for entry in self.entries]


def make_zone(
    code: str = "A1",
    *,
    label: str = "Aisle 1",
    shop_id: uuid.UUID = SHOP_ID,
    disabled: bool = False,
) -> Zone:
    return Zone(shop_id=shop_id, code=code, label=label, disabled=disabled)


def seed_zone(unit_of_work_factory: UnitOfWorkFactory, zone: Zone | None = None) -> Zone:
    """Persist a zone and return it."""

    created = zone or make_zone()
    with unit_of_work_factory() as uow:
        uow.repositories.zones.add(created)
        uow.commit()
    return created


def seed_product(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    code: str,
    sku: str,
    name: str,
    shop_id: uuid.UUID = SHOP_ID,
) -> Product:
    product = Product(shop_id=shop_id, sku=sku, name=name, code=code)
    with unit_of_work_factory() as uow:
        uow.repositories.products.add(product)
        uow.commit()
    return product


def lines(counts: Mapping[str, int | str | Decimal]) -> list[CountLineInput]:
    return [CountLineInput(code=code, quantity=quantity) for code, quantity in counts.items()]


def start(
    unit_of_work_factory: UnitOfWorkFactory,
    clock: TickingClock,
    zone: Zone,
    *,
    count_type: int = 1,
    owner: OwnerRef = ALICE,
) -> StartRunResult:
    return start_run(
        StartRunRequest(zone_id=zone.id, count_type=count_type, owner=owner),
        unit_of_work_factory=unit_of_work_factory,
        clock=clock,
    )


def count(
    unit_of_work_factory: UnitOfWorkFactory,
    clock: TickingClock,
    zone: Zone,
    counts: Mapping[str, int | str | Decimal],
    *,
    count_type: int = 1,
    owner: OwnerRef = ALICE,
    run_id: uuid.UUID | None = None,
) -> CompleteRunResult:
    return complete_run(
        CompleteRunRequest(
            zone_id=zone.id,
            count_type=count_type,
            owner=owner,
            lines=lines(counts),
            run_id=run_id,
        ),
        unit_of_work_factory=unit_of_work_factory,
        clock=clock,
    )


def attach_line(
    unit_of_work_factory: UnitOfWorkFactory,
    run_id: uuid.UUID,
    code: str = "111",
) -> None:
    """Give an active run a counted line, making it busy."""

    with unit_of_work_factory() as uow:
        product = Product(shop_id=SHOP_ID, sku=f"SKU-{code}", name=f"Product {code}", code=code)
        uow.repositories.products.add(product)
        uow.repositories.lines.add(
            CountLine(
                run_id=run_id,
                product_id=product.id,
                quantity=Decimal(1),
                counted_at=datetime(2025, 3, 1, 9, 30, tzinfo=UTC),
            )
        )
        uow.commit()
