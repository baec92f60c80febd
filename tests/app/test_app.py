from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from stocktake import app
from stocktake.config import CountingConfig
from stocktake.domain.counting import (
    CompleteRunRequest,
    CountLineInput,
    ReleaseRunRequest,
    RestartRunRequest,
    StartRunRequest,
)
from stocktake.domain.errors import ConflictError
from stocktake.domain.model import CountProgress
from tests.helpers.inventory import ALICE, BOB, CAROL, SHOP_ID

if TYPE_CHECKING:
    from collections.abc import Callable

    from stocktake.adapters.sqlalchemy.unit_of_work import SqlAlchemyInventoryUnitOfWork
    from stocktake.domain.model import OwnerRef, Zone
    from tests.helpers.inventory import RecordingAuditSink, TickingClock

    UowFactory = Callable[[], SqlAlchemyInventoryUnitOfWork]


def _complete(
    uow: UowFactory,
    clock: TickingClock,
    audit: RecordingAuditSink,
    zone: Zone,
    quantity: int,
    *,
    count_type: int = 1,
    owner: OwnerRef = ALICE,
) -> None:
    app.complete_run(
        CompleteRunRequest(
            zone_id=zone.id,
            count_type=count_type,
            owner=owner,
            lines=[CountLineInput(code="111", quantity=quantity)],
        ),
        unit_of_work_factory=uow,
        clock=clock,
        audit=audit,
    )


def test_start_and_resume_are_audited(
    sqlite_unit_of_work: UowFactory,
    clock: TickingClock,
    audit_sink: RecordingAuditSink,
    zone: Zone,
) -> None:
    request = StartRunRequest(zone_id=zone.id, count_type=1, owner=ALICE)

    app.start_run(request, unit_of_work_factory=sqlite_unit_of_work, clock=clock, audit=audit_sink)
    app.start_run(request, unit_of_work_factory=sqlite_unit_of_work, clock=clock, audit=audit_sink)

    assert audit_sink.categories == ["inventories.start.success", "inventories.start.resumed"]
    assert audit_sink.entries[0].message == "Alice started A1 - Aisle 1 for a first pass"
    assert audit_sink.entries[0].actor == "Alice"


def test_complete_audit_mentions_references_and_total(
    sqlite_unit_of_work: UowFactory,
    clock: TickingClock,
    audit_sink: RecordingAuditSink,
    zone: Zone,
) -> None:
    result = app.complete_run(
        CompleteRunRequest(
            zone_id=zone.id,
            count_type=2,
            owner=BOB,
            lines=[
                CountLineInput(code="111", quantity=2),
                CountLineInput(code="222", quantity="1.5"),
            ],
        ),
        unit_of_work_factory=sqlite_unit_of_work,
        clock=clock,
        audit=audit_sink,
    )

    assert result.total_quantity == Decimal("3.5")
    [entry] = audit_sink.entries
    assert entry.category == "inventories.complete.success"
    assert entry.message == "Bob completed A1 - Aisle 1 for a second pass (2 references, total 3.5)"


def test_complete_uses_configured_sku_prefix(
    sqlite_unit_of_work: UowFactory,
    clock: TickingClock,
    audit_sink: RecordingAuditSink,
    zone: Zone,
) -> None:
    result = app.complete_run(
        CompleteRunRequest(
            zone_id=zone.id,
            count_type=1,
            owner=ALICE,
            lines=[CountLineInput(code="111", quantity=1)],
        ),
        unit_of_work_factory=sqlite_unit_of_work,
        clock=clock,
        audit=audit_sink,
        config=CountingConfig(unknown_sku_prefix="NEW-"),
    )

    detail = app.get_completed_run_detail(result.run_id, unit_of_work_factory=sqlite_unit_of_work)
    assert [item.sku for item in detail.items] == ["NEW-111"]


def test_failed_operations_are_not_audited(
    sqlite_unit_of_work: UowFactory,
    clock: TickingClock,
    audit_sink: RecordingAuditSink,
    zone: Zone,
) -> None:
    _complete(sqlite_unit_of_work, clock, audit_sink, zone, 5, owner=ALICE)

    with pytest.raises(ConflictError):
        _complete(sqlite_unit_of_work, clock, audit_sink, zone, 5, count_type=2, owner=ALICE)

    assert audit_sink.categories == ["inventories.complete.success"]


def test_release_restart_and_reset_are_audited(
    sqlite_unit_of_work: UowFactory,
    clock: TickingClock,
    audit_sink: RecordingAuditSink,
    zone: Zone,
) -> None:
    started = app.start_run(
        StartRunRequest(zone_id=zone.id, count_type=3, owner=CAROL),
        unit_of_work_factory=sqlite_unit_of_work,
        clock=clock,
        audit=audit_sink,
    )
    app.release_run(
        ReleaseRunRequest(run_id=started.run_id, zone_id=zone.id, owner=CAROL),
        unit_of_work_factory=sqlite_unit_of_work,
        audit=audit_sink,
    )
    restarted = app.restart_run(
        RestartRunRequest(zone_id=zone.id, count_type=3, owner=CAROL),
        unit_of_work_factory=sqlite_unit_of_work,
        clock=clock,
        audit=audit_sink,
    )
    reset = app.reset_shop_inventory(
        SHOP_ID,
        unit_of_work_factory=sqlite_unit_of_work,
        audit=audit_sink,
    )

    assert restarted.closed_runs == 0
    assert reset.runs == 0
    assert audit_sink.categories == [
        "inventories.start.success",
        "inventories.release.success",
        "inventories.restart.success",
        "inventories.reset",
    ]
    assert audit_sink.entries[-1].actor is None


def test_read_operations_use_the_started_adapter(
    sqlite_unit_of_work: UowFactory,
    clock: TickingClock,
    audit_sink: RecordingAuditSink,
    zone: Zone,
) -> None:
    _complete(sqlite_unit_of_work, clock, audit_sink, zone, 5, owner=ALICE)
    _complete(sqlite_unit_of_work, clock, audit_sink, zone, 8, count_type=2, owner=BOB)

    summary = app.get_summary(SHOP_ID, config=CountingConfig(completed_runs_limit=1))
    detail = app.get_zone_conflict_detail(zone.id)
    report = app.get_finalized_zone_report(SHOP_ID)
    [status] = app.get_zone_statuses(SHOP_ID, count_type=2)

    assert len(summary.completed_runs) == 1
    assert [item.delta for item in detail.items] == [Decimal(-3)]
    assert [entry.count_type for entry in report] == [2]
    assert not status.is_busy
    assert [entry.status for entry in status.count_statuses] == [
        CountProgress.COMPLETED,
        CountProgress.COMPLETED,
    ]
