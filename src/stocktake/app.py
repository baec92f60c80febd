"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from stocktake.adapters.audit import LoggingAuditSink
from stocktake.adapters.clock import SystemClock
from stocktake.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    is_started,
    startup,
)
from stocktake.config import get_counting_config
from stocktake.domain.counting import lifecycle, projections
from stocktake.domain.model import describe_count_type
from stocktake.domain.ports.unit_of_work import InventoryUnitOfWork

if TYPE_CHECKING:
    from uuid import UUID

    from stocktake.config import CountingConfig
    from stocktake.domain.counting import (
        CompletedRunDetail,
        CompleteRunRequest,
        CompleteRunResult,
        FinalizedZone,
        InventorySummary,
        ReleaseRunRequest,
        ResetInventoryResult,
        RestartRunRequest,
        RestartRunResult,
        StartRunRequest,
        StartRunResult,
        ZoneConflictDetail,
        ZoneStatus,
    )
    from stocktake.domain.ports import AuditSink, Clock

UnitOfWorkFactory = Callable[[], InventoryUnitOfWork]


log = getLogger(__name__)


def _resolve_unit_of_work(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyInventoryUnitOfWork


def _zone_label(code: str, label: str) -> str:
    return f"{code} - {label}" if label else code


def start_run(
    request: StartRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    clock: Clock | None = None,
    audit: AuditSink | None = None,
) -> StartRunResult:
    """Start or resume a counting run using the configured adapters."""

    result = lifecycle.start_run(
        request,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
        clock=clock or SystemClock(),
    )
    verb = "resumed" if result.resumed else "started"
    (audit or LoggingAuditSink()).record(
        f"{request.owner.display} {verb} {_zone_label(result.zone_code, result.zone_label)} "
        f"for a {describe_count_type(result.count_type)}",
        actor=request.owner.display,
        category="inventories.start.resumed" if result.resumed else "inventories.start.success",
    )
    return result


def complete_run(
    request: CompleteRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    clock: Clock | None = None,
    audit: AuditSink | None = None,
    config: CountingConfig | None = None,
) -> CompleteRunResult:
    """Complete a counting run and reconcile the zone."""

    counting = config or get_counting_config()
    result = lifecycle.complete_run(
        request,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
        clock=clock or SystemClock(),
        unknown_sku_prefix=counting.unknown_sku_prefix,
        sku_max_length=counting.sku_max_length,
    )
    (audit or LoggingAuditSink()).record(
        f"{request.owner.display} completed {_zone_label(result.zone_code, result.zone_label)} "
        f"for a {describe_count_type(result.count_type)} "
        f"({result.item_count} references, total {result.total_quantity})",
        actor=request.owner.display,
        category="inventories.complete.success",
    )
    log.info(
        "Zone %s reconciled: %s conflicts opened, %s retracted",
        result.zone_code,
        result.conflicts_created,
        result.conflicts_retracted,
    )
    return result


def release_run(
    request: ReleaseRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    audit: AuditSink | None = None,
) -> None:
    lifecycle.release_run(
        request,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
    )
    (audit or LoggingAuditSink()).record(
        f"{request.owner.display} released run {request.run_id} of zone {request.zone_id}",
        actor=request.owner.display,
        category="inventories.release.success",
    )


def restart_run(
    request: RestartRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    clock: Clock | None = None,
    audit: AuditSink | None = None,
) -> RestartRunResult:
    result = lifecycle.restart_run(
        request,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
        clock=clock or SystemClock(),
    )
    (audit or LoggingAuditSink()).record(
        f"{request.owner.display} restarted zone {request.zone_id} "
        f"for a {describe_count_type(request.count_type)} ({result.closed_runs} runs closed)",
        actor=request.owner.display,
        category="inventories.restart.success",
    )
    return result


def reset_shop_inventory(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    audit: AuditSink | None = None,
) -> ResetInventoryResult:
    result = lifecycle.reset_shop_inventory(
        shop_id,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
    )
    (audit or LoggingAuditSink()).record(
        f"Inventory of shop {shop_id} reset: {result.runs} runs, {result.lines} lines, "
        f"{result.conflicts} conflicts removed",
        actor=None,
        category="inventories.reset",
    )
    return result


def get_summary(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: CountingConfig | None = None,
) -> InventorySummary:
    counting = config or get_counting_config()
    return projections.get_summary(
        shop_id,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
        completed_runs_limit=counting.completed_runs_limit,
    )


def get_zone_conflict_detail(
    zone_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ZoneConflictDetail:
    return projections.get_zone_conflict_detail(
        zone_id,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
    )


def get_completed_run_detail(
    run_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> CompletedRunDetail:
    return projections.get_completed_run_detail(
        run_id,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
    )


def get_finalized_zone_report(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[FinalizedZone, ...]:
    return projections.get_finalized_zone_report(
        shop_id,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
    )


def get_zone_statuses(
    shop_id: UUID,
    *,
    count_type: int | None = None,
    include_disabled: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[ZoneStatus, ...]:
    return projections.get_zone_statuses(
        shop_id,
        unit_of_work_factory=_resolve_unit_of_work(unit_of_work_factory),
        count_type=count_type,
        include_disabled=include_disabled,
    )
