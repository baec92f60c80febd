"""Read projections over counting state: shop summary, zone conflicts and reports."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from stocktake.domain.errors import BadRequestError, NotFoundError
from stocktake.domain.model import FIRST_PASS, SECOND_PASS, CountProgress

from .aggregation import ZERO, product_key, quantities_by_run

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from uuid import UUID

    from stocktake.domain.model import (
        CountingRun,
        LineSnapshot,
        OwnerRef,
        RunHeader,
        Zone,
        ZoneConflictCount,
    )
    from stocktake.domain.ports import InventoryUnitOfWork

UnitOfWorkFactory = Callable[[], "InventoryUnitOfWork"]

DEFAULT_COMPLETED_RUNS_LIMIT = 50

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InventorySummary:
    shop_id: UUID
    active_sessions: int
    last_activity: datetime | None
    open_runs: tuple[RunHeader, ...]
    completed_runs: tuple[RunHeader, ...]
    conflict_zones: tuple[ZoneConflictCount, ...]


@dataclass(frozen=True, slots=True)
class ConflictRun:
    run_id: UUID
    count_type: int
    owner: OwnerRef | None
    completed_at: datetime


@dataclass(frozen=True, slots=True)
class RunQuantity:
    run_id: UUID
    count_type: int
    quantity: Decimal


@dataclass(frozen=True, slots=True)
class ConflictItem:
    product_id: UUID
    code: str | None
    sku: str
    name: str
    quantities: tuple[RunQuantity, ...]
    delta: Decimal

    def quantity_for(self, run_id: UUID) -> Decimal:
        for entry in self.quantities:
            if entry.run_id == run_id:
                return entry.quantity
        return ZERO


@dataclass(frozen=True, slots=True)
class ZoneConflictDetail:
    zone_id: UUID
    zone_code: str
    zone_label: str
    runs: tuple[ConflictRun, ...]
    items: tuple[ConflictItem, ...]


@dataclass(frozen=True, slots=True)
class RunItem:
    product_id: UUID
    code: str | None
    sku: str
    name: str
    quantity: Decimal


@dataclass(frozen=True, slots=True)
class CompletedRunDetail:
    run_id: UUID
    zone_id: UUID
    zone_code: str
    zone_label: str
    count_type: int
    owner: OwnerRef | None
    started_at: datetime
    completed_at: datetime
    items: tuple[RunItem, ...]


@dataclass(frozen=True, slots=True)
class FinalizedZone:
    zone_id: UUID
    zone_code: str
    zone_label: str
    run_id: UUID
    count_type: int
    owner: OwnerRef | None
    completed_at: datetime
    items: tuple[RunItem, ...]

    @property
    def total_quantity(self) -> Decimal:
        return sum((item.quantity for item in self.items), ZERO)


@dataclass(frozen=True, slots=True)
class CountStatus:
    count_type: int
    status: CountProgress
    run_id: UUID | None = None
    owner: OwnerRef | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ZoneStatus:
    """Occupancy of a zone and the progress of each count type on it."""

    zone_id: UUID
    zone_code: str
    zone_label: str
    disabled: bool
    busy_by: OwnerRef | None
    active_run_id: UUID | None
    active_count_type: int | None
    active_started_at: datetime | None
    count_statuses: tuple[CountStatus, ...]

    @property
    def is_busy(self) -> bool:
        return self.active_run_id is not None

    def status_for(self, count_type: int) -> CountStatus | None:
        for status in self.count_statuses:
            if status.count_type == count_type:
                return status
        return None


def get_summary(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    completed_runs_limit: int = DEFAULT_COMPLETED_RUNS_LIMIT,
) -> InventorySummary:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        return InventorySummary(
            shop_id=shop_id,
            active_sessions=repositories.sessions.count_open_for_shop(shop_id),
            last_activity=repositories.runs.last_activity_for_shop(shop_id),
            open_runs=tuple(repositories.runs.open_with_lines_for_shop(shop_id)),
            completed_runs=tuple(
                repositories.runs.recent_completed_for_shop(shop_id, completed_runs_limit)
            ),
            conflict_zones=tuple(repositories.conflicts.open_counts_for_shop(shop_id)),
        )


def get_zone_conflict_detail(
    zone_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> ZoneConflictDetail:
    """Per-product quantities of every run in the zone's active conflict window."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        zone = repositories.zones.get(zone_id)
        if zone is None:
            raise NotFoundError("Zone not found", details={"zone_id": zone_id})

        open_conflicts = repositories.conflicts.open_for_zone(zone_id)
        if not open_conflicts:
            return _conflict_detail(zone, (), ())

        completed = repositories.runs.completed_for_zone(zone_id)
        window = _conflict_window(completed, {row.run_id for row in open_conflicts})
        snapshots = repositories.lines.snapshots_for_runs([run.id for run in window])

    quantities = quantities_by_run(snapshots)
    latest_first = _latest_of_type(window, FIRST_PASS)
    latest_second = _latest_of_type(window, SECOND_PASS)

    items: dict[str, ConflictItem] = {}
    for row in open_conflicts:
        key = product_key(row.product_code, row.product_id)
        if key in items:
            continue
        per_run = tuple(
            RunQuantity(
                run_id=run.id,
                count_type=run.count_type,
                quantity=quantities.get(run.id, {}).get(key, ZERO),
            )
            for run in window
        )
        first = _quantity(quantities, latest_first, key)
        second = _quantity(quantities, latest_second, key)
        items[key] = ConflictItem(
            product_id=row.product_id,
            code=row.product_code,
            sku=row.sku,
            name=row.name,
            quantities=per_run,
            delta=first - second,
        )

    ordered = tuple(items[key] for key in sorted(items))
    runs = tuple(
        ConflictRun(
            run_id=run.id,
            count_type=run.count_type,
            owner=run.owner,
            completed_at=_completed_at(run),
        )
        for run in window
    )
    return _conflict_detail(zone, runs, ordered)


def get_completed_run_detail(
    run_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> CompletedRunDetail:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        header = repositories.runs.header(run_id)
        if header is None or header.completed_at is None:
            raise NotFoundError("Completed run not found", details={"run_id": run_id})
        snapshots = repositories.lines.snapshots_for_runs([run_id])

    return CompletedRunDetail(
        run_id=header.run_id,
        zone_id=header.zone_id,
        zone_code=header.zone_code,
        zone_label=header.zone_label,
        count_type=header.count_type,
        owner=header.owner,
        started_at=header.started_at,
        completed_at=header.completed_at,
        items=tuple(
            sorted(
                (_run_item(snapshot) for snapshot in snapshots),
                key=lambda item: (item.code or item.sku, item.sku),
            )
        ),
    )


def get_finalized_zone_report(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> tuple[FinalizedZone, ...]:
    """For each zone, the completed run with the highest count type and its items."""

    report: list[FinalizedZone] = []
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        zones = sorted(
            repositories.zones.for_shop(shop_id),
            key=lambda zone: (zone.code, zone.label),
        )
        for zone in zones:
            completed = repositories.runs.completed_for_zone(zone.id)
            if not completed:
                continue
            final = max(completed, key=lambda run: (run.count_type, _completed_at(run)))
            snapshots = repositories.lines.snapshots_for_runs([final.id])
            report.append(
                FinalizedZone(
                    zone_id=zone.id,
                    zone_code=zone.code,
                    zone_label=zone.label,
                    run_id=final.id,
                    count_type=final.count_type,
                    owner=final.owner,
                    completed_at=_completed_at(final),
                    items=_aggregate_items(snapshots),
                )
            )
    log.debug("Finalized report for shop %s covers %s zones", shop_id, len(report))
    return tuple(report)


def _conflict_window(
    completed: Sequence[CountingRun],
    anchor_run_ids: set[UUID],
) -> list[CountingRun]:
    carrying = [run for run in completed if run.id in anchor_run_ids]
    for count_type in (FIRST_PASS, SECOND_PASS):
        latest = _latest_of_type(completed, count_type)
        if latest is not None:
            carrying.append(latest)
    if not carrying:
        return list(completed)
    window_start = min(_completed_at(run) for run in carrying)
    return [run for run in completed if _completed_at(run) >= window_start]


def _latest_of_type(runs: Iterable[CountingRun], count_type: int) -> CountingRun | None:
    latest: CountingRun | None = None
    for run in runs:
        if run.count_type != count_type:
            continue
        if latest is None or _completed_at(run) >= _completed_at(latest):
            latest = run
    return latest


def _quantity(
    quantities: dict[UUID, dict[str, Decimal]],
    run: CountingRun | None,
    key: str,
) -> Decimal:
    if run is None:
        return ZERO
    return quantities.get(run.id, {}).get(key, ZERO)


def _completed_at(run: CountingRun) -> datetime:
    if run.completed_at is None:
        raise ValueError(f"Run {run.id} is not completed")
    return run.completed_at


def _run_item(snapshot: LineSnapshot) -> RunItem:
    return RunItem(
        product_id=snapshot.product_id,
        code=snapshot.product_code,
        sku=snapshot.sku,
        name=snapshot.name,
        quantity=snapshot.quantity,
    )


def _aggregate_items(snapshots: Iterable[LineSnapshot]) -> tuple[RunItem, ...]:
    items: dict[str, RunItem] = {}
    for snapshot in snapshots:
        key = product_key(snapshot.product_code, snapshot.product_id)
        existing = items.get(key)
        if existing is None:
            items[key] = _run_item(snapshot)
            continue
        items[key] = RunItem(
            product_id=existing.product_id,
            code=existing.code,
            sku=existing.sku,
            name=existing.name,
            quantity=existing.quantity + snapshot.quantity,
        )
    return tuple(items[key] for key in sorted(items))


def _conflict_detail(
    zone: Zone,
    runs: tuple[ConflictRun, ...],
    items: tuple[ConflictItem, ...],
) -> ZoneConflictDetail:
    return ZoneConflictDetail(
        zone_id=zone.id,
        zone_code=zone.code,
        zone_label=zone.label,
        runs=runs,
        items=items,
    )


def get_zone_statuses(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    count_type: int | None = None,
    include_disabled: bool = False,
) -> tuple[ZoneStatus, ...]:
    """List the shop's zones with their busy state and per count type progress.

    A zone is busy while an active run with at least one line exists on it, restricted
    to ``count_type`` when one is given. Count types 1 and 2 are always reported, plus
    the requested type and any type that has runs on the listed zones.
    """

    if count_type is not None and count_type < FIRST_PASS:
        raise BadRequestError(
            "Count type must be 1 or greater",
            details={"count_type": count_type},
        )

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        zones = [
            zone
            for zone in repositories.zones.for_shop(shop_id)
            if include_disabled or not zone.disabled
        ]
        headers = repositories.runs.headers_for_shop(shop_id)

    listed = {zone.id for zone in zones}
    busy: dict[tuple[UUID, int], RunHeader] = {}
    completed: dict[tuple[UUID, int], RunHeader] = {}
    for header in headers:
        if header.zone_id not in listed:
            continue
        key = (header.zone_id, header.count_type)
        if header.completed_at is None:
            if header.line_count > 0:
                busy.setdefault(key, header)
            continue
        current = completed.get(key)
        if current is None or _header_completed_at(header) > _header_completed_at(current):
            completed[key] = header

    count_types = sorted(
        {FIRST_PASS, SECOND_PASS}
        | ({count_type} if count_type is not None else set[int]())
        | {run_type for _, run_type in busy}
        | {run_type for _, run_type in completed}
    )

    statuses: list[ZoneStatus] = []
    for zone in zones:
        active = max(
            (
                header
                for (zone_id, run_type), header in busy.items()
                if zone_id == zone.id and (count_type is None or run_type == count_type)
            ),
            key=lambda header: header.started_at,
            default=None,
        )
        statuses.append(
            ZoneStatus(
                zone_id=zone.id,
                zone_code=zone.code,
                zone_label=zone.label,
                disabled=zone.disabled,
                busy_by=active.owner if active is not None else None,
                active_run_id=active.run_id if active is not None else None,
                active_count_type=active.count_type if active is not None else None,
                active_started_at=active.started_at if active is not None else None,
                count_statuses=tuple(
                    _count_status(
                        run_type,
                        busy.get((zone.id, run_type)),
                        completed.get((zone.id, run_type)),
                    )
                    for run_type in count_types
                ),
            )
        )
    return tuple(statuses)


def _count_status(
    count_type: int,
    in_progress: RunHeader | None,
    completed: RunHeader | None,
) -> CountStatus:
    header = in_progress or completed
    if header is None:
        return CountStatus(count_type=count_type, status=CountProgress.NOT_STARTED)
    return CountStatus(
        count_type=count_type,
        status=CountProgress.IN_PROGRESS if in_progress is not None else CountProgress.COMPLETED,
        run_id=header.run_id,
        owner=header.owner,
        started_at=header.started_at,
        completed_at=header.completed_at,
    )


def _header_completed_at(header: RunHeader) -> datetime:
    if header.completed_at is None:
        raise ValueError(f"Run {header.run_id} is not completed")
    return header.completed_at
