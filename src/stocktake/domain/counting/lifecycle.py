"""Counting run lifecycle: start, complete, release, restart and shop reset.

Every operation runs inside a single unit of work. Preconditions are checked before
the first write so that a failed request leaves the store untouched; anything raised
inside the ``with`` block rolls the transaction back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Final

from stocktake.domain.codes import validate_code
from stocktake.domain.errors import (
    BadRequestError,
    ConflictError,
    FieldFailure,
    NotFoundError,
    ValidationError,
)
from stocktake.domain.model import (
    FIRST_PASS,
    QUANTITY_PRECISION,
    QUANTITY_SCALE,
    SECOND_PASS,
    CountingRun,
    CountLine,
    InventorySession,
    OwnerRef,
    Product,
)

from .aggregation import AggregatedLine, SubmittedLine, aggregate_submission
from .reconciliation import reconcile_run

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from stocktake.domain.model import Zone
    from stocktake.domain.ports import Clock, InventoryRepositories, InventoryUnitOfWork

UnitOfWorkFactory = Callable[[], "InventoryUnitOfWork"]

UNKNOWN_SKU_PREFIX: Final[str] = "UNK-"
SKU_MAX_LENGTH: Final[int] = 32

log = logging.getLogger(__name__)

type RawQuantity = Decimal | int | float | str


# Requests and results --------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CountLineInput:
    """A line as submitted by a client, before validation."""

    code: str | None
    quantity: RawQuantity | None
    manual: bool = False


@dataclass(frozen=True, slots=True)
class StartRunRequest:
    zone_id: UUID
    count_type: int
    owner: OwnerRef
    shop_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class StartRunResult:
    run_id: UUID
    session_id: UUID
    zone_id: UUID
    zone_code: str
    zone_label: str
    count_type: int
    owner: OwnerRef | None
    started_at: datetime
    resumed: bool


@dataclass(frozen=True, slots=True)
class CompleteRunRequest:
    zone_id: UUID
    count_type: int
    owner: OwnerRef
    lines: Sequence[CountLineInput]
    run_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class CompleteRunResult:
    run_id: UUID
    session_id: UUID
    zone_id: UUID
    zone_code: str
    zone_label: str
    count_type: int
    completed_at: datetime
    item_count: int
    total_quantity: Decimal
    conflicts_created: int = 0
    conflicts_retracted: int = 0


@dataclass(frozen=True, slots=True)
class ReleaseRunRequest:
    run_id: UUID
    zone_id: UUID
    owner: OwnerRef


@dataclass(frozen=True, slots=True)
class RestartRunRequest:
    zone_id: UUID
    count_type: int
    owner: OwnerRef


@dataclass(frozen=True, slots=True)
class RestartRunResult:
    zone_id: UUID
    count_type: int
    restarted_at: datetime
    closed_runs: int


@dataclass(frozen=True, slots=True)
class ResetInventoryResult:
    shop_id: UUID
    zones: int
    runs: int
    lines: int
    conflicts: int
    sessions: int


# Operations ------------------------------------------------------------------


def start_run(
    request: StartRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    clock: Clock,
) -> StartRunResult:
    """Start (or resume) a run for a zone and count type.

    A busy run (active with at least one line) blocks every other owner. An empty
    active run of the same owner is handed back instead of opening a new one.
    """

    _require_count_type(request.count_type)

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        zone = _load_zone(repositories, request.zone_id, shop_id=request.shop_id)
        repositories.zones.lock(zone.id)

        placeholder: CountingRun | None = None
        for run in repositories.runs.find_active(zone.id, request.count_type):
            if repositories.runs.count_lines(run.id) > 0:
                if not run.is_owned_by(request.owner):
                    raise _busy_error(zone, run)
                log.info("Resuming busy run %s on zone %s", run.id, zone.code)
                return _start_result(zone, run, resumed=True)
            owner = run.owner
            if placeholder is None and owner is not None and owner.matches(request.owner):
                placeholder = run

        if placeholder is not None:
            log.info("Resuming empty run %s on zone %s", placeholder.id, zone.code)
            return _start_result(zone, placeholder, resumed=True)

        now = clock.now()
        session = InventorySession(name=_session_name(zone), started_at=now)
        run = CountingRun(
            session_id=session.id,
            zone_id=zone.id,
            count_type=request.count_type,
            started_at=now,
        )
        run.assign_owner(request.owner)
        repositories.sessions.add(session)
        repositories.runs.add(run)
        uow.commit()

    log.info(
        "Started run %s on zone %s (type %s) for %s",
        run.id,
        zone.code,
        run.count_type,
        request.owner.display,
    )
    return _start_result(zone, run, resumed=False)


def complete_run(
    request: CompleteRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    clock: Clock,
    unknown_sku_prefix: str = UNKNOWN_SKU_PREFIX,
    sku_max_length: int = SKU_MAX_LENGTH,
) -> CompleteRunResult:
    """Persist the counted lines of a run, close it and reconcile the zone."""

    _require_count_type(request.count_type)
    aggregated = aggregate_submission(validate_lines(request.lines))

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        zone = _load_zone(repositories, request.zone_id)

        run: CountingRun | None = None
        if request.run_id is not None:
            run = _load_completable_run(repositories, request.run_id, zone, request.owner)
        if request.count_type == SECOND_PASS:
            _ensure_distinct_second_pass_owner(repositories, zone, request.owner)

        now = clock.now()
        session: InventorySession | None
        if run is None:
            session = InventorySession(name=_session_name(zone), started_at=now)
            run = CountingRun(
                session_id=session.id,
                zone_id=zone.id,
                count_type=request.count_type,
                started_at=now,
            )
            repositories.sessions.add(session)
            repositories.runs.add(run)
        else:
            session = repositories.sessions.get(run.session_id)

        products = _resolve_products(
            repositories,
            zone,
            aggregated,
            now,
            unknown_sku_prefix=unknown_sku_prefix,
            sku_max_length=sku_max_length,
        )
        for line in aggregated:
            repositories.lines.add(
                CountLine(
                    run_id=run.id,
                    product_id=products[line.code].id,
                    quantity=line.quantity,
                    counted_at=now,
                    manual=line.manual,
                )
            )

        run.count_type = request.count_type
        run.assign_owner(request.owner)
        run.complete(now)
        if session is not None and not repositories.sessions.has_active_runs(session.id):
            session.complete(now)

        outcome = reconcile_run(repositories, zone_id=zone.id, run=run, now=now)
        uow.commit()

    total = sum((line.quantity for line in aggregated), Decimal(0))
    log.info(
        "Completed run %s on zone %s (type %s): %s items, total %s",
        run.id,
        zone.code,
        run.count_type,
        len(aggregated),
        total,
    )
    return CompleteRunResult(
        run_id=run.id,
        session_id=run.session_id,
        zone_id=zone.id,
        zone_code=zone.code,
        zone_label=zone.label,
        count_type=run.count_type,
        completed_at=now,
        item_count=len(aggregated),
        total_quantity=total,
        conflicts_created=outcome.created,
        conflicts_retracted=outcome.retracted,
    )


def release_run(
    request: ReleaseRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> None:
    """Drop an empty active run, and its session once nothing else refers to it."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        run = repositories.runs.get(request.run_id)
        if run is None or run.zone_id != request.zone_id or not run.is_active:
            raise NotFoundError(
                "No active run to release",
                details={"run_id": request.run_id, "zone_id": request.zone_id},
            )
        if not run.is_owned_by(request.owner):
            raise _owned_elsewhere_error(run, "release")
        line_count = repositories.runs.count_lines(run.id)
        if line_count > 0:
            raise ConflictError(
                "A run with counted lines cannot be released",
                details={"run_id": run.id, "line_count": line_count},
            )

        repositories.runs.remove(run)
        session_removed = False
        if not repositories.sessions.has_runs(run.session_id):
            session = repositories.sessions.get(run.session_id)
            if session is not None:
                repositories.sessions.remove(session)
                session_removed = True
        uow.commit()

    log.info("Released run %s (session removed: %s)", run.id, session_removed)


def restart_run(
    request: RestartRunRequest,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    clock: Clock,
) -> RestartRunResult:
    """Force-complete every active run of the zone and count type."""

    now = clock.now()
    with unit_of_work_factory() as uow:
        closed = uow.repositories.runs.complete_active(request.zone_id, request.count_type, now)
        uow.commit()

    log.info(
        "Restarted zone %s (type %s) for %s: closed %s runs",
        request.zone_id,
        request.count_type,
        request.owner.display,
        closed,
    )
    return RestartRunResult(
        zone_id=request.zone_id,
        count_type=request.count_type,
        restarted_at=now,
        closed_runs=closed,
    )


def reset_shop_inventory(
    shop_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> ResetInventoryResult:
    """Remove every conflict, line, run and session attached to the shop's zones."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        zone_ids = [zone.id for zone in repositories.zones.for_shop(shop_id)]
        runs = repositories.runs.for_zones(zone_ids)
        run_ids = [run.id for run in runs]
        session_ids = {run.session_id for run in runs}

        conflicts = repositories.conflicts.delete_for_runs(run_ids)
        lines = repositories.lines.delete_for_runs(run_ids)
        deleted_runs = repositories.runs.delete_many(run_ids)
        sessions = repositories.sessions.remove_orphans(session_ids)
        uow.commit()

    result = ResetInventoryResult(
        shop_id=shop_id,
        zones=len({run.zone_id for run in runs}),
        runs=deleted_runs,
        lines=lines,
        conflicts=conflicts,
        sessions=sessions,
    )
    log.info("Reset inventory of shop %s: %s", shop_id, result)
    return result


# Validation ------------------------------------------------------------------


def validate_lines(lines: Sequence[CountLineInput]) -> list[SubmittedLine]:
    """Validate every submitted line, reporting all failures at once."""

    if not lines:
        raise ValidationError(
            (FieldFailure("items", "At least one counted line is required"),),
        )

    failures: list[FieldFailure] = []
    valid: list[SubmittedLine] = []
    for index, line in enumerate(lines):
        code: str | None = None
        quantity: Decimal | None = None
        try:
            code = validate_code(line.code)
        except ValueError as exc:
            failures.append(FieldFailure(f"items[{index}].code", str(exc)))
        try:
            quantity = parse_quantity(line.quantity)
        except ValueError as exc:
            failures.append(FieldFailure(f"items[{index}].quantity", str(exc)))
        if code is not None and quantity is not None:
            valid.append(SubmittedLine(code=code, quantity=quantity, manual=line.manual))

    if failures:
        raise ValidationError(tuple(failures))
    return valid


def parse_quantity(value: RawQuantity | None) -> Decimal:
    """Return a finite, non-negative decimal quantity or raise ``ValueError``."""

    if value is None or isinstance(value, bool):
        raise ValueError("Quantity is required")
    try:
        if isinstance(value, Decimal):
            quantity = value
        elif isinstance(value, float):
            quantity = Decimal(str(value))
        elif isinstance(value, str):
            quantity = Decimal(value.strip())
        else:
            quantity = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Quantity {value!r} is not a number") from exc
    if not quantity.is_finite():
        raise ValueError("Quantity must be a finite number")
    if quantity < 0:
        raise ValueError("Quantity must be zero or positive")
    exponent = quantity.normalize().as_tuple().exponent
    if isinstance(exponent, int) and -exponent > QUANTITY_SCALE:
        raise ValueError(f"Quantity allows at most {QUANTITY_SCALE} decimal places")
    if quantity and quantity.adjusted() >= QUANTITY_PRECISION - QUANTITY_SCALE:
        raise ValueError(
            f"Quantity allows at most {QUANTITY_PRECISION - QUANTITY_SCALE} integer digits"
        )
    return quantity


def unknown_product_sku(
    code: str,
    *,
    prefix: str = UNKNOWN_SKU_PREFIX,
    max_length: int = SKU_MAX_LENGTH,
) -> str:
    """Build the SKU of a placeholder product, keeping the code's trailing characters."""

    sku = f"{prefix}{code}"
    if len(sku) <= max_length:
        return sku
    keep = max_length - len(prefix)
    if keep <= 0:
        return sku[:max_length]
    return f"{prefix}{code[-keep:]}"


# Helpers ---------------------------------------------------------------------


def _require_count_type(count_type: int) -> None:
    if count_type < 1:
        raise BadRequestError(
            "Count type must be 1 or greater",
            details={"count_type": count_type},
        )


def _load_zone(
    repositories: InventoryRepositories,
    zone_id: UUID,
    *,
    shop_id: UUID | None = None,
) -> Zone:
    zone = repositories.zones.get(zone_id)
    if zone is None or (shop_id is not None and zone.shop_id != shop_id):
        raise NotFoundError("Zone not found", details={"zone_id": zone_id})
    if zone.disabled:
        raise ConflictError(
            f"Zone {zone.code} is disabled",
            details={"zone_id": zone.id, "zone_code": zone.code},
        )
    return zone


def _load_completable_run(
    repositories: InventoryRepositories,
    run_id: UUID,
    zone: Zone,
    owner: OwnerRef,
) -> CountingRun:
    run = repositories.runs.get(run_id)
    if run is None:
        raise NotFoundError("Run not found", details={"run_id": run_id})
    if run.zone_id != zone.id:
        raise BadRequestError(
            "Run belongs to another zone",
            details={"run_id": run_id, "zone_id": zone.id},
        )
    if not run.is_owned_by(owner):
        raise _owned_elsewhere_error(run, "complete")
    if not run.is_active:
        raise ConflictError(
            "Run is already completed",
            details={"run_id": run_id, "completed_at": run.completed_at},
        )
    return run


def _ensure_distinct_second_pass_owner(
    repositories: InventoryRepositories,
    zone: Zone,
    owner: OwnerRef,
) -> None:
    first_pass = repositories.runs.latest_completed(zone.id, FIRST_PASS)
    if first_pass is None:
        return
    first_owner = first_pass.owner
    if first_owner is not None and first_owner.matches(owner):
        raise ConflictError(
            "The second pass must be counted by someone other than the first pass",
            details={"zone_id": zone.id, "first_pass_run_id": first_pass.id},
        )


def _resolve_products(
    repositories: InventoryRepositories,
    zone: Zone,
    lines: Sequence[AggregatedLine],
    now: datetime,
    *,
    unknown_sku_prefix: str,
    sku_max_length: int,
) -> dict[str, Product]:
    codes = [line.code for line in lines]
    products = repositories.products.find_by_codes(zone.shop_id, codes)
    for code in codes:
        if code in products:
            continue
        product = Product(
            shop_id=zone.shop_id,
            sku=unknown_product_sku(code, prefix=unknown_sku_prefix, max_length=sku_max_length),
            name=f"Unknown product {code}",
            code=code,
            created_at=now,
        )
        repositories.products.add(product)
        products[code] = product
        log.info("Created placeholder product %s for unknown code %s", product.sku, code)
    return products


def _session_name(zone: Zone) -> str:
    return f"Session zone {zone.code}"


def _start_result(zone: Zone, run: CountingRun, *, resumed: bool) -> StartRunResult:
    return StartRunResult(
        run_id=run.id,
        session_id=run.session_id,
        zone_id=zone.id,
        zone_code=zone.code,
        zone_label=zone.label,
        count_type=run.count_type,
        owner=run.owner,
        started_at=run.started_at,
        resumed=resumed,
    )


def _busy_error(zone: Zone, run: CountingRun) -> ConflictError:
    owner = run.owner
    label = owner.display if owner is not None else "another operator"
    return ConflictError(
        f"Zone {zone.code} is already being counted by {label}",
        details={"zone_id": zone.id, "run_id": run.id, "owner": label},
    )


def _owned_elsewhere_error(run: CountingRun, action: str) -> ConflictError:
    owner = run.owner
    label = owner.display if owner is not None else "another operator"
    return ConflictError(
        f"Only {label} can {action} this run",
        details={"run_id": run.id, "owner": label},
    )
