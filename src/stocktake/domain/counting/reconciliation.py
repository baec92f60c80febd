"""Conflict reconciliation between completed counting runs of a zone.

First and second passes are compared directly: every product whose aggregated
quantity differs between the run being completed and the latest completed run of the
other pass gets one open conflict. Control passes never raise conflicts; they clear
every open conflict of the zone when they reproduce an earlier completed run exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stocktake.domain.model import Conflict, counterpart_count_type

from .aggregation import differing_keys, product_key, quantities_by_run, same_quantities

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from stocktake.domain.model import CountingRun, LineSnapshot
    from stocktake.domain.ports import InventoryRepositories

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationOutcome:
    created: int = 0
    retracted: int = 0


def reconcile_run(
    repositories: InventoryRepositories,
    *,
    zone_id: UUID,
    run: CountingRun,
    now: datetime,
) -> ReconciliationOutcome:
    """Recompute the open conflicts of ``zone_id`` after ``run`` was completed."""

    counterpart_type = counterpart_count_type(run.count_type)
    if counterpart_type is not None:
        outcome = _reconcile_primary(repositories, zone_id, run, counterpart_type, now)
    else:
        outcome = _reconcile_control(repositories, zone_id, run)
    log.info(
        "Reconciled run %s (type %s): created=%s, retracted=%s",
        run.id,
        run.count_type,
        outcome.created,
        outcome.retracted,
    )
    return outcome


def _reconcile_primary(
    repositories: InventoryRepositories,
    zone_id: UUID,
    run: CountingRun,
    counterpart_type: int,
    now: datetime,
) -> ReconciliationOutcome:
    counterpart = repositories.runs.latest_completed(zone_id, counterpart_type)
    if counterpart is None:
        log.debug("No completed type %s run for zone %s yet", counterpart_type, zone_id)
        return ReconciliationOutcome()

    run_ids = (run.id, counterpart.id)
    retracted = repositories.conflicts.delete_open_for_runs(run_ids)
    snapshots = repositories.lines.snapshots_for_runs(run_ids)
    quantities = quantities_by_run(snapshots)
    anchors = _anchor_lines(snapshots)

    created = 0
    for key in differing_keys(quantities.get(run.id, {}), quantities.get(counterpart.id, {})):
        anchor = anchors.get((run.id, key)) or anchors.get((counterpart.id, key))
        if anchor is None:
            continue
        log.debug("Quantity mismatch on %s between runs %s and %s", key, run.id, counterpart.id)
        repositories.conflicts.add(Conflict(count_line_id=anchor.line_id, created_at=now))
        created += 1
    return ReconciliationOutcome(created=created, retracted=retracted)


def _reconcile_control(
    repositories: InventoryRepositories,
    zone_id: UUID,
    run: CountingRun,
) -> ReconciliationOutcome:
    completed = repositories.runs.completed_for_zone(zone_id)
    if len(completed) < 2:
        return ReconciliationOutcome()

    snapshots = repositories.lines.snapshots_for_runs([candidate.id for candidate in completed])
    quantities = quantities_by_run(snapshots)
    current = quantities.get(run.id, {})
    matched = next(
        (
            candidate
            for candidate in completed
            if candidate.id != run.id and same_quantities(current, quantities.get(candidate.id, {}))
        ),
        None,
    )
    if matched is None:
        log.debug("Control run %s matches no completed run of zone %s", run.id, zone_id)
        return ReconciliationOutcome()

    log.debug("Control run %s matches run %s", run.id, matched.id)
    return ReconciliationOutcome(retracted=repositories.conflicts.delete_open_for_zone(zone_id))


def _anchor_lines(snapshots: Iterable[LineSnapshot]) -> dict[tuple[UUID, str], LineSnapshot]:
    """Latest counted line per (run, product key)."""

    anchors: dict[tuple[UUID, str], LineSnapshot] = {}
    for snapshot in snapshots:
        slot = (snapshot.run_id, product_key(snapshot.product_code, snapshot.product_id))
        current = anchors.get(slot)
        if current is None or snapshot.counted_at >= current.counted_at:
            anchors[slot] = snapshot
    return anchors
