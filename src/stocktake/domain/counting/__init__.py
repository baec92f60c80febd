"""Counting core: run lifecycle, reconciliation, aggregation and projections."""

from __future__ import annotations

from .aggregation import (
    AggregatedLine,
    SubmittedLine,
    aggregate_quantities,
    aggregate_submission,
    product_key,
    quantities_by_run,
)
from .lifecycle import (
    CompleteRunRequest,
    CompleteRunResult,
    CountLineInput,
    ReleaseRunRequest,
    ResetInventoryResult,
    RestartRunRequest,
    RestartRunResult,
    StartRunRequest,
    StartRunResult,
    complete_run,
    release_run,
    reset_shop_inventory,
    restart_run,
    start_run,
)
from .projections import (
    CompletedRunDetail,
    ConflictItem,
    ConflictRun,
    CountStatus,
    FinalizedZone,
    InventorySummary,
    RunItem,
    RunQuantity,
    ZoneConflictDetail,
    ZoneStatus,
    get_completed_run_detail,
    get_finalized_zone_report,
    get_summary,
    get_zone_conflict_detail,
    get_zone_statuses,
)
from .reconciliation import ReconciliationOutcome, reconcile_run

__all__ = [
    "AggregatedLine",
    "CompleteRunRequest",
    "CompleteRunResult",
    "CompletedRunDetail",
    "ConflictItem",
    "ConflictRun",
    "CountLineInput",
    "CountStatus",
    "FinalizedZone",
    "InventorySummary",
    "ReconciliationOutcome",
    "ReleaseRunRequest",
    "ResetInventoryResult",
    "RestartRunRequest",
    "RestartRunResult",
    "RunItem",
    "RunQuantity",
    "StartRunRequest",
    "StartRunResult",
    "SubmittedLine",
    "ZoneConflictDetail",
    "ZoneStatus",
    "aggregate_quantities",
    "aggregate_submission",
    "complete_run",
    "get_completed_run_detail",
    "get_finalized_zone_report",
    "get_summary",
    "get_zone_conflict_detail",
    "get_zone_statuses",
    "product_key",
    "quantities_by_run",
    "reconcile_run",
    "release_run",
    "reset_shop_inventory",
    "restart_run",
    "start_run",
]
