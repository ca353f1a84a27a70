"""
stitch_engines -- pure calculation engines.

Every engine is deterministic and free of I/O.  Services read state, call an
engine and persist what it returns.  Public entry points are decorated with
``@traced_engine`` and emit a STITCH_ENGINE_TRACE log record.
"""

from stitch_engines.clipping import (
    ClipLine,
    ClipRollup,
    RollupStatus,
    clip_status,
    rollup,
    vendor_rollup,
)
from stitch_engines.progress import (
    ContractProgress,
    ContractProgressStatus,
    DaysLeft,
    ItemProgress,
    Schedule,
    contract_duration,
    contract_progress,
    days_left,
    item_progress,
    schedule,
)
from stitch_engines.rate_cascade import (
    CascadeParameters,
    CascadeResult,
    CascadeState,
    DerivedField,
    DerivedRates,
    FieldStatus,
    RateInputs,
    compute_rates,
    heads_for_cost_factor,
)
from stitch_engines.workload import (
    AllocationLine,
    MachineStatus,
    actual_days,
    check_allocation,
    entry_ceiling,
    estimated_days,
    machine_pending,
    machine_status,
)

__all__ = [
    # rate cascade
    "CascadeParameters",
    "CascadeResult",
    "CascadeState",
    "DerivedField",
    "DerivedRates",
    "FieldStatus",
    "RateInputs",
    "compute_rates",
    "heads_for_cost_factor",
    # workload
    "AllocationLine",
    "MachineStatus",
    "actual_days",
    "check_allocation",
    "entry_ceiling",
    "estimated_days",
    "machine_pending",
    "machine_status",
    # progress
    "ContractProgress",
    "ContractProgressStatus",
    "DaysLeft",
    "ItemProgress",
    "Schedule",
    "contract_duration",
    "contract_progress",
    "days_left",
    "item_progress",
    "schedule",
    # clipping
    "ClipLine",
    "ClipRollup",
    "RollupStatus",
    "clip_status",
    "rollup",
    "vendor_rollup",
]
