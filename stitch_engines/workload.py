"""
stitch_engines.workload -- Machine allocation arithmetic.

Responsibility:
    Pure functions behind the Machine Allocation Ledger: estimated days per
    assignment, per-machine pending stitches, the entry ceiling offered to a
    new production entry, allocation-vs-plan checks and the per-assignment
    schedule status.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - estimated_days = ceil(assigned / avg_per_day); avg_per_day must be > 0.
    - pending = max(0, assigned - used).
    - entry_ceiling = min(item remaining, machine pending), never negative.
    - A sum of assigned stitches different from the planned total is a
      warning, never an error.

Failure modes:
    - InvalidProductionRateError from estimated_days when avg_per_day <= 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from stitch_engines.tracer import traced_engine
from stitch_kernel.domain.results import ConsistencyWarning, WarningCode
from stitch_kernel.domain.values import ceil_div, clamp_remaining
from stitch_kernel.exceptions import InvalidProductionRateError


class MachineStatus(str, Enum):
    OPEN = "Open"
    COMPLETED = "Completed"
    DELAYED = "Delayed"
    OVERPRODUCED = "Overproduced"


@dataclass(frozen=True)
class AllocationLine:
    """One machine's share as seen by the allocation checks."""

    machine_id: str
    assigned_stitches: int
    avg_stitches_per_day: int


def estimated_days(
    assigned_stitches: int, avg_stitches_per_day: int, machine_id: str = ""
) -> int:
    if avg_stitches_per_day <= 0:
        raise InvalidProductionRateError(machine_id, avg_stitches_per_day)
    return ceil_div(assigned_stitches, avg_stitches_per_day)


def machine_pending(assigned_stitches: int, used_stitches: int) -> int:
    return clamp_remaining(assigned_stitches, used_stitches)


def entry_ceiling(item_remaining: int, machine_pending_stitches: int) -> int:
    """Largest entry that keeps both the item and the machine within plan."""
    return max(0, min(item_remaining, machine_pending_stitches))


@traced_engine("workload", "1.0", fingerprint_fields=("planned_total", "lines"))
def check_allocation(
    planned_total: int, lines: tuple[AllocationLine, ...]
) -> tuple[ConsistencyWarning, ...]:
    """Validate a full allocation and report the planned-total mismatch.

    Raises:
        InvalidProductionRateError: if any line has avg_stitches_per_day <= 0.
    """
    for line in lines:
        if line.avg_stitches_per_day <= 0:
            raise InvalidProductionRateError(line.machine_id, line.avg_stitches_per_day)

    assigned_total = sum(line.assigned_stitches for line in lines)
    if assigned_total == planned_total:
        return ()
    return (
        ConsistencyWarning(
            code=WarningCode.ALLOCATION_MISMATCH,
            message=(
                f"Assigned stitches {assigned_total} do not match "
                f"planned total {planned_total}"
            ),
            details={
                "assigned_total": assigned_total,
                "planned_total": planned_total,
                "difference": assigned_total - planned_total,
            },
        ),
    )


def actual_days(first_entry: date | None, last_entry: date | None) -> int:
    """Inclusive span of production days; 0 when nothing was produced."""
    if first_entry is None or last_entry is None:
        return 0
    return (last_entry - first_entry).days + 1


def machine_status(
    assigned_stitches: int,
    used_stitches: int,
    estimated: int,
    days_worked: int,
) -> MachineStatus:
    """Classify one assignment.

    A machine that finished its assignment in more production days than
    estimated is Delayed rather than Completed.
    """
    if used_stitches > assigned_stitches:
        return MachineStatus.OVERPRODUCED
    if used_stitches > 0 and used_stitches == assigned_stitches:
        if estimated > 0 and days_worked > estimated:
            return MachineStatus.DELAYED
        return MachineStatus.COMPLETED
    return MachineStatus.OPEN
