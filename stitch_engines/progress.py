"""
stitch_engines.progress -- Completion and schedule arithmetic.

Responsibility:
    Turn accumulated stitch/repeat counters into progress values: per-item
    progress, the volume-weighted contract aggregate and its status label,
    days left against the machine estimates, and the contract time schedule.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The Progress selectors
    feed it counters read from the database.

Invariants enforced:
    - remaining = max(0, planned - used).
    - percent = min(100, used / planned x 100) when planned > 0, else 0.
    - Contract percent is sum(used) / sum(planned), never a mean of item
      percentages.
    - days_left = ceil(total_estimated_days) - elapsed_days; negative means
      overdue.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from stitch_engines.tracer import traced_engine
from stitch_kernel.domain.values import (
    HUNDRED,
    PERCENT_PLACES,
    ceil_decimal,
    clamp_remaining,
    percent,
    round_places,
)


class ContractProgressStatus(str, Enum):
    ACTIVE = "Active"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    INACTIVE = "Inactive"


@dataclass(frozen=True)
class ItemProgress:
    planned: int
    used: int
    remaining: int
    percent: Decimal
    planned_repeats: int = 0
    used_repeats: int = 0
    remaining_repeats: int = 0
    repeat_percent: Decimal = Decimal("0.00")

    @property
    def is_over_consumed(self) -> bool:
        return self.used > self.planned


@dataclass(frozen=True)
class ContractProgress:
    planned: int
    used: int
    remaining: int
    percent: Decimal
    status: ContractProgressStatus
    item_count: int


@dataclass(frozen=True)
class DaysLeft:
    total_estimated_days: int
    elapsed_days: int
    days_left: int

    @property
    def is_overdue(self) -> bool:
        return self.days_left < 0


@dataclass(frozen=True)
class Schedule:
    duration_days: int
    elapsed_days: int
    days_remaining: int
    time_percent: Decimal


def item_progress(
    planned: int,
    used: int,
    planned_repeats: int = 0,
    used_repeats: int = 0,
) -> ItemProgress:
    return ItemProgress(
        planned=planned,
        used=used,
        remaining=clamp_remaining(planned, used),
        percent=percent(used, planned),
        planned_repeats=planned_repeats,
        used_repeats=used_repeats,
        remaining_repeats=clamp_remaining(planned_repeats, used_repeats),
        repeat_percent=percent(used_repeats, planned_repeats),
    )


def classify_contract(
    contract_active: bool, used: int, planned: int
) -> ContractProgressStatus:
    """Status from the exact counts; the rounded percent is for display only."""
    if not contract_active:
        return ContractProgressStatus.INACTIVE
    if planned > 0 and used >= planned:
        return ContractProgressStatus.COMPLETED
    if planned > 0 and used > 0:
        return ContractProgressStatus.IN_PROGRESS
    return ContractProgressStatus.ACTIVE


@traced_engine("progress", "1.0", fingerprint_fields=("items", "contract_active"))
def contract_progress(
    items: Iterable[tuple[int, int]], contract_active: bool = True
) -> ContractProgress:
    """Volume-weighted progress over (planned, used) pairs of active items."""
    pairs = list(items)
    planned = sum(p for p, _ in pairs)
    used = sum(u for _, u in pairs)
    pct = percent(used, planned)
    return ContractProgress(
        planned=planned,
        used=used,
        remaining=clamp_remaining(planned, used),
        percent=pct,
        status=classify_contract(contract_active, used, planned),
        item_count=len(pairs),
    )


def elapsed_days(start: date, today: date) -> int:
    return (today - start).days


def days_left(total_estimated_days: Decimal | int, start: date, today: date) -> DaysLeft:
    total = ceil_decimal(Decimal(total_estimated_days))
    elapsed = elapsed_days(start, today)
    return DaysLeft(
        total_estimated_days=total,
        elapsed_days=elapsed,
        days_left=total - elapsed,
    )


def contract_duration(
    duration_days: int | None,
    start: date | None,
    end: date | None,
    total_estimated_days: Decimal | int,
) -> int:
    """Duration with fallbacks: stored duration, end - start, machine estimate."""
    if duration_days:
        return duration_days
    if start is not None and end is not None and end > start:
        return (end - start).days
    if total_estimated_days and total_estimated_days > 0:
        return ceil_decimal(Decimal(total_estimated_days))
    return 0


def schedule(duration: int, start: date, today: date) -> Schedule:
    elapsed = elapsed_days(start, today)
    if duration > 0:
        raw = Decimal(elapsed) / Decimal(duration) * HUNDRED
        time_pct = round_places(min(max(raw, Decimal(0)), HUNDRED), PERCENT_PLACES)
    else:
        time_pct = round_places(Decimal(0), PERCENT_PLACES)
    return Schedule(
        duration_days=duration,
        elapsed_days=elapsed,
        days_remaining=max(0, duration - elapsed),
        time_percent=time_pct,
    )
