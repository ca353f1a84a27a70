"""
stitch_engines.clipping -- Outsourcing ledger status and vendor rollups.

Responsibility:
    Status of a single clip item from its sent/received quantities, and the
    per-contract and overall rollups shown for a vendor.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Completed iff received == sent; Partially Received iff
      0 < received < sent; Sent otherwise.
    - A group of clip items is Completed iff all are Completed, Ongoing if
      any exists that is not, Pending if the group is empty.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from stitch_engines.tracer import traced_engine
from stitch_kernel.domain.values import ZERO, clamp_remaining, percent
from stitch_kernel.models.clipping import ClipStatus


class RollupStatus(str, Enum):
    PENDING = "Pending"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class ClipLine:
    """Quantities of one clip item as seen by the rollup."""

    contract_id: str
    quantity_sent: Decimal
    quantity_received: Decimal

    @property
    def status(self) -> ClipStatus:
        return clip_status(self.quantity_sent, self.quantity_received)


@dataclass(frozen=True)
class ClipRollup:
    status: RollupStatus
    total_sent: Decimal
    total_received: Decimal
    total_pending: Decimal
    percent_received: Decimal
    item_count: int
    sent_count: int
    partial_count: int
    completed_count: int


def clip_status(quantity_sent: Decimal, quantity_received: Decimal) -> ClipStatus:
    if quantity_received > 0 and quantity_received == quantity_sent:
        return ClipStatus.COMPLETED
    if quantity_received > 0:
        return ClipStatus.PARTIALLY_RECEIVED
    return ClipStatus.SENT


def rollup(lines: Iterable[ClipLine]) -> ClipRollup:
    items = list(lines)
    statuses = [line.status for line in items]
    sent = sum((line.quantity_sent for line in items), ZERO)
    received = sum((line.quantity_received for line in items), ZERO)

    if not items:
        status = RollupStatus.PENDING
    elif all(s == ClipStatus.COMPLETED for s in statuses):
        status = RollupStatus.COMPLETED
    else:
        status = RollupStatus.ONGOING

    return ClipRollup(
        status=status,
        total_sent=sent,
        total_received=received,
        total_pending=clamp_remaining(sent, received),
        percent_received=percent(received, sent),
        item_count=len(items),
        sent_count=statuses.count(ClipStatus.SENT),
        partial_count=statuses.count(ClipStatus.PARTIALLY_RECEIVED),
        completed_count=statuses.count(ClipStatus.COMPLETED),
    )


@traced_engine("clipping", "1.0", fingerprint_fields=("lines",))
def vendor_rollup(
    lines: tuple[ClipLine, ...],
) -> tuple[ClipRollup, dict[str, ClipRollup]]:
    """Overall rollup plus one rollup per contract, keyed by contract id."""
    by_contract: dict[str, list[ClipLine]] = {}
    for line in lines:
        by_contract.setdefault(line.contract_id, []).append(line)
    return rollup(lines), {cid: rollup(group) for cid, group in by_contract.items()}
