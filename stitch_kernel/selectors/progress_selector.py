"""
Module: stitch_kernel.selectors.progress_selector
Responsibility: Progress Aggregator read side.  Reads the running counters
    of contract items and machine assignments and turns them into item,
    machine and contract progress, days left and the contract schedule via
    ``stitch_engines.progress`` and ``stitch_engines.workload``.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Contract progress is volume weighted over ACTIVE items only.
    - days_left = ceil(total_estimated_days) - (today - start_date) and may
      be negative.
    - "Today" comes from the injected Clock unless passed explicitly.

Failure modes:
    - ContractNotFoundError / ContractItemNotFoundError for unknown ids.
    - MissingAssignmentError from machine_progress when the machine is not
      assigned to the item.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from stitch_engines import progress as progress_engine
from stitch_engines import workload
from stitch_engines.progress import ContractProgress, DaysLeft, ItemProgress, Schedule
from stitch_kernel.domain.dtos import MachineProgress
from stitch_kernel.exceptions import (
    ContractItemNotFoundError,
    ContractNotFoundError,
    MissingAssignmentError,
)
from stitch_kernel.models.contract import Contract, ContractItem
from stitch_kernel.models.machine import MachineAssignment
from stitch_kernel.selectors.base import BaseSelector
from stitch_kernel.selectors.production_selector import ProductionSelector


class ProgressSelector(BaseSelector[ContractItem]):
    def _item(self, item_id: UUID) -> ContractItem:
        item = self.session.get(ContractItem, item_id)
        if item is None:
            raise ContractItemNotFoundError(str(item_id))
        return item

    def _contract(self, contract_id: UUID) -> Contract:
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract

    def item_progress(self, item_id: UUID) -> ItemProgress:
        """Stitch and repeat progress of one item.

        Repeat progress treats repeat_count as the total repeats planned for
        the item.
        """
        item = self._item(item_id)
        return progress_engine.item_progress(
            planned=item.planned_total_stitches,
            used=item.used_stitches,
            planned_repeats=item.repeat_count,
            used_repeats=item.used_repeats,
        )

    def machine_progress(self, item_id: UUID, machine_id: UUID) -> MachineProgress:
        item = self._item(item_id)
        row = self.session.execute(
            select(MachineAssignment).where(
                MachineAssignment.contract_item_id == item_id,
                MachineAssignment.machine_id == machine_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise MissingAssignmentError(str(item_id), str(machine_id))

        pending = workload.machine_pending(row.assigned_stitches, row.used_stitches)
        item_remaining = max(0, item.planned_total_stitches - item.used_stitches)
        first, last = ProductionSelector(self.session).date_span(item_id, machine_id)
        days_worked = workload.actual_days(first, last)
        return MachineProgress(
            contract_item_id=item_id,
            machine_id=machine_id,
            assigned=row.assigned_stitches,
            used=row.used_stitches,
            pending=pending,
            entry_ceiling=workload.entry_ceiling(item_remaining, pending),
            estimated_days=row.estimated_days,
            actual_days=days_worked,
            status=workload.machine_status(
                row.assigned_stitches, row.used_stitches, row.estimated_days, days_worked
            ),
        )

    def contract_progress(self, contract_id: UUID) -> ContractProgress:
        contract = self._contract(contract_id)
        items = self.session.execute(
            select(ContractItem).where(
                ContractItem.contract_id == contract_id,
                ContractItem.is_active == True,  # noqa: E712
            )
        ).scalars().all()
        return progress_engine.contract_progress(
            [(i.planned_total_stitches, i.used_stitches) for i in items],
            contract.is_active,
        )

    def total_estimated_days(self, contract_id: UUID) -> int:
        """Sum of estimated_days over every machine of every active item."""
        self._contract(contract_id)
        total = self.session.execute(
            select(func.coalesce(func.sum(MachineAssignment.estimated_days), 0))
            .join(ContractItem, ContractItem.id == MachineAssignment.contract_item_id)
            .where(
                ContractItem.contract_id == contract_id,
                ContractItem.is_active == True,  # noqa: E712
            )
        ).scalar_one()
        return int(total)

    def days_left(self, contract_id: UUID, today: date | None = None) -> DaysLeft | None:
        """None when the contract has no start date."""
        contract = self._contract(contract_id)
        if contract.start_date is None:
            return None
        return progress_engine.days_left(
            self.total_estimated_days(contract_id),
            contract.start_date,
            today or self.clock.today(),
        )

    def schedule(self, contract_id: UUID, today: date | None = None) -> Schedule | None:
        """Time schedule; None without a start date or any usable duration."""
        contract = self._contract(contract_id)
        if contract.start_date is None:
            return None
        duration = progress_engine.contract_duration(
            contract.duration_days,
            contract.start_date,
            contract.end_date,
            self.total_estimated_days(contract_id),
        )
        if duration == 0:
            return None
        return progress_engine.schedule(
            duration, contract.start_date, today or self.clock.today()
        )
