"""
AllocationService -- Machine Allocation Ledger.

Responsibility:
    Splits a contract item's planned stitches across machines.  Each
    (item, machine) row records assigned stitches, the machine's average
    stitches per day, repeats and the resulting estimated days.

Architecture position:
    Kernel > Services.  Arithmetic and checks live in
    ``stitch_engines.workload``; this service loads, validates and persists.

Invariants enforced:
    - avg_stitches_per_day > 0 for every row; one bad row rejects the whole
      save before anything is written.
    - estimated_days = ceil(assigned_stitches / avg_stitches_per_day).
    - A machine appears at most once per item.
    - used_stitches of a (re)created row is re-derived from the non-void
      production entries of that pair.
    - Assigned total != planned total is an ALLOCATION_MISMATCH warning,
      never a rejection.
    - An assignment with live production cannot be removed.

Failure modes:
    - InvalidProductionRateError, InvalidQuantityError.
    - ContractItemNotFoundError / MachineNotFoundError,
      InactiveReferenceError.
    - DuplicateAssignmentError, AssignmentInUseError.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from stitch_engines import workload
from stitch_kernel.domain.dtos import AllocationResult, AssignmentInfo, AssignmentSpec
from stitch_kernel.domain.parsing import parse_int, require_non_negative_int
from stitch_kernel.exceptions import (
    AssignmentInUseError,
    ContractItemNotFoundError,
    DuplicateAssignmentError,
    InvalidProductionRateError,
    MachineNotFoundError,
    MissingAssignmentError,
    ValidationError,
)
from stitch_kernel.logging_config import LogContext, get_logger
from stitch_kernel.models.contract import ContractItem
from stitch_kernel.models.machine import Machine, MachineAssignment
from stitch_kernel.selectors.production_selector import ProductionSelector
from stitch_kernel.selectors.progress_selector import ProgressSelector
from stitch_kernel.services.base import BaseService

logger = get_logger("services.allocation")


@dataclass(frozen=True)
class _ParsedLine:
    machine_id: UUID
    assigned_stitches: int
    avg_stitches_per_day: int
    repeats: int
    estimated_days: int


class AllocationService(BaseService[MachineAssignment]):
    def assign(
        self,
        item_id: UUID,
        machine_id: UUID,
        assigned_stitches: object,
        avg_stitches_per_day: object,
        repeats: object,
        actor_id: UUID,
    ) -> AllocationResult:
        """Create or update the single (item, machine) assignment."""
        item = self._load_active(
            ContractItem, item_id, ContractItemNotFoundError, lock=True
        )
        line = self._parse(
            AssignmentSpec(machine_id, assigned_stitches, avg_stitches_per_day, repeats)
        )
        self._load_active(Machine, machine_id, MachineNotFoundError)

        with LogContext.bind(contract_id=item.contract_id, contract_item_id=item_id):
            self._upsert(item_id, line, self._rows_by_machine(item_id), actor_id)
            self.session.flush()
            return self._result(item, "allocation_saved")

    def replace_assignments(
        self,
        item_id: UUID,
        specs: Sequence[AssignmentSpec],
        actor_id: UUID,
    ) -> AllocationResult:
        """
        Replace every assignment of an item with ``specs``.

        All specs are parsed and checked before any row changes.  Machines
        dropped from the list are removed; it is an error to drop a machine
        that has live production against the item.
        """
        item = self._load_active(
            ContractItem, item_id, ContractItemNotFoundError, lock=True
        )
        if not specs:
            raise ValidationError(
                f"Contract item {item_id} needs at least one machine assignment"
            )

        lines: list[_ParsedLine] = []
        seen: set[UUID] = set()
        for spec in specs:
            if spec.machine_id in seen:
                raise DuplicateAssignmentError(str(item_id), str(spec.machine_id))
            seen.add(spec.machine_id)
            lines.append(self._parse(spec))
        for line in lines:
            self._load_active(Machine, line.machine_id, MachineNotFoundError)

        existing = self._rows_by_machine(item_id)
        production = ProductionSelector(self.session)
        dropped = [mid for mid in existing if mid not in seen]
        for machine_id in dropped:
            used, _ = production.entry_totals(item_id, machine_id)
            if production.count_live(item_id, machine_id):
                raise AssignmentInUseError(str(item_id), str(machine_id), used)

        with LogContext.bind(contract_id=item.contract_id, contract_item_id=item_id):
            for machine_id in dropped:
                self.session.delete(existing.pop(machine_id))
            for line in lines:
                self._upsert(item_id, line, existing, actor_id)
            self.session.flush()
            return self._result(item, "allocation_replaced")

    def remove_assignment(
        self, item_id: UUID, machine_id: UUID, actor_id: UUID
    ) -> AllocationResult:
        item = self._load(ContractItem, item_id, ContractItemNotFoundError, lock=True)
        existing = self._rows_by_machine(item_id)
        row = existing.get(machine_id)
        if row is None:
            raise MissingAssignmentError(str(item_id), str(machine_id))

        production = ProductionSelector(self.session)
        if production.count_live(item_id, machine_id):
            used, _ = production.entry_totals(item_id, machine_id)
            raise AssignmentInUseError(str(item_id), str(machine_id), used)

        with LogContext.bind(contract_id=item.contract_id, contract_item_id=item_id):
            self.session.delete(row)
            self.session.flush()
            logger.info(
                "assignment_removed",
                extra={"machine_id": str(machine_id), "actor_id": str(actor_id)},
            )
            return self._result(item, "allocation_saved")

    def list_assignments(self, item_id: UUID) -> list[AssignmentInfo]:
        return [
            AssignmentInfo.from_model(row)
            for row in self._rows_by_machine(item_id).values()
        ]

    def total_estimated_days(self, contract_id: UUID) -> int:
        return ProgressSelector(self.session, self.clock).total_estimated_days(
            contract_id
        )

    # Internals

    def _parse(self, spec: AssignmentSpec) -> _ParsedLine:
        avg = parse_int(spec.avg_stitches_per_day)
        if avg is None or avg <= 0:
            raise InvalidProductionRateError(
                str(spec.machine_id), spec.avg_stitches_per_day
            )
        assigned = require_non_negative_int("assigned_stitches", spec.assigned_stitches)
        repeats = require_non_negative_int("repeats", spec.repeats)
        return _ParsedLine(
            machine_id=spec.machine_id,
            assigned_stitches=assigned,
            avg_stitches_per_day=avg,
            repeats=repeats,
            estimated_days=workload.estimated_days(assigned, avg, str(spec.machine_id)),
        )

    def _rows_by_machine(self, item_id: UUID) -> dict[UUID, MachineAssignment]:
        rows = self.session.execute(
            select(MachineAssignment)
            .where(MachineAssignment.contract_item_id == item_id)
            .order_by(MachineAssignment.created_at)
        ).scalars().all()
        return {row.machine_id: row for row in rows}

    def _upsert(
        self,
        item_id: UUID,
        line: _ParsedLine,
        existing: dict[UUID, MachineAssignment],
        actor_id: UUID,
    ) -> MachineAssignment:
        used, _ = ProductionSelector(self.session).entry_totals(item_id, line.machine_id)
        row = existing.get(line.machine_id)
        if row is None:
            row = MachineAssignment(
                contract_item_id=item_id,
                machine_id=line.machine_id,
                created_by_id=actor_id,
            )
            self.session.add(row)
            existing[line.machine_id] = row
        else:
            row.updated_by_id = actor_id

        row.assigned_stitches = line.assigned_stitches
        row.avg_stitches_per_day = line.avg_stitches_per_day
        row.repeats = line.repeats
        row.estimated_days = line.estimated_days
        row.used_stitches = used
        row.pending_stitches = workload.machine_pending(line.assigned_stitches, used)
        return row

    def _result(self, item: ContractItem, event: str) -> AllocationResult:
        rows = list(self._rows_by_machine(item.id).values())
        planned = item.planned_total_stitches
        warnings = workload.check_allocation(
            planned,
            tuple(
                workload.AllocationLine(
                    str(r.machine_id), r.assigned_stitches, r.avg_stitches_per_day
                )
                for r in rows
            ),
        )
        total_days = sum(r.estimated_days for r in rows)

        logger.info(
            event,
            extra={
                "machine_count": len(rows),
                "assigned_total": sum(r.assigned_stitches for r in rows),
                "planned_total_stitches": planned,
                "estimated_days_total": total_days,
            },
        )
        for warning in warnings:
            logger.warning(warning.code.value.lower(), extra=warning.as_log_extra())

        return AllocationResult(
            contract_item_id=item.id,
            assignments=tuple(AssignmentInfo.from_model(r) for r in rows),
            planned_total_stitches=planned,
            total_estimated_days=total_days,
            warnings=warnings,
        )
