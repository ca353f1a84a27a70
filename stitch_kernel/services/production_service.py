"""
ProductionService -- Production Consumption Tracker.

Responsibility:
    Records daily production entries and keeps the running counters in step:
    used stitches/repeats on the contract item and used/pending stitches on
    the (item, machine) assignment.  Edits and voids net the old
    contribution out before applying the new one.

Architecture position:
    Kernel > Services.  Progress and ceilings come from
    ``stitch_engines.workload`` / ``stitch_engines.progress`` via the
    ProgressSelector.

Invariants enforced:
    - used_stitches[item] == sum of stitches over the item's non-void
      entries; likewise per (item, machine) and for repeats.
    - Counters move only through atomic SQL increments
      (``SET used = used + :n``) issued while the item row is locked with
      SELECT ... FOR UPDATE.  Two concurrent submissions for one item never
      lose an update.
    - pending_stitches = max(0, assigned - used), recomputed in the same
      UPDATE statement.
    - Every entry is validated before the first write; a bulk save writes
      nothing unless every row is valid.
    - Entries are never deleted.  Voided entries are frozen.
    - Used above planned (item) or above assigned (machine) is allowed and
      reported as OVER_CONSUMPTION / MACHINE_OVER_ASSIGNMENT warnings.

Failure modes:
    - ContractItemNotFoundError / MachineNotFoundError /
      ProductionEntryNotFoundError.
    - InactiveReferenceError, MissingAssignmentError.
    - InvalidQuantityError (stitches <= 0, repeats < 0), ValidationError
      (missing date, bad shift, missing operator).
    - EntryVoidedError when editing or voiding a voided entry.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import case, select, update

from stitch_engines import progress as progress_engine
from stitch_kernel.domain.dtos import (
    ProductionEntryInfo,
    ProductionEntrySpec,
    ProductionResult,
    RebuildResult,
)
from stitch_kernel.domain.field_lock import CommonFieldLock
from stitch_kernel.domain.parsing import require_non_negative_int, require_positive_int
from stitch_kernel.domain.results import ConsistencyWarning, WarningCode
from stitch_kernel.exceptions import (
    ContractItemNotFoundError,
    EntryVoidedError,
    MachineNotFoundError,
    MissingAssignmentError,
    ProductionEntryNotFoundError,
    ValidationError,
)
from stitch_kernel.logging_config import LogContext, get_logger
from stitch_kernel.models.contract import ContractItem
from stitch_kernel.models.machine import Machine, MachineAssignment
from stitch_kernel.models.production import ProductionEntry, Shift
from stitch_kernel.selectors.production_selector import ProductionSelector
from stitch_kernel.selectors.progress_selector import ProgressSelector
from stitch_kernel.services.base import BaseService

logger = get_logger("services.production")

EDITABLE_FIELDS = frozenset(
    {
        "contract_item_id",
        "machine_id",
        "production_date",
        "shift",
        "stitches",
        "repeats",
        "operator_name",
        "notes",
    }
)


@dataclass(frozen=True)
class _Prepared:
    """A fully validated entry, ready to write."""

    contract_item_id: UUID
    machine_id: UUID
    production_date: date
    shift: Shift
    stitches: int
    repeats: int
    operator_name: str
    notes: str | None


def _parse_shift(raw: object) -> Shift:
    if isinstance(raw, Shift):
        return raw
    try:
        return Shift(str(raw).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"shift must be 'day' or 'night', got {raw!r}") from exc


class ProductionService(BaseService[ProductionEntry]):
    # Public operations

    def record_entry(
        self, spec: ProductionEntrySpec, actor_id: UUID
    ) -> ProductionResult:
        """
        Record one production entry.

        Returns:
            ProductionResult with the stored entry, the item's progress, the
            machine's progress and any soft warnings.
        """
        self._lock_items([spec.contract_item_id])
        prepared = self._prepare(spec)
        with LogContext.bind(contract_item_id=prepared.contract_item_id):
            entry = self._write(prepared, actor_id)
            return self._result(entry, "production_entry_recorded")

    def record_bulk(
        self,
        specs: Sequence[ProductionEntrySpec],
        actor_id: UUID,
        common: CommonFieldLock | None = None,
    ) -> list[ProductionResult]:
        """
        Record several entries all-or-nothing.

        Args:
            specs: Rows to record.
            actor_id: Acting user.
            common: A locked CommonFieldLock whose date, shift, operator and
                machine replace those fields on every row.

        Raises:
            InvalidLockTransitionError: If ``common`` is given but unlocked.
        """
        if common is not None:
            specs = [ProductionEntrySpec(**common.apply(**asdict(s))) for s in specs]
        if not specs:
            return []

        self._lock_items([s.contract_item_id for s in specs])
        prepared = [self._prepare(s) for s in specs]

        results = []
        for p in prepared:
            with LogContext.bind(contract_item_id=p.contract_item_id):
                entry = self._write(p, actor_id)
                results.append(self._result(entry, "production_entry_recorded"))
        logger.info("production_bulk_recorded", extra={"entry_count": len(results)})
        return results

    def update_entry(
        self,
        entry_id: UUID,
        changes: Mapping[str, object],
        actor_id: UUID,
    ) -> ProductionResult:
        """
        Edit an entry.  The old contribution is removed from the counters of
        its original (item, machine) pair and the new one is added to the
        target pair, so moving an entry between machines or items never
        double counts.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {sorted(unknown)}")

        entry = self._load(
            ProductionEntry, entry_id, ProductionEntryNotFoundError, lock=True
        )
        if entry.is_void:
            raise EntryVoidedError(str(entry_id))

        merged = ProductionEntrySpec(
            contract_item_id=changes.get("contract_item_id", entry.contract_item_id),
            machine_id=changes.get("machine_id", entry.machine_id),
            production_date=changes.get("production_date", entry.production_date),
            shift=changes.get("shift", entry.shift),
            stitches=changes.get("stitches", entry.stitches),
            repeats=changes.get("repeats", entry.repeats),
            operator_name=changes.get("operator_name", entry.operator_name),
            notes=changes.get("notes", entry.notes),
        )
        self._lock_items([entry.contract_item_id, merged.contract_item_id])
        prepared = self._prepare(merged)

        old = (entry.contract_item_id, entry.machine_id, entry.stitches, entry.repeats)
        with LogContext.bind(contract_item_id=prepared.contract_item_id):
            self._increment(old[0], old[1], -old[2], -old[3])
            self._increment(
                prepared.contract_item_id,
                prepared.machine_id,
                prepared.stitches,
                prepared.repeats,
            )
            entry.contract_item_id = prepared.contract_item_id
            entry.machine_id = prepared.machine_id
            entry.production_date = prepared.production_date
            entry.shift = prepared.shift.value
            entry.stitches = prepared.stitches
            entry.repeats = prepared.repeats
            entry.operator_name = prepared.operator_name
            entry.notes = prepared.notes
            entry.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "production_entry_netted",
                extra={
                    "entry_id": str(entry_id),
                    "old_contract_item_id": str(old[0]),
                    "old_machine_id": str(old[1]),
                    "old_stitches": old[2],
                    "new_stitches": prepared.stitches,
                },
            )
            return self._result(entry, "production_entry_updated")

    def void_entry(self, entry_id: UUID, reason: str, actor_id: UUID) -> ProductionResult:
        """Mark an entry void and take it out of the running counters."""
        entry = self._load(
            ProductionEntry, entry_id, ProductionEntryNotFoundError, lock=True
        )
        if entry.is_void:
            raise EntryVoidedError(str(entry_id))
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to void a production entry")

        self._lock_items([entry.contract_item_id])
        with LogContext.bind(contract_item_id=entry.contract_item_id):
            self._increment(
                entry.contract_item_id, entry.machine_id, -entry.stitches, -entry.repeats
            )
            entry.is_void = True
            entry.void_reason = reason.strip()
            entry.updated_by_id = actor_id
            self.session.flush()
            return self._result(entry, "production_entry_voided")

    def rebuild_counters(self, item_id: UUID) -> RebuildResult:
        """
        Recompute an item's counters and its assignments' counters from the
        entries.  Used for reconciliation; a corrected drift is logged at
        WARNING.
        """
        item = self._load(ContractItem, item_id, ContractItemNotFoundError, lock=True)
        production = ProductionSelector(self.session)
        stitches, repeats = production.entry_totals(item_id)

        drift = item.used_stitches != stitches or item.used_repeats != repeats
        before = (item.used_stitches, item.used_repeats)
        item.used_stitches = stitches
        item.used_repeats = repeats

        rows = self.session.execute(
            select(MachineAssignment).where(MachineAssignment.contract_item_id == item_id)
        ).scalars().all()
        for row in rows:
            used, _ = production.entry_totals(item_id, row.machine_id)
            pending = max(0, row.assigned_stitches - used)
            if row.used_stitches != used or row.pending_stitches != pending:
                drift = True
            row.used_stitches = used
            row.pending_stitches = pending
        self.session.flush()

        with LogContext.bind(contract_item_id=item_id):
            if drift:
                logger.warning(
                    "counter_drift_corrected",
                    extra={
                        "before_used_stitches": before[0],
                        "before_used_repeats": before[1],
                        "used_stitches": stitches,
                        "used_repeats": repeats,
                    },
                )
            else:
                logger.info("counters_verified", extra={"used_stitches": stitches})
        return RebuildResult(
            contract_item_id=item_id,
            used_stitches=stitches,
            used_repeats=repeats,
            drift_corrected=drift,
        )

    # Internals

    def _lock_items(self, item_ids: Sequence[UUID]) -> None:
        """Lock item rows in a fixed order so concurrent edits cannot deadlock."""
        for item_id in sorted({i for i in item_ids if i is not None}, key=str):
            self._load(ContractItem, item_id, ContractItemNotFoundError, lock=True)

    def _assignment(self, item_id: UUID, machine_id: UUID) -> MachineAssignment:
        row = self.session.execute(
            select(MachineAssignment).where(
                MachineAssignment.contract_item_id == item_id,
                MachineAssignment.machine_id == machine_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise MissingAssignmentError(str(item_id), str(machine_id))
        return row

    def _prepare(self, spec: ProductionEntrySpec) -> _Prepared:
        if spec.contract_item_id is None:
            raise ValidationError("contract_item_id is required")
        if spec.machine_id is None:
            raise ValidationError("machine_id is required")
        self._load_active(ContractItem, spec.contract_item_id, ContractItemNotFoundError)
        self._load_active(Machine, spec.machine_id, MachineNotFoundError)
        self._assignment(spec.contract_item_id, spec.machine_id)

        stitches = require_positive_int("stitches", spec.stitches)
        repeats = require_non_negative_int("repeats", spec.repeats)
        if spec.production_date is None:
            raise ValidationError("production_date is required")
        operator = (spec.operator_name or "").strip()
        if not operator:
            raise ValidationError("operator_name is required")

        return _Prepared(
            contract_item_id=spec.contract_item_id,
            machine_id=spec.machine_id,
            production_date=spec.production_date,
            shift=_parse_shift(spec.shift),
            stitches=stitches,
            repeats=repeats,
            operator_name=operator,
            notes=spec.notes,
        )

    def _write(self, p: _Prepared, actor_id: UUID) -> ProductionEntry:
        entry = ProductionEntry(
            contract_item_id=p.contract_item_id,
            machine_id=p.machine_id,
            production_date=p.production_date,
            shift=p.shift.value,
            stitches=p.stitches,
            repeats=p.repeats,
            operator_name=p.operator_name,
            notes=p.notes,
            is_void=False,
            created_by_id=actor_id,
        )
        self.session.add(entry)
        self._increment(p.contract_item_id, p.machine_id, p.stitches, p.repeats)
        self.session.flush()
        return entry

    def _increment(
        self, item_id: UUID, machine_id: UUID, stitches: int, repeats: int
    ) -> None:
        """Atomic counter move for one (item, machine) pair."""
        self.session.execute(
            update(ContractItem)
            .where(ContractItem.id == item_id)
            .values(
                used_stitches=ContractItem.used_stitches + stitches,
                used_repeats=ContractItem.used_repeats + repeats,
            )
            .execution_options(synchronize_session="fetch")
        )
        new_used = MachineAssignment.used_stitches + stitches
        remaining = MachineAssignment.assigned_stitches - new_used
        self.session.execute(
            update(MachineAssignment)
            .where(
                MachineAssignment.contract_item_id == item_id,
                MachineAssignment.machine_id == machine_id,
            )
            .values(
                used_stitches=new_used,
                pending_stitches=case((remaining > 0, remaining), else_=0),
            )
            .execution_options(synchronize_session="fetch")
        )

    def _result(self, entry: ProductionEntry, event: str) -> ProductionResult:
        item = self.session.get(ContractItem, entry.contract_item_id)
        self.session.refresh(item)
        assignment = self._assignment(entry.contract_item_id, entry.machine_id)
        self.session.refresh(assignment)

        item_progress = progress_engine.item_progress(
            planned=item.planned_total_stitches,
            used=item.used_stitches,
            planned_repeats=item.repeat_count,
            used_repeats=item.used_repeats,
        )
        machine = ProgressSelector(self.session, self.clock).machine_progress(
            entry.contract_item_id, entry.machine_id
        )

        warnings: list[ConsistencyWarning] = []
        if item_progress.is_over_consumed:
            warnings.append(
                ConsistencyWarning(
                    code=WarningCode.OVER_CONSUMPTION,
                    message=(
                        f"Used stitches {item.used_stitches} exceed planned "
                        f"{item.planned_total_stitches}"
                    ),
                    details={
                        "used_stitches": item.used_stitches,
                        "planned_total_stitches": item.planned_total_stitches,
                    },
                )
            )
        if assignment.used_stitches > assignment.assigned_stitches:
            warnings.append(
                ConsistencyWarning(
                    code=WarningCode.MACHINE_OVER_ASSIGNMENT,
                    message=(
                        f"Machine used {assignment.used_stitches} exceeds "
                        f"assigned {assignment.assigned_stitches}"
                    ),
                    details={
                        "machine_id": str(assignment.machine_id),
                        "machine_used_stitches": assignment.used_stitches,
                        "assigned_stitches": assignment.assigned_stitches,
                    },
                )
            )

        logger.info(
            event,
            extra={
                "entry_id": str(entry.id),
                "machine_id": str(entry.machine_id),
                "stitches": entry.stitches,
                "repeats": entry.repeats,
                "used_stitches": item.used_stitches,
                "remaining_stitches": item_progress.remaining,
                "machine_pending": machine.pending,
            },
        )
        for warning in warnings:
            logger.warning(warning.code.value.lower(), extra=warning.as_log_extra())

        return ProductionResult(
            entry=ProductionEntryInfo.from_model(entry),
            item_progress=item_progress,
            machine=machine,
            warnings=tuple(warnings),
        )
