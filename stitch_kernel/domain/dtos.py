"""
Data transfer objects returned by services and selectors.

Services never hand ORM instances to callers.  Every DTO is a frozen
dataclass built with ``from_model`` from the persisted row, so callers see
a consistent snapshot of the state at the end of the operation.

Input specs (``AssignmentSpec``, ``ProductionEntrySpec``, ``ClipSendLine``)
accept raw presentation-layer values; services parse and validate them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Self
from uuid import UUID

from stitch_engines.clipping import ClipRollup
from stitch_engines.progress import ItemProgress
from stitch_engines.rate_cascade import DerivedRates
from stitch_engines.workload import MachineStatus
from stitch_kernel.domain.results import ConsistencyWarning


@dataclass(frozen=True)
class ContractInfo:
    id: UUID
    contract_number: str
    party_name: str | None
    po_number: str | None
    start_date: date | None
    end_date: date | None
    duration_days: int | None
    status: str
    is_active: bool

    @classmethod
    def from_model(cls, contract: Any) -> Self:
        return cls(
            id=contract.id,
            contract_number=contract.contract_number,
            party_name=contract.party_name,
            po_number=contract.po_number,
            start_date=contract.start_date,
            end_date=contract.end_date,
            duration_days=contract.duration_days,
            status=str(getattr(contract.status, "value", contract.status)),
            is_active=contract.is_active,
        )


@dataclass(frozen=True)
class ContractItemInfo:
    id: UUID
    contract_id: UUID
    collection: str | None
    design_no: str | None
    component: str | None
    description: str | None
    fabric: str | None
    color: str | None
    stitch_per_repeat: int
    repeat_count: int
    piece_count: int
    rate_per_stitch: Decimal | None
    cost_factor: Decimal | None
    motif_rate: Decimal | None
    motif_qty: Decimal | None
    lace_rate: Decimal | None
    lace_qty: Decimal | None
    calculated_rate: Decimal | None
    rate_per_repeat: Decimal | None
    rate_per_repeat_overridden: bool
    total_rate: Decimal | None
    heads: int
    rate_per_piece: Decimal | None
    piece_amount: Decimal | None
    motif_amount: Decimal | None
    lace_amount: Decimal | None
    final_total_rate: Decimal | None
    used_stitches: int
    used_repeats: int
    is_active: bool

    @property
    def planned_total_stitches(self) -> int:
        return self.stitch_per_repeat * self.repeat_count

    @classmethod
    def from_model(cls, item: Any) -> Self:
        return cls(
            id=item.id,
            contract_id=item.contract_id,
            collection=item.collection,
            design_no=item.design_no,
            component=item.component,
            description=item.description,
            fabric=item.fabric,
            color=item.color,
            stitch_per_repeat=item.stitch_per_repeat or 0,
            repeat_count=item.repeat_count or 0,
            piece_count=item.piece_count or 0,
            rate_per_stitch=item.rate_per_stitch,
            cost_factor=item.cost_factor,
            motif_rate=item.motif_rate,
            motif_qty=item.motif_qty,
            lace_rate=item.lace_rate,
            lace_qty=item.lace_qty,
            calculated_rate=item.calculated_rate,
            rate_per_repeat=item.rate_per_repeat,
            rate_per_repeat_overridden=item.rate_per_repeat_overridden,
            total_rate=item.total_rate,
            heads=item.heads or 0,
            rate_per_piece=item.rate_per_piece,
            piece_amount=item.piece_amount,
            motif_amount=item.motif_amount,
            lace_amount=item.lace_amount,
            final_total_rate=item.final_total_rate,
            used_stitches=item.used_stitches,
            used_repeats=item.used_repeats,
            is_active=item.is_active,
        )


@dataclass(frozen=True)
class MachineInfo:
    id: UUID
    machine_number: int
    master_name: str | None
    cost_factor: Decimal | None
    is_active: bool

    @classmethod
    def from_model(cls, machine: Any) -> Self:
        return cls(
            id=machine.id,
            machine_number=machine.machine_number,
            master_name=machine.master_name,
            cost_factor=machine.cost_factor,
            is_active=machine.is_active,
        )


@dataclass(frozen=True)
class AssignmentInfo:
    id: UUID
    contract_item_id: UUID
    machine_id: UUID
    assigned_stitches: int
    avg_stitches_per_day: int
    repeats: int
    estimated_days: int
    used_stitches: int
    pending_stitches: int

    @classmethod
    def from_model(cls, row: Any) -> Self:
        return cls(
            id=row.id,
            contract_item_id=row.contract_item_id,
            machine_id=row.machine_id,
            assigned_stitches=row.assigned_stitches,
            avg_stitches_per_day=row.avg_stitches_per_day,
            repeats=row.repeats,
            estimated_days=row.estimated_days,
            used_stitches=row.used_stitches,
            pending_stitches=row.pending_stitches,
        )


@dataclass(frozen=True)
class ProductionEntryInfo:
    id: UUID
    contract_item_id: UUID
    machine_id: UUID
    production_date: date
    shift: str
    stitches: int
    repeats: int
    operator_name: str
    notes: str | None
    is_void: bool
    void_reason: str | None

    @classmethod
    def from_model(cls, entry: Any) -> Self:
        return cls(
            id=entry.id,
            contract_item_id=entry.contract_item_id,
            machine_id=entry.machine_id,
            production_date=entry.production_date,
            shift=str(getattr(entry.shift, "value", entry.shift)),
            stitches=entry.stitches,
            repeats=entry.repeats,
            operator_name=entry.operator_name,
            notes=entry.notes,
            is_void=entry.is_void,
            void_reason=entry.void_reason,
        )


@dataclass(frozen=True)
class VendorInfo:
    id: UUID
    vendor_name: str
    contact_number: str
    cnic: str | None
    address: str | None
    is_active: bool

    @classmethod
    def from_model(cls, vendor: Any) -> Self:
        return cls(
            id=vendor.id,
            vendor_name=vendor.vendor_name,
            contact_number=vendor.contact_number,
            cnic=vendor.cnic,
            address=vendor.address,
            is_active=vendor.is_active,
        )


@dataclass(frozen=True)
class ClipItemInfo:
    id: UUID
    clipping_id: UUID
    contract_item_id: UUID
    vendor_id: UUID
    description: str | None
    quantity_sent: Decimal
    quantity_received: Decimal
    date_sent: date
    last_received_date: date | None
    status: str

    @property
    def quantity_pending(self) -> Decimal:
        return self.quantity_sent - self.quantity_received

    @classmethod
    def from_model(cls, clip: Any) -> Self:
        return cls(
            id=clip.id,
            clipping_id=clip.clipping_id,
            contract_item_id=clip.contract_item_id,
            vendor_id=clip.vendor_id,
            description=clip.description,
            quantity_sent=clip.quantity_sent,
            quantity_received=clip.quantity_received,
            date_sent=clip.date_sent,
            last_received_date=clip.last_received_date,
            status=str(getattr(clip.status, "value", clip.status)),
        )


# Input specs


@dataclass(frozen=True)
class AssignmentSpec:
    machine_id: UUID
    assigned_stitches: object
    avg_stitches_per_day: object
    repeats: object = 0


@dataclass(frozen=True)
class ProductionEntrySpec:
    contract_item_id: UUID
    machine_id: UUID | None = None
    production_date: date | None = None
    shift: str | None = None
    stitches: object = None
    repeats: object = 0
    operator_name: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ClipSendLine:
    contract_item_id: UUID
    quantity: object
    description: str | None = None


# Results


@dataclass(frozen=True)
class ItemSaveResult:
    item: ContractItemInfo
    rates: DerivedRates
    warnings: tuple[ConsistencyWarning, ...] = ()


@dataclass(frozen=True)
class AllocationResult:
    contract_item_id: UUID
    assignments: tuple[AssignmentInfo, ...]
    planned_total_stitches: int
    total_estimated_days: int
    warnings: tuple[ConsistencyWarning, ...] = ()


@dataclass(frozen=True)
class MachineProgress:
    contract_item_id: UUID
    machine_id: UUID
    assigned: int
    used: int
    pending: int
    entry_ceiling: int
    estimated_days: int
    actual_days: int
    status: MachineStatus


@dataclass(frozen=True)
class ProductionResult:
    entry: ProductionEntryInfo
    item_progress: ItemProgress
    machine: MachineProgress
    warnings: tuple[ConsistencyWarning, ...] = ()


@dataclass(frozen=True)
class RebuildResult:
    contract_item_id: UUID
    used_stitches: int
    used_repeats: int
    drift_corrected: bool


@dataclass(frozen=True)
class VendorProgress:
    vendor: VendorInfo
    overall: ClipRollup
    by_contract: dict[UUID, ClipRollup] = field(default_factory=dict)
