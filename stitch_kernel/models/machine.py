"""
Module: stitch_kernel.models.machine
Responsibility: ORM persistence for embroidery machines and their
    per-contract-item stitch allocations.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (contract_item_id, machine_id) is unique (uq_assignment_item_machine).
    - avg_stitches_per_day > 0 (checked by AllocationService before insert).
    - pending_stitches = max(0, assigned_stitches - used_stitches).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stitch_kernel.db.base import TrackedBase


class Machine(TrackedBase):
    """An embroidery machine on the mill floor."""

    __tablename__ = "machines"

    __table_args__ = (
        UniqueConstraint("machine_number", name="uq_machine_number"),
    )

    machine_number: Mapped[int] = mapped_column(nullable=False)
    master_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Gazana of the machine frame
    cost_factor: Mapped[Decimal | None] = mapped_column(nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Machine #{self.machine_number}>"


class MachineAssignment(TrackedBase):
    """
    Share of a contract item's planned stitches given to one machine.

    Guarantees:
        - estimated_days = ceil(assigned_stitches / avg_stitches_per_day).
        - used_stitches moves only through atomic increments by
          ProductionService, or is re-derived from entries when the row is
          (re)created.
    """

    __tablename__ = "machine_assignments"

    __table_args__ = (
        UniqueConstraint(
            "contract_item_id", "machine_id", name="uq_assignment_item_machine"
        ),
        Index("idx_assignment_machine", "machine_id"),
    )

    contract_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("contract_items.id"),
        nullable=False,
    )
    machine_id: Mapped[UUID] = mapped_column(
        ForeignKey("machines.id"),
        nullable=False,
    )

    assigned_stitches: Mapped[int] = mapped_column(nullable=False, default=0)
    avg_stitches_per_day: Mapped[int] = mapped_column(nullable=False)
    repeats: Mapped[int] = mapped_column(nullable=False, default=0)
    estimated_days: Mapped[int] = mapped_column(nullable=False, default=0)

    used_stitches: Mapped[int] = mapped_column(nullable=False, default=0)
    pending_stitches: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<MachineAssignment item={self.contract_item_id} "
            f"machine={self.machine_id} {self.used_stitches}/{self.assigned_stitches}>"
        )
