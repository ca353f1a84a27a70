"""
Module: stitch_kernel.models.contract
Responsibility: ORM persistence for contracts and their line items.  A
    ContractItem carries the raw costing inputs, the cached results of the
    rate cascade and the running production counters.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - planned_total_stitches is a computed property (stitch_per_repeat x
      repeat_count), never a stored column.
    - used_stitches and used_repeats are only moved by atomic increments in
      ProductionService; they equal the sums over non-void entries.
    - Contracts and items are soft-deleted (is_active = False).

Failure modes:
    - IntegrityError on duplicate contract_number (uq_contract_number).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stitch_kernel.db.base import TrackedBase


class ContractStatus(str, Enum):
    """Header lifecycle of a contract."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class Contract(TrackedBase):
    """
    A customer order for embroidered work.

    Guarantees:
        - contract_number is unique.
        - Items are owned by the contract and listed in creation order.
    """

    __tablename__ = "contracts"

    __table_args__ = (
        UniqueConstraint("contract_number", name="uq_contract_number"),
        Index("idx_contract_active", "is_active"),
    )

    contract_number: Mapped[str] = mapped_column(String(50), nullable=False)
    party_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    duration_days: Mapped[int | None] = mapped_column(nullable=True)

    status: Mapped[ContractStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.DRAFT,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    items: Mapped[list["ContractItem"]] = relationship(
        back_populates="contract",
        order_by="ContractItem.created_at",
    )

    def __repr__(self) -> str:
        return f"<Contract {self.contract_number} ({self.status})>"


class ContractItem(TrackedBase):
    """
    One costed line of a contract.

    Contract:
        Input columns are written by ContractService; derived columns are
        the last values produced by the rate cascade; used_* counters are
        owned by ProductionService.
    """

    __tablename__ = "contract_items"

    __table_args__ = (
        Index("idx_contract_item_contract", "contract_id"),
        Index("idx_contract_item_active", "is_active"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        ForeignKey("contracts.id"),
        nullable=False,
    )

    # Descriptive
    collection: Mapped[str | None] = mapped_column(String(100), nullable=True)
    design_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    component: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    fabric: Mapped[str | None] = mapped_column(String(100), nullable=True)
    color: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Cascade inputs
    stitch_per_repeat: Mapped[int] = mapped_column(nullable=False, default=0)
    repeat_count: Mapped[int] = mapped_column(nullable=False, default=0)
    piece_count: Mapped[int] = mapped_column(nullable=False, default=0)
    rate_per_stitch: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost_factor: Mapped[Decimal | None] = mapped_column(nullable=True)
    motif_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    motif_qty: Mapped[Decimal | None] = mapped_column(nullable=True)
    lace_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    lace_qty: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Cascade outputs
    calculated_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    rate_per_repeat: Mapped[Decimal | None] = mapped_column(nullable=True)
    rate_per_repeat_overridden: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    total_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    heads: Mapped[int] = mapped_column(nullable=False, default=0)
    rate_per_piece: Mapped[Decimal | None] = mapped_column(nullable=True)
    piece_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    motif_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    lace_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    final_total_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Running production counters
    used_stitches: Mapped[int] = mapped_column(nullable=False, default=0)
    used_repeats: Mapped[int] = mapped_column(nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    contract: Mapped[Contract] = relationship(back_populates="items")

    @property
    def planned_total_stitches(self) -> int:
        return (self.stitch_per_repeat or 0) * (self.repeat_count or 0)

    def __repr__(self) -> str:
        return f"<ContractItem {self.id} design={self.design_no}>"
