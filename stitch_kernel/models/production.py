"""
Module: stitch_kernel.models.production
Responsibility: ORM persistence for daily production entries.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Entries are never deleted.  Voiding sets is_void and nets the entry
      out of the running counters.
    - stitches > 0, repeats >= 0 (checked by ProductionService).
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stitch_kernel.db.base import TrackedBase


class Shift(str, Enum):
    DAY = "day"
    NIGHT = "night"


class ProductionEntry(TrackedBase):
    """Stitches and repeats produced by one machine in one shift."""

    __tablename__ = "production_entries"

    __table_args__ = (
        Index("idx_entry_item_machine", "contract_item_id", "machine_id"),
        Index("idx_entry_date", "production_date"),
    )

    contract_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("contract_items.id"),
        nullable=False,
    )
    machine_id: Mapped[UUID] = mapped_column(
        ForeignKey("machines.id"),
        nullable=False,
    )

    production_date: Mapped[date] = mapped_column(Date, nullable=False)
    shift: Mapped[Shift] = mapped_column(String(10), nullable=False)

    stitches: Mapped[int] = mapped_column(nullable=False)
    repeats: Mapped[int] = mapped_column(nullable=False, default=0)

    operator_name: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_void: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ProductionEntry {self.production_date} {self.shift} "
            f"stitches={self.stitches}{' VOID' if self.is_void else ''}>"
        )
