"""
Module: stitch_kernel.models.clipping
Responsibility: ORM persistence for the outsourcing ledger: vendors, dispatch
    headers (Clipping) and the per-contract-item quantities sent out and
    received back (ClipItem).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - quantity_received <= quantity_sent (ck_clip_item_received_le_sent,
      plus a conditional UPDATE in ClippingService.receive).
    - quantity_received only grows.
    - contact_number is unique per vendor (uq_vendor_contact_number).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stitch_kernel.db.base import TrackedBase


class ClipStatus(str, Enum):
    SENT = "Sent"
    PARTIALLY_RECEIVED = "Partially Received"
    COMPLETED = "Completed"


class Vendor(TrackedBase):
    """External clipping vendor."""

    __tablename__ = "vendors"

    __table_args__ = (
        UniqueConstraint("contact_number", name="uq_vendor_contact_number"),
    )

    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)
    cnic: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Vendor {self.vendor_name} ({self.contact_number})>"


class Clipping(TrackedBase):
    """Dispatch header grouping clip items sent to a vendor together."""

    __tablename__ = "clippings"

    vendor_id: Mapped[UUID] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["ClipItem"]] = relationship(back_populates="clipping")


class ClipItem(TrackedBase):
    """
    Quantity of one contract item out with a vendor.

    Guarantees:
        - status is Completed iff quantity_received == quantity_sent,
          Partially Received iff 0 < received < sent, Sent otherwise.
    """

    __tablename__ = "clip_items"

    __table_args__ = (
        CheckConstraint(
            "quantity_received <= quantity_sent",
            name="ck_clip_item_received_le_sent",
        ),
        Index("idx_clip_item_vendor", "vendor_id"),
        Index("idx_clip_item_contract_item", "contract_item_id"),
    )

    clipping_id: Mapped[UUID] = mapped_column(
        ForeignKey("clippings.id"),
        nullable=False,
    )
    contract_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("contract_items.id"),
        nullable=False,
    )
    vendor_id: Mapped[UUID] = mapped_column(ForeignKey("vendors.id"), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    quantity_sent: Mapped[Decimal] = mapped_column(nullable=False)
    quantity_received: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )

    date_sent: Mapped[date] = mapped_column(Date, nullable=False)
    last_received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[ClipStatus] = mapped_column(
        String(30),
        nullable=False,
        default=ClipStatus.SENT,
    )

    clipping: Mapped[Clipping] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<ClipItem {self.id} {self.quantity_received}/{self.quantity_sent} "
            f"{self.status}>"
        )
