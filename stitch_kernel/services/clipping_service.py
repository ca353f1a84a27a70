"""
ClippingService -- Outsourcing (Clipping) Ledger.

Responsibility:
    Records quantities of contract items sent to external clipping vendors
    and the quantities received back.

Architecture position:
    Kernel > Services.  Status rules live in ``stitch_engines.clipping``.

Invariants enforced:
    - quantity_received <= quantity_sent at all times.  ``receive`` adds in
      Decimal under a row lock and writes with a compare-and-swap UPDATE
      (``WHERE quantity_received = :old``).  A receipt that loses the race
      re-checks against the new total, so two concurrent receipts can never
      push the total past what was sent.  No arithmetic or comparison is
      left to the database, where Numeric may be stored as a float.
    - quantity_received only grows.
    - Status is Sent / Partially Received / Completed as a function of the
      two quantities, computed by ``clip_status`` and written in the same
      statement.
    - Quantity sent cannot drop below quantity received; a clip item with
      received quantity cannot be removed.

Failure modes:
    - InvalidQuantityError for non-positive or non-numeric quantities.
    - OverReceiptError when a receipt exceeds what is still out.
    - ReceivedQuantityLockedError.
    - VendorNotFoundError / ContractItemNotFoundError / ClipItemNotFoundError,
      InactiveReferenceError.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update

from stitch_engines.clipping import clip_status
from stitch_kernel.domain.dtos import ClipItemInfo, ClipSendLine
from stitch_kernel.domain.parsing import require_positive_decimal
from stitch_kernel.exceptions import (
    ClipItemNotFoundError,
    ContractItemNotFoundError,
    OverReceiptError,
    ReceivedQuantityLockedError,
    ValidationError,
    VendorNotFoundError,
)
from stitch_kernel.logging_config import LogContext, get_logger
from stitch_kernel.models.clipping import ClipItem, Clipping, ClipStatus, Vendor
from stitch_kernel.models.contract import ContractItem
from stitch_kernel.services.base import BaseService

logger = get_logger("services.clipping")


class ClippingService(BaseService[ClipItem]):
    def send(
        self,
        contract_item_id: UUID,
        vendor_id: UUID,
        quantity: object,
        date_sent: date,
        actor_id: UUID,
        description: str | None = None,
    ) -> ClipItemInfo:
        """Send one contract item's quantity to a vendor."""
        (clip,) = self.send_batch(
            vendor_id,
            [ClipSendLine(contract_item_id, quantity, description)],
            date_sent,
            actor_id,
        )
        return clip

    def send_batch(
        self,
        vendor_id: UUID,
        lines: Sequence[ClipSendLine],
        date_sent: date,
        actor_id: UUID,
        notes: str | None = None,
    ) -> list[ClipItemInfo]:
        """
        Send several items to one vendor under a single dispatch header.

        Every line is validated before anything is written.
        """
        self._load_active(Vendor, vendor_id, VendorNotFoundError)
        if not lines:
            raise ValidationError("At least one clip item is required")
        if date_sent is None:
            raise ValidationError("date_sent is required")

        parsed = []
        for line in lines:
            self._load_active(
                ContractItem, line.contract_item_id, ContractItemNotFoundError
            )
            parsed.append(
                (line, require_positive_decimal("quantity_sent", line.quantity))
            )

        with LogContext.bind(vendor_id=vendor_id):
            header = Clipping(vendor_id=vendor_id, notes=notes, created_by_id=actor_id)
            self.session.add(header)
            self.session.flush()

            clips = []
            for line, quantity in parsed:
                clip = ClipItem(
                    clipping_id=header.id,
                    contract_item_id=line.contract_item_id,
                    vendor_id=vendor_id,
                    description=line.description,
                    quantity_sent=quantity,
                    quantity_received=0,
                    date_sent=date_sent,
                    status=ClipStatus.SENT.value,
                    created_by_id=actor_id,
                )
                self.session.add(clip)
                clips.append(clip)
            self.session.flush()

            logger.info(
                "clip_sent",
                extra={
                    "clipping_id": str(header.id),
                    "item_count": len(clips),
                    "total_quantity": sum(q for _, q in parsed),
                },
            )
        return [ClipItemInfo.from_model(c) for c in clips]

    def receive(
        self,
        clip_item_id: UUID,
        quantity: object,
        received_date: date,
        actor_id: UUID,
    ) -> ClipItemInfo:
        """
        Record work received back from the vendor.

        Raises:
            InvalidQuantityError: If quantity is not a positive number.
            OverReceiptError: If received + quantity would exceed sent.
        """
        q = require_positive_decimal("quantity", quantity)
        if received_date is None:
            raise ValidationError("received_date is required")
        clip = self._load(ClipItem, clip_item_id, ClipItemNotFoundError, lock=True)

        with LogContext.bind(vendor_id=clip.vendor_id, contract_item_id=clip.contract_item_id):
            while True:
                old_received = clip.quantity_received
                new_received = old_received + q
                if new_received > clip.quantity_sent:
                    self._reject(clip, q)

                result = self.session.execute(
                    update(ClipItem)
                    .where(
                        ClipItem.id == clip_item_id,
                        ClipItem.quantity_received == old_received,
                    )
                    .values(
                        quantity_received=new_received,
                        last_received_date=received_date,
                        status=clip_status(clip.quantity_sent, new_received).value,
                        updated_by_id=actor_id,
                    )
                    .execution_options(synchronize_session=False)
                )
                self.session.refresh(clip)
                if result.rowcount == 1:
                    break
                # Another receipt moved quantity_received; re-check against it

            logger.info(
                "clip_received",
                extra={
                    "clip_item_id": str(clip_item_id),
                    "quantity": q,
                    "quantity_received": clip.quantity_received,
                    "quantity_sent": clip.quantity_sent,
                    "status": clip.status,
                },
            )
        return ClipItemInfo.from_model(clip)

    def update_sent_quantity(
        self, clip_item_id: UUID, quantity_sent: object, actor_id: UUID
    ) -> ClipItemInfo:
        q = require_positive_decimal("quantity_sent", quantity_sent)
        clip = self._load(ClipItem, clip_item_id, ClipItemNotFoundError, lock=True)
        if q < clip.quantity_received:
            raise ReceivedQuantityLockedError(
                str(clip_item_id),
                str(clip.quantity_received),
                f"quantity sent cannot be reduced to {q}",
            )
        clip.quantity_sent = q
        clip.status = clip_status(q, clip.quantity_received).value
        clip.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "clip_quantity_updated",
            extra={"clip_item_id": str(clip_item_id), "quantity_sent": q},
        )
        return ClipItemInfo.from_model(clip)

    def remove_item(self, clip_item_id: UUID, actor_id: UUID) -> None:
        """Delete a clip item that nothing has been received against."""
        clip = self._load(ClipItem, clip_item_id, ClipItemNotFoundError, lock=True)
        if clip.quantity_received > 0:
            raise ReceivedQuantityLockedError(
                str(clip_item_id),
                str(clip.quantity_received),
                "received work cannot be removed",
            )
        header_id = clip.clipping_id
        self.session.delete(clip)
        self.session.flush()

        remaining = self.session.execute(
            select(func.count(ClipItem.id)).where(ClipItem.clipping_id == header_id)
        ).scalar_one()
        if remaining == 0:
            header = self.session.get(Clipping, header_id)
            if header is not None:
                self.session.delete(header)
                self.session.flush()
        logger.info(
            "clip_item_removed",
            extra={"clip_item_id": str(clip_item_id), "actor_id": str(actor_id)},
        )

    def get_item(self, clip_item_id: UUID) -> ClipItemInfo:
        return ClipItemInfo.from_model(
            self._load(ClipItem, clip_item_id, ClipItemNotFoundError)
        )

    def _reject(self, clip: ClipItem, requested) -> None:
        error = OverReceiptError(
            str(clip.id),
            str(clip.quantity_sent),
            str(clip.quantity_received),
            str(requested),
        )
        logger.warning(
            "clip_over_receipt_rejected",
            extra={"clip_item_id": str(clip.id), "requested": requested},
        )
        raise error
