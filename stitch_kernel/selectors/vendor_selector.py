"""
Module: stitch_kernel.selectors.vendor_selector
Responsibility: Vendor-level rollups of the outsourcing ledger.  Groups a
    vendor's clip items by the contract of their contract item and applies
    the rollup rules in ``stitch_engines.clipping``.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import func, select

from stitch_engines.clipping import ClipLine, vendor_rollup
from stitch_kernel.domain.dtos import ClipItemInfo, VendorInfo, VendorProgress
from stitch_kernel.exceptions import VendorNotFoundError
from stitch_kernel.models.clipping import ClipItem, ClipStatus, Vendor
from stitch_kernel.models.contract import ContractItem
from stitch_kernel.selectors.base import BaseSelector


class VendorProgressSelector(BaseSelector[Vendor]):
    def _vendor(self, vendor_id: UUID) -> Vendor:
        vendor = self.session.get(Vendor, vendor_id)
        if vendor is None:
            raise VendorNotFoundError(str(vendor_id))
        return vendor

    def vendor_progress(self, vendor_id: UUID) -> VendorProgress:
        vendor = self._vendor(vendor_id)
        rows = self.session.execute(
            select(
                ContractItem.contract_id,
                ClipItem.quantity_sent,
                ClipItem.quantity_received,
            )
            .join(ContractItem, ContractItem.id == ClipItem.contract_item_id)
            .where(ClipItem.vendor_id == vendor_id)
            .order_by(ClipItem.date_sent, ClipItem.created_at)
        ).all()

        overall, by_contract = vendor_rollup(
            tuple(ClipLine(str(cid), sent, received) for cid, sent, received in rows)
        )
        return VendorProgress(
            vendor=VendorInfo.from_model(vendor),
            overall=overall,
            by_contract={UUID(cid): r for cid, r in by_contract.items()},
        )

    def all_vendors(self, active_only: bool = True) -> list[VendorProgress]:
        stmt = select(Vendor.id).order_by(Vendor.vendor_name)
        if active_only:
            stmt = stmt.where(Vendor.is_active == True)  # noqa: E712
        return [self.vendor_progress(vid) for vid in self.session.execute(stmt).scalars()]

    def open_item_count(self, vendor_id: UUID) -> int:
        """Clip items of the vendor that are not Completed."""
        return self.session.execute(
            select(func.count(ClipItem.id)).where(
                ClipItem.vendor_id == vendor_id,
                ClipItem.status != ClipStatus.COMPLETED.value,
            )
        ).scalar_one()

    def clip_items(self, vendor_id: UUID) -> list[ClipItemInfo]:
        self._vendor(vendor_id)
        items = self.session.execute(
            select(ClipItem)
            .where(ClipItem.vendor_id == vendor_id)
            .order_by(ClipItem.date_sent, ClipItem.created_at)
        ).scalars().all()
        return [ClipItemInfo.from_model(c) for c in items]
