"""
Module: stitch_kernel.selectors.production_selector
Responsibility: Read-only queries over production entries: totals used to
    re-derive running counters, the first/last production dates of an
    assignment and entry listings.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Voided entries never contribute to totals.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from stitch_kernel.domain.dtos import ProductionEntryInfo
from stitch_kernel.exceptions import ProductionEntryNotFoundError
from stitch_kernel.models.production import ProductionEntry
from stitch_kernel.selectors.base import BaseSelector


class ProductionSelector(BaseSelector[ProductionEntry]):
    def _live(self, item_id: UUID, machine_id: UUID | None):
        conditions = [
            ProductionEntry.contract_item_id == item_id,
            ProductionEntry.is_void == False,  # noqa: E712
        ]
        if machine_id is not None:
            conditions.append(ProductionEntry.machine_id == machine_id)
        return conditions

    def entry_totals(
        self, item_id: UUID, machine_id: UUID | None = None
    ) -> tuple[int, int]:
        """(stitches, repeats) summed over non-void entries."""
        stitches, repeats = self.session.execute(
            select(
                func.coalesce(func.sum(ProductionEntry.stitches), 0),
                func.coalesce(func.sum(ProductionEntry.repeats), 0),
            ).where(*self._live(item_id, machine_id))
        ).one()
        return int(stitches), int(repeats)

    def date_span(
        self, item_id: UUID, machine_id: UUID
    ) -> tuple[date | None, date | None]:
        first, last = self.session.execute(
            select(
                func.min(ProductionEntry.production_date),
                func.max(ProductionEntry.production_date),
            ).where(*self._live(item_id, machine_id))
        ).one()
        return first, last

    def count_live(self, item_id: UUID, machine_id: UUID | None = None) -> int:
        return self.session.execute(
            select(func.count(ProductionEntry.id)).where(
                *self._live(item_id, machine_id)
            )
        ).scalar_one()

    def get_entry(self, entry_id: UUID) -> ProductionEntryInfo:
        entry = self.session.get(ProductionEntry, entry_id)
        if entry is None:
            raise ProductionEntryNotFoundError(str(entry_id))
        return ProductionEntryInfo.from_model(entry)

    def list_entries(
        self,
        item_id: UUID,
        machine_id: UUID | None = None,
        include_void: bool = False,
    ) -> list[ProductionEntryInfo]:
        stmt = select(ProductionEntry).where(ProductionEntry.contract_item_id == item_id)
        if machine_id is not None:
            stmt = stmt.where(ProductionEntry.machine_id == machine_id)
        if not include_void:
            stmt = stmt.where(ProductionEntry.is_void == False)  # noqa: E712
        stmt = stmt.order_by(ProductionEntry.production_date, ProductionEntry.created_at)
        return [
            ProductionEntryInfo.from_model(e)
            for e in self.session.execute(stmt).scalars().all()
        ]
