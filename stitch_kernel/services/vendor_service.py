"""
Service layer for clipping vendors.

Vendor names need at least two characters and every vendor has a contact
number that no other vendor uses.  A vendor holding work that has not come
back yet cannot be deactivated.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from stitch_kernel.domain.dtos import VendorInfo
from stitch_kernel.exceptions import (
    DuplicateVendorError,
    ValidationError,
    VendorHasOpenWorkError,
    VendorNotFoundError,
)
from stitch_kernel.logging_config import LogContext, get_logger
from stitch_kernel.models.clipping import Vendor
from stitch_kernel.selectors.vendor_selector import VendorProgressSelector
from stitch_kernel.services.base import BaseService

logger = get_logger("services.vendor")

MIN_NAME_LENGTH = 2


def _clean_name(vendor_name: str | None) -> str:
    name = (vendor_name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(
            f"Vendor name is required (min {MIN_NAME_LENGTH} characters)"
        )
    return name


def _clean_contact(contact_number: str | None) -> str:
    contact = (contact_number or "").strip()
    if not contact:
        raise ValidationError("Contact number is required")
    return contact


class VendorService(BaseService[Vendor]):
    def create(
        self,
        vendor_name: str,
        contact_number: str,
        actor_id: UUID,
        cnic: str | None = None,
        address: str | None = None,
    ) -> VendorInfo:
        """
        Register a vendor.

        Raises:
            ValidationError: If the name is shorter than two characters or
                the contact number is blank.
            DuplicateVendorError: If the contact number is taken.
        """
        name = _clean_name(vendor_name)
        contact = _clean_contact(contact_number)
        self._check_contact_free(contact)

        vendor = Vendor(
            vendor_name=name,
            contact_number=contact,
            cnic=cnic,
            address=address,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(vendor)
        self.session.flush()

        with LogContext.bind(vendor_id=vendor.id):
            logger.info("vendor_created", extra={"vendor_name": name})
        return VendorInfo.from_model(vendor)

    def update(
        self,
        vendor_id: UUID,
        actor_id: UUID,
        vendor_name: str | None = None,
        contact_number: str | None = None,
        cnic: str | None = None,
        address: str | None = None,
    ) -> VendorInfo:
        """Change vendor details.  Arguments left as None are not touched."""
        vendor = self._load(Vendor, vendor_id, VendorNotFoundError)

        if vendor_name is not None:
            vendor.vendor_name = _clean_name(vendor_name)
        if contact_number is not None:
            contact = _clean_contact(contact_number)
            if contact != vendor.contact_number:
                self._check_contact_free(contact, exclude=vendor_id)
            vendor.contact_number = contact
        if cnic is not None:
            vendor.cnic = cnic
        if address is not None:
            vendor.address = address
        vendor.updated_by_id = actor_id
        self.session.flush()

        with LogContext.bind(vendor_id=vendor_id):
            logger.info("vendor_updated")
        return VendorInfo.from_model(vendor)

    def deactivate(self, vendor_id: UUID, actor_id: UUID) -> VendorInfo:
        """
        Raises:
            VendorHasOpenWorkError: If any clip item is not Completed.
        """
        vendor = self._load(Vendor, vendor_id, VendorNotFoundError)
        open_items = VendorProgressSelector(self.session).open_item_count(vendor_id)
        if open_items:
            raise VendorHasOpenWorkError(str(vendor_id), open_items)

        vendor.is_active = False
        vendor.updated_by_id = actor_id
        self.session.flush()
        with LogContext.bind(vendor_id=vendor_id):
            logger.info("vendor_deactivated")
        return VendorInfo.from_model(vendor)

    def get(self, vendor_id: UUID) -> VendorInfo:
        return VendorInfo.from_model(self._load(Vendor, vendor_id, VendorNotFoundError))

    def _check_contact_free(self, contact: str, exclude: UUID | None = None) -> None:
        stmt = select(Vendor.id).where(Vendor.contact_number == contact)
        if exclude is not None:
            stmt = stmt.where(Vendor.id != exclude)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateVendorError(contact)
