"""Kernel services.  Every service flushes and never commits."""

from stitch_kernel.services.allocation_service import AllocationService
from stitch_kernel.services.clipping_service import ClippingService
from stitch_kernel.services.contract_service import ContractService
from stitch_kernel.services.machine_service import MachineService
from stitch_kernel.services.production_service import ProductionService
from stitch_kernel.services.vendor_service import VendorService

__all__ = [
    "AllocationService",
    "ClippingService",
    "ContractService",
    "MachineService",
    "ProductionService",
    "VendorService",
]
