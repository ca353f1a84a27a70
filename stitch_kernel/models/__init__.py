"""ORM models.  Importing this package registers every table on Base.metadata."""

from stitch_kernel.models.clipping import ClipItem, Clipping, ClipStatus, Vendor
from stitch_kernel.models.contract import Contract, ContractItem, ContractStatus
from stitch_kernel.models.machine import Machine, MachineAssignment
from stitch_kernel.models.production import ProductionEntry, Shift

__all__ = [
    "Contract",
    "ContractItem",
    "ContractStatus",
    "Machine",
    "MachineAssignment",
    "ProductionEntry",
    "Shift",
    "Vendor",
    "Clipping",
    "ClipItem",
    "ClipStatus",
]
