"""
Typed Exception Hierarchy for the Stitch Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the presentation layer, batch imports, reconciliation scripts) must
react to errors precisely.  Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        clipping.receive(clip_item_id, quantity, today, actor_id)
    except OverReceiptError as e:
        api_response(code=e.code, remaining=e.remaining)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StitchKernelError (base)
    |
    +-- ValidationError                    hard, no state change
    |   +-- InvalidQuantityError
    |   +-- InvalidProductionRateError
    |   +-- OverReceiptError
    |   +-- ReceivedQuantityLockedError
    |   +-- InactiveReferenceError
    |   +-- MissingAssignmentError
    |   +-- DuplicateAssignmentError
    |   +-- AssignmentInUseError
    |   +-- EntryVoidedError
    |   +-- DuplicateContractError
    |   +-- DuplicateVendorError
    |   +-- VendorHasOpenWorkError
    |
    +-- NotFoundError                      hard, referenced entity missing
    |   +-- ContractNotFoundError
    |   +-- ContractItemNotFoundError
    |   +-- MachineNotFoundError
    |   +-- ProductionEntryNotFoundError
    |   +-- VendorNotFoundError
    |   +-- ClipItemNotFoundError
    |
    +-- LockStateError
        +-- InvalidLockTransitionError

Soft consistency problems (allocation mismatch, over-consumption) are NOT
exceptions.  They are returned as ``ConsistencyWarning`` values next to a
successful result (see ``stitch_kernel.domain.results``).

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|----------------------------------------
Validation   | INVALID_QUANTITY              | Non-numeric, zero or negative quantity
             | INVALID_PRODUCTION_RATE       | avg_stitches_per_day <= 0
             | OVER_RECEIPT                  | Receipt exceeds quantity still out
             | RECEIVED_QUANTITY_LOCKED      | Sent qty below received / remove received item
             | INACTIVE_REFERENCE            | Item, machine, vendor or contract inactive
             | MISSING_ASSIGNMENT            | Entry for a machine not assigned to the item
             | DUPLICATE_ASSIGNMENT          | Same machine twice in one allocation save
             | ASSIGNMENT_IN_USE             | Removing an assignment that has production
             | ENTRY_VOIDED                  | Editing or voiding a voided entry
             | DUPLICATE_CONTRACT            | Contract number already used
             | DUPLICATE_VENDOR              | Contact number already registered
             | VENDOR_HAS_OPEN_WORK          | Deactivating a vendor with open clip items
-------------|-------------------------------|----------------------------------------
Not found    | CONTRACT_NOT_FOUND            | Contract ID doesn't exist
             | CONTRACT_ITEM_NOT_FOUND       | Contract item ID doesn't exist
             | MACHINE_NOT_FOUND             | Machine ID doesn't exist
             | PRODUCTION_ENTRY_NOT_FOUND    | Entry ID doesn't exist
             | VENDOR_NOT_FOUND              | Vendor ID doesn't exist
             | CLIP_ITEM_NOT_FOUND           | Clip item ID doesn't exist
-------------|-------------------------------|----------------------------------------
Lock state   | INVALID_LOCK_TRANSITION       | Illegal common-field lock transition
"""

from decimal import Decimal


class StitchKernelError(Exception):
    """
    Base exception for all stitch kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STITCH_KERNEL_ERROR"


# Validation (hard) exceptions


class ValidationError(StitchKernelError):
    """Base exception for rejected input.  The operation made no changes."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """A numeric field is missing, non-numeric or out of range."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class InvalidProductionRateError(ValidationError):
    """Average stitches per day must be strictly positive."""

    code: str = "INVALID_PRODUCTION_RATE"

    def __init__(self, machine_id: str, avg_stitches_per_day: object):
        self.machine_id = machine_id
        self.avg_stitches_per_day = avg_stitches_per_day
        super().__init__(
            f"avg_stitches_per_day must be > 0 for machine {machine_id}, "
            f"got {avg_stitches_per_day!r}"
        )


class OverReceiptError(ValidationError):
    """Receipt would take quantity_received above quantity_sent."""

    code: str = "OVER_RECEIPT"

    def __init__(
        self,
        clip_item_id: str,
        quantity_sent: str,
        quantity_received: str,
        requested: str,
    ):
        self.clip_item_id = clip_item_id
        self.quantity_sent = quantity_sent
        self.quantity_received = quantity_received
        self.requested = requested
        self.remaining = str(Decimal(quantity_sent) - Decimal(quantity_received))
        super().__init__(
            f"Cannot receive {requested} on clip item {clip_item_id}: "
            f"sent={quantity_sent}, already received={quantity_received}, "
            f"remaining={self.remaining}"
        )


class ReceivedQuantityLockedError(ValidationError):
    """Change would contradict quantity already received back from a vendor."""

    code: str = "RECEIVED_QUANTITY_LOCKED"

    def __init__(self, clip_item_id: str, quantity_received: str, reason: str):
        self.clip_item_id = clip_item_id
        self.quantity_received = quantity_received
        self.reason = reason
        super().__init__(
            f"Clip item {clip_item_id} has received {quantity_received}: {reason}"
        )


class InactiveReferenceError(ValidationError):
    """Referenced entity exists but has been deactivated."""

    code: str = "INACTIVE_REFERENCE"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} is inactive")


class MissingAssignmentError(ValidationError):
    """Production recorded for a machine that is not assigned to the item."""

    code: str = "MISSING_ASSIGNMENT"

    def __init__(self, contract_item_id: str, machine_id: str):
        self.contract_item_id = contract_item_id
        self.machine_id = machine_id
        super().__init__(
            f"Machine {machine_id} is not assigned to contract item {contract_item_id}"
        )


class DuplicateAssignmentError(ValidationError):
    """The same machine appears more than once in one allocation save."""

    code: str = "DUPLICATE_ASSIGNMENT"

    def __init__(self, contract_item_id: str, machine_id: str):
        self.contract_item_id = contract_item_id
        self.machine_id = machine_id
        super().__init__(
            f"Machine {machine_id} listed twice for contract item {contract_item_id}"
        )


class AssignmentInUseError(ValidationError):
    """Assignment cannot be removed while production is recorded against it."""

    code: str = "ASSIGNMENT_IN_USE"

    def __init__(self, contract_item_id: str, machine_id: str, used_stitches: int):
        self.contract_item_id = contract_item_id
        self.machine_id = machine_id
        self.used_stitches = used_stitches
        super().__init__(
            f"Machine {machine_id} has {used_stitches} stitches recorded "
            f"for contract item {contract_item_id}"
        )


class EntryVoidedError(ValidationError):
    """Voided production entries are frozen."""

    code: str = "ENTRY_VOIDED"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Production entry {entry_id} is void")


class DuplicateContractError(ValidationError):
    """Contract number already exists."""

    code: str = "DUPLICATE_CONTRACT"

    def __init__(self, contract_number: str):
        self.contract_number = contract_number
        super().__init__(f"Contract number already exists: {contract_number}")


class DuplicateVendorError(ValidationError):
    """A vendor with this contact number is already registered."""

    code: str = "DUPLICATE_VENDOR"

    def __init__(self, contact_number: str):
        self.contact_number = contact_number
        super().__init__(f"Vendor with contact number {contact_number} already exists")


class VendorHasOpenWorkError(ValidationError):
    """Vendor still holds clip items that are not fully received."""

    code: str = "VENDOR_HAS_OPEN_WORK"

    def __init__(self, vendor_id: str, open_items: int):
        self.vendor_id = vendor_id
        self.open_items = open_items
        super().__init__(
            f"Vendor {vendor_id} has {open_items} clip item(s) not yet completed"
        )


# Not-found exceptions


class NotFoundError(StitchKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    entity: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"
    entity = "Contract"


class ContractItemNotFoundError(NotFoundError):
    code: str = "CONTRACT_ITEM_NOT_FOUND"
    entity = "Contract item"


class MachineNotFoundError(NotFoundError):
    code: str = "MACHINE_NOT_FOUND"
    entity = "Machine"


class ProductionEntryNotFoundError(NotFoundError):
    code: str = "PRODUCTION_ENTRY_NOT_FOUND"
    entity = "Production entry"


class VendorNotFoundError(NotFoundError):
    code: str = "VENDOR_NOT_FOUND"
    entity = "Vendor"


class ClipItemNotFoundError(NotFoundError):
    code: str = "CLIP_ITEM_NOT_FOUND"
    entity = "Clip item"


# Lock state exceptions


class LockStateError(StitchKernelError):
    """Base exception for common-field lock errors."""

    code: str = "LOCK_STATE_ERROR"


class InvalidLockTransitionError(LockStateError):
    """Transition not allowed from the current lock state."""

    code: str = "INVALID_LOCK_TRANSITION"

    def __init__(self, current_state: str, action: str):
        self.current_state = current_state
        self.action = action
        super().__init__(f"Cannot {action} while common fields are {current_state}")
