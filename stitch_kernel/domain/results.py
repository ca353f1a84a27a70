"""
Soft consistency warnings returned next to successful results.

Hard violations raise typed exceptions (``stitch_kernel.exceptions``).  The
conditions here are allowed to persist (a mill may over-produce, or save an
allocation that does not yet cover the whole item), so they travel as values
and are logged at WARNING by the service that produced them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class WarningCode(str, Enum):
    ALLOCATION_MISMATCH = "ALLOCATION_MISMATCH"
    OVER_CONSUMPTION = "OVER_CONSUMPTION"
    MACHINE_OVER_ASSIGNMENT = "MACHINE_OVER_ASSIGNMENT"
    RATE_OVERRIDE_DISCARDED = "RATE_OVERRIDE_DISCARDED"


@dataclass(frozen=True)
class ConsistencyWarning:
    """A soft invariant that did not hold when the operation completed."""

    code: WarningCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def as_log_extra(self) -> dict[str, Any]:
        return {"warning_code": self.code.value, **self.details}


def has_warning(warnings: tuple[ConsistencyWarning, ...], code: WarningCode) -> bool:
    return any(w.code == code for w in warnings)
