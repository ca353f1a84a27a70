"""
CommonFieldLock -- locked common fields of the bulk production form.

Responsibility:
    When an operator enters many production rows for the same day/shift,
    the date, shift, operator and machine are locked once and copied into
    every row.  This module models that as an explicit immutable state
    machine instead of ambient UI state.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    UNLOCKED --lock(fields)--> LOCKED --request_unlock()--> UNLOCK_PENDING
    UNLOCK_PENDING --confirm_unlock()--> UNLOCKED
    UNLOCK_PENDING --cancel_unlock()--> LOCKED

    Every transition returns a new CommonFieldLock.  Any other transition
    raises InvalidLockTransitionError.  Unlocking always needs confirmation.

Failure modes:
    - InvalidLockTransitionError on double lock, unconfirmed unlock, or
      apply() while not locked.
"""

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Self
from uuid import UUID

from stitch_kernel.exceptions import InvalidLockTransitionError, ValidationError


class LockState(str, Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"
    UNLOCK_PENDING = "unlock_pending"


@dataclass(frozen=True)
class CommonFields:
    """Values shared by every row of one bulk entry session."""

    production_date: date
    shift: str
    operator_name: str
    machine_id: UUID

    def __post_init__(self) -> None:
        if not self.operator_name or not self.operator_name.strip():
            raise ValidationError("operator_name is required")


@dataclass(frozen=True)
class CommonFieldLock:
    state: LockState = LockState.UNLOCKED
    fields: CommonFields | None = None

    @property
    def is_locked(self) -> bool:
        return self.state != LockState.UNLOCKED

    def lock(self, fields: CommonFields) -> Self:
        if self.state != LockState.UNLOCKED:
            raise InvalidLockTransitionError(self.state.value, "lock")
        return replace(self, state=LockState.LOCKED, fields=fields)

    def request_unlock(self) -> Self:
        if self.state != LockState.LOCKED:
            raise InvalidLockTransitionError(self.state.value, "request unlock")
        return replace(self, state=LockState.UNLOCK_PENDING)

    def cancel_unlock(self) -> Self:
        if self.state != LockState.UNLOCK_PENDING:
            raise InvalidLockTransitionError(self.state.value, "cancel unlock")
        return replace(self, state=LockState.LOCKED)

    def confirm_unlock(self) -> Self:
        if self.state != LockState.UNLOCK_PENDING:
            raise InvalidLockTransitionError(self.state.value, "confirm unlock")
        return replace(self, state=LockState.UNLOCKED, fields=None)

    def apply(self, **row: object) -> dict[str, object]:
        """Return ``row`` with the locked fields filled in (locked values win)."""
        if self.state == LockState.UNLOCKED or self.fields is None:
            raise InvalidLockTransitionError(self.state.value, "apply common fields")
        return {
            **row,
            "production_date": self.fields.production_date,
            "shift": self.fields.shift,
            "operator_name": self.fields.operator_name,
            "machine_id": self.fields.machine_id,
        }
