"""
Service layer for machine master data.

Machines are registered once and soft-deleted.  An inactive machine keeps
its history but cannot take new assignments or production entries.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from stitch_kernel.domain.dtos import MachineInfo
from stitch_kernel.domain.parsing import parse_decimal, require_positive_int
from stitch_kernel.exceptions import MachineNotFoundError, ValidationError
from stitch_kernel.logging_config import get_logger
from stitch_kernel.models.machine import Machine
from stitch_kernel.services.base import BaseService

logger = get_logger("services.machine")


class MachineService(BaseService[Machine]):
    def register(
        self,
        machine_number: object,
        actor_id: UUID,
        master_name: str | None = None,
        cost_factor: object = None,
    ) -> MachineInfo:
        """
        Register a machine.

        Raises:
            InvalidQuantityError: If machine_number is not a positive integer.
            ValidationError: If the machine number is already registered.
        """
        number = require_positive_int("machine_number", machine_number)
        existing = self.session.execute(
            select(Machine.id).where(Machine.machine_number == number)
        ).scalar_one_or_none()
        if existing is not None:
            raise ValidationError(f"Machine number already exists: {number}")

        machine = Machine(
            machine_number=number,
            master_name=master_name,
            cost_factor=parse_decimal(cost_factor),
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(machine)
        self.session.flush()

        logger.info(
            "machine_registered",
            extra={"machine_id": str(machine.id), "machine_number": number},
        )
        return MachineInfo.from_model(machine)

    def deactivate(self, machine_id: UUID, actor_id: UUID) -> MachineInfo:
        machine = self._load(Machine, machine_id, MachineNotFoundError)
        machine.is_active = False
        machine.updated_by_id = actor_id
        self.session.flush()
        logger.info("machine_deactivated", extra={"machine_id": str(machine_id)})
        return MachineInfo.from_model(machine)

    def get(self, machine_id: UUID) -> MachineInfo:
        return MachineInfo.from_model(
            self._load(Machine, machine_id, MachineNotFoundError)
        )

    def list_active(self) -> list[MachineInfo]:
        machines = self.session.execute(
            select(Machine)
            .where(Machine.is_active == True)  # noqa: E712
            .order_by(Machine.machine_number)
        ).scalars().all()
        return [MachineInfo.from_model(m) for m in machines]
