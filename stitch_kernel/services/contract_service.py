"""
ContractService -- contracts, contract items and their rate cascade.

Responsibility:
    Creates contracts and contract items, applies operator edits to item
    inputs and re-runs the rate cascade on every save, drives the contract
    header lifecycle and soft-deletes contracts and items.

Architecture position:
    Kernel > Services.  Calls ``stitch_engines.rate_cascade`` with
    parameters bridged from ``stitch_config``.

Invariants enforced:
    - Derived rate columns are only ever written from a CascadeResult, all
      together in the same flush.
    - Integer inputs (stitches per repeat, repeats, pieces) keep their stored
      value when the operator enters something that is not a whole,
      non-negative number; the cascade then retains the dependent fields.
    - Contracts and items are never hard-deleted.

Failure modes:
    - ContractNotFoundError / ContractItemNotFoundError.
    - InactiveReferenceError when adding an item to an inactive contract or
      editing an inactive item.
    - DuplicateContractError on a reused contract number.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stitch_config import cascade_parameters, get_active_config
from stitch_config.schema import EngineConfig
from stitch_engines.rate_cascade import (
    CascadeResult,
    CascadeState,
    FieldStatus,
    RateInputs,
    compute_rates,
)
from stitch_kernel.domain.clock import Clock
from stitch_kernel.domain.dtos import ContractInfo, ContractItemInfo, ItemSaveResult
from stitch_kernel.domain.parsing import parse_decimal, parse_int
from stitch_kernel.exceptions import (
    ContractItemNotFoundError,
    ContractNotFoundError,
    DuplicateContractError,
    ValidationError,
)
from stitch_kernel.logging_config import LogContext, get_logger
from stitch_kernel.models.contract import Contract, ContractItem, ContractStatus
from stitch_kernel.services.base import BaseService

logger = get_logger("services.contract")

INTEGER_INPUTS = ("stitch_per_repeat", "repeat_count", "piece_count")
DECIMAL_INPUTS = (
    "rate_per_stitch",
    "cost_factor",
    "motif_rate",
    "motif_qty",
    "lace_rate",
    "lace_qty",
)
DESCRIPTIVE_FIELDS = (
    "collection",
    "design_no",
    "component",
    "description",
    "fabric",
    "color",
)


def _non_negative_int(raw: object) -> int | None:
    value = parse_int(raw)
    if value is None or value < 0:
        return None
    return value


class ContractService(BaseService[Contract]):
    """Contract register and item costing."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        super().__init__(session, clock)
        self.params = cascade_parameters(config or get_active_config())

    # Contracts

    def create_contract(
        self,
        contract_number: str,
        actor_id: UUID,
        party_name: str | None = None,
        po_number: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        duration_days: int | None = None,
    ) -> ContractInfo:
        """
        Create a contract header in ``draft`` status.

        Raises:
            DuplicateContractError: If contract_number is already used.
            ValidationError: If end_date is before start_date.
        """
        number = (contract_number or "").strip()
        if not number:
            raise ValidationError("contract_number is required")
        existing = self.session.execute(
            select(Contract.id).where(Contract.contract_number == number)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateContractError(number)
        if start_date and end_date and end_date < start_date:
            raise ValidationError(
                f"end_date {end_date} is before start_date {start_date}"
            )
        if duration_days is not None and duration_days < 0:
            raise ValidationError(f"duration_days must be >= 0, got {duration_days}")

        contract = Contract(
            contract_number=number,
            party_name=party_name,
            po_number=po_number,
            start_date=start_date,
            end_date=end_date,
            duration_days=duration_days,
            status=ContractStatus.DRAFT.value,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(contract)
        self.session.flush()

        logger.info(
            "contract_created",
            extra={"contract_id": str(contract.id), "contract_number": number},
        )
        return ContractInfo.from_model(contract)

    def set_status(
        self, contract_id: UUID, status: ContractStatus | str, actor_id: UUID
    ) -> ContractInfo:
        try:
            new_status = ContractStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown contract status: {status!r}") from exc

        contract = self._load_active(Contract, contract_id, ContractNotFoundError)
        old_status = contract.status
        contract.status = new_status.value
        contract.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "contract_status_changed",
            extra={
                "contract_id": str(contract_id),
                "from_status": str(getattr(old_status, "value", old_status)),
                "to_status": new_status.value,
            },
        )
        return ContractInfo.from_model(contract)

    def deactivate_contract(self, contract_id: UUID, actor_id: UUID) -> ContractInfo:
        """Soft-delete a contract.  Its items and production are kept."""
        contract = self._load(Contract, contract_id, ContractNotFoundError)
        contract.is_active = False
        contract.updated_by_id = actor_id
        self.session.flush()
        logger.info("contract_deactivated", extra={"contract_id": str(contract_id)})
        return ContractInfo.from_model(contract)

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        return ContractInfo.from_model(
            self._load(Contract, contract_id, ContractNotFoundError)
        )

    # Items

    def add_item(
        self,
        contract_id: UUID,
        actor_id: UUID,
        values: Mapping[str, object],
        rate_per_repeat_override: object = None,
    ) -> ItemSaveResult:
        """
        Add a costed item to an active contract.

        Args:
            contract_id: Owning contract.
            actor_id: Acting user.
            values: Raw descriptive and input fields keyed by column name.
            rate_per_repeat_override: Optional manual rate per repeat.
        """
        self._load_active(Contract, contract_id, ContractNotFoundError)

        item = ContractItem(
            contract_id=contract_id,
            stitch_per_repeat=0,
            repeat_count=0,
            piece_count=0,
            heads=0,
            used_stitches=0,
            used_repeats=0,
            rate_per_repeat_overridden=False,
            is_active=True,
            created_by_id=actor_id,
        )
        with LogContext.bind(contract_id=contract_id):
            result = self._apply(item, values, None, rate_per_repeat_override)
            self.session.add(item)
            self.session.flush()
            self._log_saved("contract_item_created", item, result)
        return ItemSaveResult(
            item=ContractItemInfo.from_model(item),
            rates=result.rates,
            warnings=result.warnings,
        )

    def update_item(
        self,
        item_id: UUID,
        actor_id: UUID,
        changes: Mapping[str, object],
        rate_per_repeat_override: object = None,
    ) -> ItemSaveResult:
        """
        Apply operator edits and re-run the cascade.

        Only keys present in ``changes`` are touched.  Production counters
        are not editable here.
        """
        item = self._load_active(
            ContractItem, item_id, ContractItemNotFoundError, lock=True
        )
        previous = self._state_of(item)

        with LogContext.bind(contract_id=item.contract_id, contract_item_id=item.id):
            result = self._apply(item, changes, previous, rate_per_repeat_override)
            item.updated_by_id = actor_id
            self.session.flush()
            self._log_saved("contract_item_updated", item, result)
        return ItemSaveResult(
            item=ContractItemInfo.from_model(item),
            rates=result.rates,
            warnings=result.warnings,
        )

    def deactivate_item(self, item_id: UUID, actor_id: UUID) -> ContractItemInfo:
        item = self._load(ContractItem, item_id, ContractItemNotFoundError)
        item.is_active = False
        item.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "contract_item_deactivated",
            extra={"contract_item_id": str(item_id), "contract_id": str(item.contract_id)},
        )
        return ContractItemInfo.from_model(item)

    def get_item(self, item_id: UUID) -> ContractItemInfo:
        return ContractItemInfo.from_model(
            self._load(ContractItem, item_id, ContractItemNotFoundError)
        )

    # Internals

    def _state_of(self, item: ContractItem) -> CascadeState:
        inputs = RateInputs(
            stitch_per_repeat=Decimal(item.stitch_per_repeat),
            repeat_count=Decimal(item.repeat_count),
            piece_count=Decimal(item.piece_count),
            **{name: getattr(item, name) for name in DECIMAL_INPUTS},
        )
        values = {
            "calculated_rate": item.calculated_rate,
            "rate_per_repeat": item.rate_per_repeat,
            "total_rate": item.total_rate,
            "heads": Decimal(item.heads),
            "rate_per_piece": item.rate_per_piece,
            "piece_amount": item.piece_amount,
            "motif_amount": item.motif_amount,
            "lace_amount": item.lace_amount,
            "final_total_rate": item.final_total_rate,
        }
        return CascadeState(
            inputs=inputs,
            values=values,
            rate_per_repeat_overridden=item.rate_per_repeat_overridden,
        )

    def _apply(
        self,
        item: ContractItem,
        raw: Mapping[str, object],
        previous: CascadeState | None,
        override_raw: object,
    ) -> CascadeResult:
        for name in DESCRIPTIVE_FIELDS:
            if name in raw:
                value = raw[name]
                setattr(item, name, str(value).strip() if value is not None else None)

        parsed: dict[str, Decimal | None] = {}
        for name in INTEGER_INPUTS:
            if name in raw:
                value = _non_negative_int(raw[name])
                if value is not None:
                    setattr(item, name, value)
                parsed[name] = Decimal(value) if value is not None else None
            elif previous is not None:
                parsed[name] = Decimal(getattr(item, name))
            else:
                parsed[name] = None
        for name in DECIMAL_INPUTS:
            if name in raw:
                value = parse_decimal(raw[name])
                if value is not None or _is_blank(raw[name]):
                    setattr(item, name, value)
                parsed[name] = value
            else:
                parsed[name] = getattr(item, name)

        result = compute_rates(
            RateInputs(**parsed),
            previous,
            parse_decimal(override_raw),
            self.params,
        )
        for derived in result.rates.all_fields():
            if derived.name == "heads":
                item.heads = result.rates.head_count
            else:
                setattr(item, derived.name, derived.value)
        item.rate_per_repeat_overridden = result.rate_per_repeat_overridden
        return result

    def _log_saved(self, event: str, item: ContractItem, result: CascadeResult) -> None:
        retained = [
            f.name for f in result.rates.all_fields() if f.status == FieldStatus.RETAINED
        ]
        logger.info(
            event,
            extra={
                "contract_item_id": str(item.id),
                "planned_total_stitches": item.planned_total_stitches,
                "final_total_rate": item.final_total_rate,
                "rate_per_repeat_overridden": item.rate_per_repeat_overridden,
                "retained_fields": retained,
            },
        )
        for warning in result.warnings:
            logger.warning(warning.code.value.lower(), extra=warning.as_log_extra())


def _is_blank(raw: object) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())
