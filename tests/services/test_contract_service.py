"""
Tests for ContractService: contract headers, items and the rate cascade on save.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stitch_engines.rate_cascade import FieldStatus
from stitch_kernel.domain.results import WarningCode, has_warning
from stitch_kernel.exceptions import (
    ContractItemNotFoundError,
    ContractNotFoundError,
    DuplicateContractError,
    InactiveReferenceError,
    ValidationError,
)
from stitch_kernel.models.contract import ContractStatus

COSTED = {
    "stitch_per_repeat": "1000",
    "rate_per_stitch": "50",
    "cost_factor": "10.11",
    "repeat_count": "5",
    "piece_count": "36",
}


class TestContracts:
    def test_create(self, create_contract):
        contract = create_contract(
            contract_number=" C-100 ",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 1),
        )
        assert contract.contract_number == "C-100"
        assert contract.status == ContractStatus.DRAFT.value
        assert contract.is_active

    def test_duplicate_number(self, create_contract):
        create_contract(contract_number="C-1")
        with pytest.raises(DuplicateContractError):
            create_contract(contract_number="C-1")

    def test_number_required(self, create_contract):
        with pytest.raises(ValidationError):
            create_contract(contract_number="  ")

    def test_end_before_start(self, create_contract):
        with pytest.raises(ValidationError):
            create_contract(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))

    def test_status_change(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        updated = contract_service.set_status(contract.id, "active", test_actor_id)
        assert updated.status == "active"

    def test_unknown_status(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        with pytest.raises(ValidationError):
            contract_service.set_status(contract.id, "archived", test_actor_id)

    def test_deactivate(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        assert not contract_service.deactivate_contract(contract.id, test_actor_id).is_active

    def test_unknown_contract(self, contract_service):
        with pytest.raises(ContractNotFoundError):
            contract_service.get_contract(uuid4())


class TestAddItem:
    def test_costed_item(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        result = contract_service.add_item(contract.id, test_actor_id, COSTED)
        item = result.item

        assert item.calculated_rate == Decimal("138.5")
        assert item.rate_per_repeat == Decimal("1400.235")
        assert item.total_rate == Decimal("7001.175")
        assert item.heads == 18
        assert item.rate_per_piece == Decimal("77.7908")
        assert item.piece_amount == Decimal("2800.4688")
        assert item.final_total_rate == Decimal("9802")
        assert item.planned_total_stitches == 5000
        assert item.used_stitches == 0

    def test_item_without_rates(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        result = contract_service.add_item(
            contract.id, test_actor_id, {"design_no": "D-7", "stitch_per_repeat": "2000"}
        )
        assert result.item.stitch_per_repeat == 2000
        assert result.item.repeat_count == 0
        assert result.item.calculated_rate is None
        assert result.item.final_total_rate is None
        assert result.rates.calculated_rate.status == FieldStatus.RETAINED

    def test_override_on_create(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        result = contract_service.add_item(
            contract.id, test_actor_id, COSTED, rate_per_repeat_override="1500"
        )
        assert result.item.rate_per_repeat == Decimal("1500")
        assert result.item.rate_per_repeat_overridden
        assert result.item.total_rate == Decimal("7500")

    def test_inactive_contract(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        contract_service.deactivate_contract(contract.id, test_actor_id)
        with pytest.raises(InactiveReferenceError):
            contract_service.add_item(contract.id, test_actor_id, COSTED)

    def test_logs_creation(self, create_contract, contract_service, test_actor_id, captured_logs):
        contract = create_contract()
        contract_service.add_item(contract.id, test_actor_id, COSTED)

        records = [r for r in captured_logs() if r["message"] == "contract_item_created"]
        assert len(records) == 1
        assert records[0]["contract_id"] == str(contract.id)
        assert records[0]["final_total_rate"] == "9802"


class TestUpdateItem:
    @pytest.fixture
    def item(self, create_contract, contract_service, test_actor_id):
        contract = create_contract()
        return contract_service.add_item(contract.id, test_actor_id, COSTED).item

    def test_recomputes_on_change(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(item.id, test_actor_id, {"repeat_count": "10"})
        assert result.item.repeat_count == 10
        assert result.item.total_rate == Decimal("14002.35")
        assert result.item.final_total_rate == Decimal("16803")

    def test_garbage_integer_keeps_stored_value(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(
            item.id, test_actor_id, {"repeat_count": "ten"}
        )
        assert result.item.repeat_count == 5
        assert result.item.total_rate == Decimal("7001.175")
        assert result.rates.total_rate.status == FieldStatus.RETAINED

    def test_negative_integer_keeps_stored_value(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(
            item.id, test_actor_id, {"stitch_per_repeat": "-5"}
        )
        assert result.item.stitch_per_repeat == 1000

    def test_blank_decimal_clears_and_retains_derived(
        self, item, contract_service, test_actor_id
    ):
        result = contract_service.update_item(
            item.id, test_actor_id, {"rate_per_stitch": ""}
        )
        assert result.item.rate_per_stitch is None
        assert result.item.calculated_rate == Decimal("138.5")
        assert result.rates.calculated_rate.status == FieldStatus.RETAINED

    def test_garbage_decimal_keeps_stored(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(
            item.id, test_actor_id, {"rate_per_stitch": "abc"}
        )
        assert result.item.rate_per_stitch == Decimal("50")

    def test_unmapped_gazana(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(
            item.id, test_actor_id, {"cost_factor": "9.99"}
        )
        assert result.item.heads == 0
        assert result.item.rate_per_piece == Decimal("77.7908")
        assert result.rates.rate_per_piece.status == FieldStatus.RETAINED

    def test_override_discarded_on_basis_change(
        self, item, contract_service, test_actor_id, captured_logs
    ):
        contract_service.update_item(item.id, test_actor_id, {}, rate_per_repeat_override="1500")
        result = contract_service.update_item(
            item.id, test_actor_id, {"rate_per_stitch": "60"}
        )

        assert not result.item.rate_per_repeat_overridden
        assert result.item.rate_per_repeat == Decimal("1680.282")
        assert has_warning(result.warnings, WarningCode.RATE_OVERRIDE_DISCARDED)
        assert any(
            r["message"] == "rate_override_discarded" and r["level"] == "WARNING"
            for r in captured_logs()
        )

    def test_override_kept_on_unrelated_change(self, item, contract_service, test_actor_id):
        contract_service.update_item(item.id, test_actor_id, {}, rate_per_repeat_override="1500")
        result = contract_service.update_item(item.id, test_actor_id, {"piece_count": "72"})

        assert result.item.rate_per_repeat_overridden
        assert result.item.rate_per_repeat == Decimal("1500")
        assert result.warnings == ()

    def test_descriptive_fields(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(
            item.id, test_actor_id, {"color": " Maroon ", "fabric": None}
        )
        assert result.item.color == "Maroon"
        assert result.item.fabric is None

    def test_counters_not_editable(self, item, contract_service, test_actor_id):
        result = contract_service.update_item(
            item.id, test_actor_id, {"used_stitches": 999}
        )
        assert result.item.used_stitches == 0

    def test_inactive_item(self, item, contract_service, test_actor_id):
        contract_service.deactivate_item(item.id, test_actor_id)
        with pytest.raises(InactiveReferenceError):
            contract_service.update_item(item.id, test_actor_id, {"repeat_count": "6"})

    def test_unknown_item(self, contract_service, test_actor_id):
        with pytest.raises(ContractItemNotFoundError):
            contract_service.update_item(uuid4(), test_actor_id, {})
