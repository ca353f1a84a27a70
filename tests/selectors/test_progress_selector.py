"""
Tests for ProgressSelector: item, machine and contract progress, days left
and the contract schedule.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stitch_engines.progress import ContractProgressStatus
from stitch_kernel.domain.dtos import AssignmentSpec, ProductionEntrySpec
from stitch_kernel.exceptions import ContractNotFoundError, MissingAssignmentError
from stitch_kernel.selectors import ProgressSelector


@pytest.fixture
def progress(session, deterministic_clock):
    return ProgressSelector(session, deterministic_clock)


@pytest.fixture
def record(production_service, test_actor_id):
    def _record(item_id, machine_id, stitches, day=date(2024, 1, 2)):
        return production_service.record_entry(
            ProductionEntrySpec(
                contract_item_id=item_id,
                machine_id=machine_id,
                production_date=day,
                shift="day",
                stitches=stitches,
                operator_name="Asif",
            ),
            test_actor_id,
        )

    return _record


class TestContractProgress:
    def test_volume_weighted(
        self,
        create_contract,
        create_item,
        create_machine,
        allocation_service,
        record,
        progress,
        test_actor_id,
    ):
        contract = create_contract()
        small = create_item(contract.id, stitch_per_repeat=1000, repeat_count=1)
        large = create_item(contract.id, stitch_per_repeat=1000, repeat_count=3)
        m = create_machine()
        allocation_service.replace_assignments(
            small.id, [AssignmentSpec(m.id, 1000, 500)], test_actor_id
        )
        record(small.id, m.id, 1000)

        result = progress.contract_progress(contract.id)

        assert result.planned == 4000
        assert result.used == 1000
        assert result.percent == Decimal("25.00")
        assert result.status == ContractProgressStatus.IN_PROGRESS
        assert progress.item_progress(large.id).percent == Decimal("0.00")

    def test_inactive_items_excluded(
        self, create_contract, create_item, contract_service, progress, test_actor_id
    ):
        contract = create_contract()
        create_item(contract.id, stitch_per_repeat=1000, repeat_count=1)
        dropped = create_item(contract.id, stitch_per_repeat=1000, repeat_count=9)
        contract_service.deactivate_item(dropped.id, test_actor_id)

        result = progress.contract_progress(contract.id)
        assert result.planned == 1000
        assert result.item_count == 1

    def test_fresh_contract_is_active(self, create_contract, progress):
        contract = create_contract()
        assert progress.contract_progress(contract.id).status == ContractProgressStatus.ACTIVE

    def test_soft_deleted_contract(self, create_contract, contract_service, progress, test_actor_id):
        contract = create_contract()
        contract_service.deactivate_contract(contract.id, test_actor_id)
        assert progress.contract_progress(contract.id).status == ContractProgressStatus.INACTIVE

    def test_completed(self, two_machine_allocation, record, progress):
        item, x, y = two_machine_allocation
        record(item.id, x.id, 30000)
        record(item.id, y.id, 20000)
        assert progress.contract_progress(item.contract_id).status == ContractProgressStatus.COMPLETED

    def test_unknown_contract(self, progress):
        with pytest.raises(ContractNotFoundError):
            progress.contract_progress(uuid4())


class TestMachineProgress:
    def test_scenario(self, two_machine_allocation, record, progress):
        item, x, y = two_machine_allocation
        record(item.id, x.id, 10000)

        assert progress.item_progress(item.id).remaining == 40000
        px = progress.machine_progress(item.id, x.id)
        assert (px.assigned, px.used, px.pending, px.estimated_days) == (30000, 10000, 20000, 30)
        py = progress.machine_progress(item.id, y.id)
        assert py.entry_ceiling == 20000

    def test_ceiling_limited_by_item(self, two_machine_allocation, record, progress):
        item, x, y = two_machine_allocation
        record(item.id, x.id, 35000)
        # Item has 15,000 left even though Y still has 20,000 assigned
        assert progress.machine_progress(item.id, y.id).entry_ceiling == 15000

    def test_unassigned(self, planned_item, create_machine, progress):
        with pytest.raises(MissingAssignmentError):
            progress.machine_progress(planned_item.id, create_machine().id)


class TestDaysLeft:
    def test_days_left(self, two_machine_allocation, progress, deterministic_clock):
        item, _, _ = two_machine_allocation
        deterministic_clock.set_date(date(2024, 1, 21))

        result = progress.days_left(item.contract_id)
        assert result.total_estimated_days == 70
        assert result.elapsed_days == 20
        assert result.days_left == 50

    def test_overdue(self, two_machine_allocation, progress):
        item, _, _ = two_machine_allocation
        result = progress.days_left(item.contract_id, today=date(2024, 3, 20))
        assert result.days_left < 0
        assert result.is_overdue

    def test_no_start_date(self, create_contract, progress):
        contract = create_contract()
        assert progress.days_left(contract.id) is None
        assert progress.schedule(contract.id) is None


class TestSchedule:
    def test_duration_from_dates(self, create_contract, progress):
        contract = create_contract(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
        result = progress.schedule(contract.id, today=date(2024, 1, 16))
        assert result.duration_days == 30
        assert result.time_percent == Decimal("50.00")
        assert result.days_remaining == 15

    def test_stored_duration(self, create_contract, progress):
        contract = create_contract(start_date=date(2024, 1, 1), duration_days=40)
        result = progress.schedule(contract.id, today=date(2024, 1, 11))
        assert result.time_percent == Decimal("25.00")

    def test_machine_estimate_fallback(self, two_machine_allocation, progress):
        item, _, _ = two_machine_allocation
        result = progress.schedule(item.contract_id, today=date(2024, 1, 8))
        assert result.duration_days == 70
        assert result.time_percent == Decimal("10.00")

    def test_no_usable_duration(self, create_contract, progress):
        contract = create_contract(start_date=date(2024, 1, 1))
        assert progress.schedule(contract.id, today=date(2024, 1, 5)) is None
