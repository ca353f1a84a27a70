"""
Tests for AllocationService (Machine Allocation Ledger).

The reference scenario: an item planned at 50,000 stitches split between
machine X (30,000 @ 1,000/day) and machine Y (20,000 @ 500/day).
"""

from datetime import date
from uuid import uuid4

import pytest

from stitch_kernel.domain.dtos import AssignmentSpec, ProductionEntrySpec
from stitch_kernel.domain.results import WarningCode, has_warning
from stitch_kernel.exceptions import (
    AssignmentInUseError,
    ContractItemNotFoundError,
    DuplicateAssignmentError,
    InactiveReferenceError,
    InvalidProductionRateError,
    InvalidQuantityError,
    MachineNotFoundError,
    MissingAssignmentError,
    ValidationError,
)


def by_machine(result):
    return {a.machine_id: a for a in result.assignments}


class TestReplaceAssignments:
    def test_two_machine_split(
        self, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x, y = create_machine(), create_machine()
        result = allocation_service.replace_assignments(
            planned_item.id,
            [AssignmentSpec(x.id, 30000, 1000), AssignmentSpec(y.id, 20000, 500)],
            test_actor_id,
        )
        rows = by_machine(result)

        assert rows[x.id].estimated_days == 30
        assert rows[y.id].estimated_days == 40
        assert rows[x.id].pending_stitches == 30000
        assert result.planned_total_stitches == 50000
        assert result.total_estimated_days == 70
        assert result.warnings == ()

    def test_mismatch_is_a_warning(
        self, planned_item, create_machine, allocation_service, test_actor_id, captured_logs
    ):
        x = create_machine()
        result = allocation_service.replace_assignments(
            planned_item.id, [AssignmentSpec(x.id, 30000, 1000)], test_actor_id
        )

        assert len(result.assignments) == 1
        assert has_warning(result.warnings, WarningCode.ALLOCATION_MISMATCH)
        assert result.warnings[0].details["difference"] == -20000
        assert any(
            r["message"] == "allocation_mismatch" and r["level"] == "WARNING"
            for r in captured_logs()
        )

    def test_one_bad_rate_rejects_everything(
        self, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x, y = create_machine(), create_machine()
        with pytest.raises(InvalidProductionRateError):
            allocation_service.replace_assignments(
                planned_item.id,
                [AssignmentSpec(x.id, 30000, 1000), AssignmentSpec(y.id, 20000, 0)],
                test_actor_id,
            )
        assert allocation_service.list_assignments(planned_item.id) == []

    @pytest.mark.parametrize("avg", ["", "abc", "-10", None])
    def test_unparseable_rate(
        self, avg, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x = create_machine()
        with pytest.raises(InvalidProductionRateError):
            allocation_service.replace_assignments(
                planned_item.id, [AssignmentSpec(x.id, 30000, avg)], test_actor_id
            )

    def test_negative_assigned(
        self, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x = create_machine()
        with pytest.raises(InvalidQuantityError):
            allocation_service.replace_assignments(
                planned_item.id, [AssignmentSpec(x.id, -1, 1000)], test_actor_id
            )

    def test_duplicate_machine(
        self, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x = create_machine()
        with pytest.raises(DuplicateAssignmentError):
            allocation_service.replace_assignments(
                planned_item.id,
                [AssignmentSpec(x.id, 25000, 1000), AssignmentSpec(x.id, 25000, 1000)],
                test_actor_id,
            )

    def test_empty_list(self, planned_item, allocation_service, test_actor_id):
        with pytest.raises(ValidationError):
            allocation_service.replace_assignments(planned_item.id, [], test_actor_id)

    def test_unknown_machine(self, planned_item, allocation_service, test_actor_id):
        with pytest.raises(MachineNotFoundError):
            allocation_service.replace_assignments(
                planned_item.id, [AssignmentSpec(uuid4(), 100, 10)], test_actor_id
            )

    def test_inactive_machine(
        self, planned_item, create_machine, machine_service, allocation_service, test_actor_id
    ):
        x = create_machine()
        machine_service.deactivate(x.id, test_actor_id)
        with pytest.raises(InactiveReferenceError):
            allocation_service.replace_assignments(
                planned_item.id, [AssignmentSpec(x.id, 100, 10)], test_actor_id
            )

    def test_unknown_item(self, create_machine, allocation_service, test_actor_id):
        x = create_machine()
        with pytest.raises(ContractItemNotFoundError):
            allocation_service.replace_assignments(
                uuid4(), [AssignmentSpec(x.id, 100, 10)], test_actor_id
            )

    def test_replace_drops_unused_machine(
        self, two_machine_allocation, create_machine, allocation_service, test_actor_id
    ):
        item, x, y = two_machine_allocation
        z = create_machine()
        result = allocation_service.replace_assignments(
            item.id,
            [AssignmentSpec(x.id, 30000, 1000), AssignmentSpec(z.id, 20000, 2000)],
            test_actor_id,
        )
        rows = by_machine(result)
        assert set(rows) == {x.id, z.id}
        assert rows[z.id].estimated_days == 10
        assert result.total_estimated_days == 40

    def test_cannot_drop_machine_with_production(
        self, two_machine_allocation, production_service, allocation_service, test_actor_id
    ):
        item, x, y = two_machine_allocation
        production_service.record_entry(
            ProductionEntrySpec(
                contract_item_id=item.id,
                machine_id=y.id,
                production_date=date(2024, 1, 2),
                shift="day",
                stitches=500,
                operator_name="Asif",
            ),
            test_actor_id,
        )
        with pytest.raises(AssignmentInUseError) as exc_info:
            allocation_service.replace_assignments(
                item.id, [AssignmentSpec(x.id, 50000, 1000)], test_actor_id
            )
        assert exc_info.value.used_stitches == 500

    def test_reallocation_rederives_used(
        self, two_machine_allocation, production_service, allocation_service, test_actor_id
    ):
        item, x, y = two_machine_allocation
        production_service.record_entry(
            ProductionEntrySpec(
                contract_item_id=item.id,
                machine_id=x.id,
                production_date=date(2024, 1, 2),
                shift="day",
                stitches=10000,
                operator_name="Asif",
            ),
            test_actor_id,
        )
        result = allocation_service.replace_assignments(
            item.id,
            [AssignmentSpec(x.id, 25000, 1000), AssignmentSpec(y.id, 25000, 500)],
            test_actor_id,
        )
        rows = by_machine(result)
        assert rows[x.id].used_stitches == 10000
        assert rows[x.id].pending_stitches == 15000
        assert rows[y.id].estimated_days == 50


class TestAssign:
    def test_assign_and_update(
        self, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x = create_machine()
        allocation_service.assign(planned_item.id, x.id, 30000, 1000, 3, test_actor_id)
        result = allocation_service.assign(
            planned_item.id, x.id, "50,000", "2500", 5, test_actor_id
        )

        (row,) = result.assignments
        assert row.assigned_stitches == 50000
        assert row.estimated_days == 20
        assert row.repeats == 5
        assert result.warnings == ()

    def test_bad_rate(self, planned_item, create_machine, allocation_service, test_actor_id):
        x = create_machine()
        with pytest.raises(InvalidProductionRateError):
            allocation_service.assign(planned_item.id, x.id, 30000, 0, 0, test_actor_id)


class TestRemoveAssignment:
    def test_remove(self, two_machine_allocation, allocation_service, test_actor_id):
        item, x, y = two_machine_allocation
        result = allocation_service.remove_assignment(item.id, y.id, test_actor_id)
        assert [a.machine_id for a in result.assignments] == [x.id]
        assert has_warning(result.warnings, WarningCode.ALLOCATION_MISMATCH)

    def test_remove_missing(
        self, planned_item, create_machine, allocation_service, test_actor_id
    ):
        x = create_machine()
        with pytest.raises(MissingAssignmentError):
            allocation_service.remove_assignment(planned_item.id, x.id, test_actor_id)

    def test_removal_allowed_after_void(
        self, two_machine_allocation, production_service, allocation_service, test_actor_id
    ):
        item, x, y = two_machine_allocation
        recorded = production_service.record_entry(
            ProductionEntrySpec(
                contract_item_id=item.id,
                machine_id=y.id,
                production_date=date(2024, 1, 2),
                shift="night",
                stitches=800,
                operator_name="Asif",
            ),
            test_actor_id,
        )
        production_service.void_entry(recorded.entry.id, "wrong machine", test_actor_id)
        result = allocation_service.remove_assignment(item.id, y.id, test_actor_id)
        assert len(result.assignments) == 1


class TestTotalEstimatedDays:
    def test_sums_active_items(
        self,
        two_machine_allocation,
        create_item,
        create_machine,
        contract_service,
        allocation_service,
        test_actor_id,
    ):
        item, x, y = two_machine_allocation
        other = create_item(item.contract_id, stitch_per_repeat=1000, repeat_count=10)
        allocation_service.assign(other.id, x.id, 10000, 1000, 0, test_actor_id)

        assert allocation_service.total_estimated_days(item.contract_id) == 80

        contract_service.deactivate_item(other.id, test_actor_id)
        assert allocation_service.total_estimated_days(item.contract_id) == 70
