"""
Tests for the machine allocation arithmetic.

Covers:
- Estimated days (ceiling division) and the avg_per_day > 0 rule
- Pending stitches and the entry ceiling
- Allocation vs planned total checks
- Per-assignment status classification
"""

from datetime import date

import pytest

from stitch_engines.workload import (
    AllocationLine,
    MachineStatus,
    actual_days,
    check_allocation,
    entry_ceiling,
    estimated_days,
    machine_pending,
    machine_status,
)
from stitch_kernel.domain.results import WarningCode
from stitch_kernel.exceptions import InvalidProductionRateError


class TestEstimatedDays:
    @pytest.mark.parametrize(
        "assigned,avg,days",
        [
            (30000, 1000, 30),
            (20000, 500, 40),
            (30001, 1000, 31),
            (1, 1000, 1),
            (0, 1000, 0),
        ],
    )
    def test_ceiling_division(self, assigned, avg, days):
        assert estimated_days(assigned, avg) == days

    @pytest.mark.parametrize("avg", [0, -5])
    def test_non_positive_rate_rejected(self, avg):
        with pytest.raises(InvalidProductionRateError) as exc_info:
            estimated_days(1000, avg, machine_id="m-1")
        assert exc_info.value.code == "INVALID_PRODUCTION_RATE"


class TestPendingAndCeiling:
    def test_pending_is_assigned_minus_used(self):
        assert machine_pending(30000, 10000) == 20000

    def test_pending_never_negative(self):
        assert machine_pending(30000, 35000) == 0

    def test_ceiling_is_smaller_of_item_and_machine(self):
        assert entry_ceiling(item_remaining=40000, machine_pending_stitches=20000) == 20000
        assert entry_ceiling(item_remaining=5000, machine_pending_stitches=20000) == 5000

    def test_ceiling_never_negative(self):
        assert entry_ceiling(-100, 20000) == 0


class TestCheckAllocation:
    def test_exact_allocation_has_no_warning(self):
        lines = (
            AllocationLine("x", 30000, 1000),
            AllocationLine("y", 20000, 500),
        )
        assert check_allocation(50000, lines) == ()

    def test_under_allocation_warns(self):
        lines = (AllocationLine("x", 30000, 1000),)
        (warning,) = check_allocation(50000, lines)

        assert warning.code == WarningCode.ALLOCATION_MISMATCH
        assert warning.details == {
            "assigned_total": 30000,
            "planned_total": 50000,
            "difference": -20000,
        }

    def test_over_allocation_warns(self):
        lines = (AllocationLine("x", 60000, 1000),)
        (warning,) = check_allocation(50000, lines)
        assert warning.details["difference"] == 10000

    def test_bad_rate_anywhere_rejects(self):
        lines = (
            AllocationLine("x", 30000, 1000),
            AllocationLine("y", 20000, 0),
        )
        with pytest.raises(InvalidProductionRateError):
            check_allocation(50000, lines)


class TestActualDays:
    def test_inclusive_span(self):
        assert actual_days(date(2024, 1, 1), date(2024, 1, 10)) == 10

    def test_single_day(self):
        assert actual_days(date(2024, 1, 1), date(2024, 1, 1)) == 1

    def test_no_production(self):
        assert actual_days(None, None) == 0


class TestMachineStatus:
    def test_open_before_production(self):
        assert machine_status(30000, 0, 30, 0) == MachineStatus.OPEN

    def test_open_while_in_progress(self):
        assert machine_status(30000, 10000, 30, 10) == MachineStatus.OPEN

    def test_completed_on_time(self):
        assert machine_status(30000, 30000, 30, 25) == MachineStatus.COMPLETED

    def test_completed_late_is_delayed(self):
        assert machine_status(30000, 30000, 30, 31) == MachineStatus.DELAYED

    def test_overproduced(self):
        assert machine_status(30000, 30001, 30, 5) == MachineStatus.OVERPRODUCED

    def test_zero_assignment_is_open(self):
        assert machine_status(0, 0, 0, 0) == MachineStatus.OPEN
