"""
Pytest fixtures for the stitch ledger test suite.

Provides:
- An in-memory SQLite session per test (schema created fresh each time)
- Service factories bound to that session and a deterministic clock
- Small builders for contracts, items, machines, assignments and vendors
- Structured log capture
"""

import json
import logging
from datetime import date
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

import stitch_kernel.models  # noqa: F401  (registers tables)
from stitch_config import get_active_config
from stitch_kernel.db.base import Base
from stitch_kernel.domain.clock import DeterministicClock
from stitch_kernel.domain.dtos import AssignmentSpec
from stitch_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stitch_kernel.services import (
    AllocationService,
    ClippingService,
    ContractService,
    MachineService,
    ProductionService,
    VendorService,
)

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stitch_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, production_service):
            production_service.record_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "production_entry_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stitch_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with the full schema."""
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    sess = Session(bind=engine)
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture(scope="session")
def engine_config():
    return get_active_config()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def contract_service(session, deterministic_clock, engine_config):
    return ContractService(session, deterministic_clock, engine_config)


@pytest.fixture
def machine_service(session, deterministic_clock):
    return MachineService(session, deterministic_clock)


@pytest.fixture
def allocation_service(session, deterministic_clock):
    return AllocationService(session, deterministic_clock)


@pytest.fixture
def production_service(session, deterministic_clock):
    return ProductionService(session, deterministic_clock)


@pytest.fixture
def clipping_service(session, deterministic_clock):
    return ClippingService(session, deterministic_clock)


@pytest.fixture
def vendor_service(session, deterministic_clock):
    return VendorService(session, deterministic_clock)


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def create_contract(contract_service, test_actor_id):
    """Factory for contract headers with unique numbers."""
    counter = {"n": 0}

    def _create(**kwargs):
        counter["n"] += 1
        kwargs.setdefault("contract_number", f"C-{counter['n']:04d}")
        kwargs.setdefault("party_name", "Gul Textiles")
        return contract_service.create_contract(actor_id=test_actor_id, **kwargs)

    return _create


@pytest.fixture
def create_item(contract_service, test_actor_id):
    """Factory for contract items.  Returns the stored ContractItemInfo."""

    def _create(contract_id, **values):
        values.setdefault("design_no", "D-101")
        return contract_service.add_item(contract_id, test_actor_id, values).item

    return _create


@pytest.fixture
def create_machine(machine_service, test_actor_id):
    counter = {"n": 0}

    def _create(**kwargs):
        counter["n"] += 1
        kwargs.setdefault("machine_number", counter["n"])
        return machine_service.register(actor_id=test_actor_id, **kwargs)

    return _create


@pytest.fixture
def create_vendor(vendor_service, test_actor_id):
    counter = {"n": 0}

    def _create(**kwargs):
        counter["n"] += 1
        kwargs.setdefault("vendor_name", f"Vendor {counter['n']}")
        kwargs.setdefault("contact_number", f"0300-{counter['n']:07d}")
        return vendor_service.create(actor_id=test_actor_id, **kwargs)

    return _create


@pytest.fixture
def planned_item(create_contract, create_item):
    """An item with 50,000 planned stitches (10,000 per repeat x 5 repeats)."""
    contract = create_contract(start_date=date(2024, 1, 1))
    return create_item(contract.id, stitch_per_repeat=10000, repeat_count=5)


@pytest.fixture
def two_machine_allocation(planned_item, create_machine, allocation_service, test_actor_id):
    """Machine X gets 30,000 @ 1,000/day and Y gets 20,000 @ 500/day."""
    x = create_machine()
    y = create_machine()
    allocation_service.replace_assignments(
        planned_item.id,
        [
            AssignmentSpec(x.id, 30000, 1000),
            AssignmentSpec(y.id, 20000, 500),
        ],
        test_actor_id,
    )
    return planned_item, x, y
