"""
Shared fixtures for benchmark engine tests.

Fee schedule and locality data are small synthetic sets with values chosen
so expected fees can be worked out by hand.
"""

import pytest

from ml.benchmark.models import FeeScheduleRow, LocalityAdjustment
from ml.benchmark.session import BenchmarkSession
from ml.benchmark.stores import InMemoryFeeScheduleStore, InMemoryLocalityStore

CF = 34.6062


def office_visit_row(year: int = 2026, **overrides) -> FeeScheduleRow:
    """99213 with RVUs summing to 2.4 (national fee 83.05)."""
    values = dict(
        code="99213",
        modifier="",
        year=year,
        description="Office visit, established patient",
        work_rvu=1.3,
        nonfacility_pe_rvu=1.0,
        facility_pe_rvu=0.5,
        malpractice_rvu=0.1,
        conversion_factor=CF,
        global_days="XXX",
    )
    values.update(overrides)
    return FeeScheduleRow(**values)


@pytest.fixture
def fee_rows() -> list[FeeScheduleRow]:
    return [
        office_visit_row(2025),
        office_visit_row(2026),
        # Base code only, no modifier-specific row
        office_visit_row(2026, code="99214", description="Office visit, level 4",
                         work_rvu=1.92, nonfacility_pe_rvu=1.5, malpractice_rvu=0.13),
        # Modifier-specific row alongside its base code
        office_visit_row(2026, code="71046", description="Chest x-ray, 2 views"),
        office_visit_row(2026, code="71046", modifier="26", description="Chest x-ray, professional",
                         work_rvu=0.22, nonfacility_pe_rvu=0.09, malpractice_rvu=0.01),
        # Global surgery code
        office_visit_row(2026, code="58662", description="Laparoscopy, excise lesions",
                         work_rvu=10.0, nonfacility_pe_rvu=5.0, malpractice_rvu=1.0,
                         global_days="090"),
        # Published fee, no RVUs
        FeeScheduleRow(code="80053", modifier="", year=2026, description="Comprehensive metabolic panel",
                       nonfacility_fee=100.0, facility_fee=100.0, global_days="XXX"),
        # Nothing usable to price with
        FeeScheduleRow(code="0001U", modifier="", year=2026, description="Lab test, no pricing"),
    ]


@pytest.fixture
def fee_store(fee_rows) -> InMemoryFeeScheduleStore:
    return InMemoryFeeScheduleStore(fee_rows)


@pytest.fixture
def los_angeles() -> LocalityAdjustment:
    return LocalityAdjustment(
        locality_id="18",
        state_code="CA",
        locality_name="Los Angeles",
        zip_code="90001",
        work_factor=1.1,
        practice_expense_factor=1.2,
        malpractice_factor=0.6,
    )


@pytest.fixture
def manhattan() -> LocalityAdjustment:
    return LocalityAdjustment(
        locality_id="01",
        state_code="NY",
        locality_name="Manhattan",
        work_factor=1.05,
        practice_expense_factor=1.3,
        malpractice_factor=1.6,
    )


@pytest.fixture
def locality_store(los_angeles, manhattan) -> InMemoryLocalityStore:
    return InMemoryLocalityStore(
        [los_angeles, manhattan],
        crosswalk={"90210": ("CA", "18")},
    )


@pytest.fixture
def session(fee_store, locality_store) -> BenchmarkSession:
    return BenchmarkSession(fee_store, locality_store)


@pytest.fixture
def make_row():
    """Factory for 99213-shaped rows with overrides."""
    return office_visit_row
