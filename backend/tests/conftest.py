"""
Pytest fixtures for backend tests.

Provides common test fixtures for database, client, and seeded fee schedule
reference data.
"""

import os

# Must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.models import GpciLocality, MpfsBenchmark, ZipToLocality


# Test database URL (SQLite in-memory)
TEST_DATABASE_URL = "sqlite:///:memory:"

# Create test engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Test session factory
TestSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
)

CF = 34.6062


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test.

    Yields:
        Session: Test database session.
    """
    # Create all tables
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with database override.

    Args:
        db: Test database session.

    Yields:
        TestClient: FastAPI test client.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def fee_data(db: Session) -> Session:
    """
    Seed a small fee schedule.

    99213 for 2025 and 2026 (national fee 83.05), 99214 base row only,
    58662 with a 090-day global period, LA and Manhattan localities and a
    crosswalk entry for 90210.

    Returns:
        Session: The seeded session.
    """
    for year in (2025, 2026):
        db.add(MpfsBenchmark(
            hcpcs="99213", modifier="", year=year, qp_status="nonQP",
            description="Office visit, established patient",
            work_rvu=1.3, nonfac_pe_rvu=1.0, fac_pe_rvu=0.5, mp_rvu=0.1,
            conversion_factor=CF, global_days="XXX",
        ))
    db.add(MpfsBenchmark(
        hcpcs="99214", modifier="", year=2026, qp_status="nonQP",
        description="Office visit, level 4",
        work_rvu=1.92, nonfac_pe_rvu=1.5, fac_pe_rvu=0.5, mp_rvu=0.13,
        conversion_factor=CF, global_days="XXX",
    ))
    db.add(MpfsBenchmark(
        hcpcs="58662", modifier="", year=2026, qp_status="nonQP",
        description="Laparoscopy, excise lesions",
        work_rvu=10.0, nonfac_pe_rvu=5.0, fac_pe_rvu=0.5, mp_rvu=1.0,
        conversion_factor=CF, global_days="090",
    ))
    # A QP-only row that nonQP lookups must not see
    db.add(MpfsBenchmark(
        hcpcs="99215", modifier="", year=2027, qp_status="QP",
        work_rvu=2.8, nonfac_pe_rvu=1.9, mp_rvu=0.2, conversion_factor=34.7,
    ))

    db.add(GpciLocality(
        locality_num="18", state_abbr="CA", locality_name="Los Angeles", zip_code="90001",
        work_gpci=1.1, pe_gpci=1.2, mp_gpci=0.6,
    ))
    db.add(GpciLocality(
        locality_num="01", state_abbr="NY", locality_name="Manhattan",
        work_gpci=1.05, pe_gpci=1.3, mp_gpci=1.6,
    ))
    db.add(ZipToLocality(zip5="90210", state_abbr="CA", locality_num="18"))
    db.commit()
    return db
