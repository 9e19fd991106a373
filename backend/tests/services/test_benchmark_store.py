"""
Tests for the database-backed fee schedule and locality stores.
"""

import threading

from sqlalchemy.orm import Session

from app.models import MpfsBenchmark
from app.services.benchmark_store import SqlFeeScheduleStore, SqlLocalityStore, build_stores


class TestSqlFeeScheduleStore:
    """Tests for SqlFeeScheduleStore."""

    def test_find_row(self, fee_data: Session):
        row = SqlFeeScheduleStore(fee_data).find_row("99213", "", 2025)

        assert row.code == "99213"
        assert row.year == 2025
        assert row.work_rvu == 1.3
        assert row.nonfacility_pe_rvu == 1.0
        assert row.status_flag == "nonQP"

    def test_lookup_is_case_insensitive(self, fee_data: Session):
        assert SqlFeeScheduleStore(fee_data).find_row(" 99213 ", None, 2026) is not None

    def test_modifier_must_match(self, fee_data: Session):
        store = SqlFeeScheduleStore(fee_data)

        assert store.find_row("99214", "25", 2026) is None
        assert store.find_row("99214", "", 2026) is not None

    def test_status_flag_filters(self, fee_data: Session):
        store = SqlFeeScheduleStore(fee_data)

        assert store.find_row("99215", "", 2027) is None
        assert store.find_row("99215", "", 2027, status_flag="QP").conversion_factor == 34.7

    def test_latest_year_per_status_flag(self, fee_data: Session):
        store = SqlFeeScheduleStore(fee_data)

        assert store.latest_year() == 2026
        assert store.latest_year("QP") == 2027

    def test_latest_year_empty_table(self, db: Session):
        assert SqlFeeScheduleStore(db).latest_year() is None

    def test_model_repr(self):
        row = MpfsBenchmark(hcpcs="71046", modifier="26", year=2026)
        assert repr(row) == "<MpfsBenchmark 71046-26 2026>"


class TestSqlLocalityStore:
    """Tests for SqlLocalityStore."""

    def test_find_by_zip(self, fee_data: Session):
        locality = SqlLocalityStore(fee_data).find_by_zip("90001")

        assert locality.locality_name == "Los Angeles"
        assert locality.work_factor == 1.1
        assert locality.practice_expense_factor == 1.2
        assert locality.malpractice_factor == 0.6

    def test_find_by_crosswalk(self, fee_data: Session):
        store = SqlLocalityStore(fee_data)

        assert store.find_by_zip("90210") is None
        assert store.find_by_crosswalk("90210").locality_id == "18"
        assert store.find_by_crosswalk("10001") is None

    def test_find_by_state(self, fee_data: Session):
        store = SqlLocalityStore(fee_data)

        assert store.find_by_state("ny").locality_name == "Manhattan"
        assert store.find_by_state("TX") is None


class TestBuildStores:

    def test_stores_share_one_lock(self, db: Session):
        fee_store, locality_store = build_stores(db)

        assert fee_store.db is db
        assert locality_store.db is db
        assert fee_store._lock is locality_store._lock

    def test_concurrent_lookups(self, fee_data: Session):
        fee_store, _ = build_stores(fee_data)
        results = []

        def lookup():
            results.append(fee_store.find_row("99213", "", 2026))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r is not None and r.year == 2026 for r in results)
