"""
Unit tests for the per-calculation session and year resolution.
"""

import threading
from datetime import date
from unittest.mock import MagicMock

import pytest

from ml.benchmark.models import LocalityConfidence
from ml.benchmark.session import BenchmarkSession, YearResolver, extract_service_year
from ml.benchmark.stores import InMemoryFeeScheduleStore, InMemoryLocalityStore


class TestExtractServiceYear:

    @pytest.mark.parametrize("value,expected", [
        ("2024-03-15", 2024),
        ("03/15/2024", 2024),
        ("3/5/21", 2021),
        (date(2023, 1, 1), 2023),
        ("Service on March 3, 2022", 2022),
    ])
    def test_parses_common_formats(self, value, expected):
        assert extract_service_year(value) == expected

    @pytest.mark.parametrize("value", [None, "", "garbage", "1850-01-01"])
    def test_unusable_dates(self, value):
        assert extract_service_year(value) is None


class TestBenchmarkSession:

    def test_latest_year_computed_once(self):
        fee_store = MagicMock()
        fee_store.latest_year.return_value = 2026
        session = BenchmarkSession(fee_store, MagicMock())

        assert session.latest_year() == 2026
        assert session.latest_year() == 2026
        fee_store.latest_year.assert_called_once_with("nonQP")

    def test_latest_year_shared_across_threads(self):
        fee_store = MagicMock()
        fee_store.latest_year.return_value = 2026
        session = BenchmarkSession(fee_store, MagicMock())

        threads = [threading.Thread(target=session.latest_year) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert fee_store.latest_year.call_count == 1

    def test_empty_store_uses_default_year(self):
        session = BenchmarkSession(InMemoryFeeScheduleStore(), InMemoryLocalityStore(), default_year=2026)

        assert session.latest_year() == 2026
        assert any("defaulting to 2026" in note for note in session.notes)

    def test_failing_store_uses_default_year(self):
        fee_store = MagicMock()
        fee_store.latest_year.side_effect = ConnectionError("db down")
        session = BenchmarkSession(fee_store, MagicMock(), default_year=2025)

        assert session.latest_year() == 2025

    def test_reset_clears_memoized_values(self):
        fee_store = MagicMock()
        fee_store.latest_year.side_effect = [2025, 2026]
        session = BenchmarkSession(fee_store, MagicMock())

        assert session.latest_year() == 2025
        session.reset()
        assert session.latest_year() == 2026

    def test_sessions_do_not_share_latest_year(self, make_row):
        old = BenchmarkSession(InMemoryFeeScheduleStore([make_row(2024)]), InMemoryLocalityStore())
        new = BenchmarkSession(InMemoryFeeScheduleStore([make_row(2026)]), InMemoryLocalityStore())

        assert old.latest_year() == 2024
        assert new.latest_year() == 2026

    def test_locality_memoized(self, fee_store):
        locality_store = MagicMock()
        locality_store.find_by_state.return_value = None
        session = BenchmarkSession(fee_store, locality_store)

        session.locality(state="CA")
        session.locality(state="CA")

        locality_store.find_by_state.assert_called_once()

    def test_failing_locality_store_degrades_to_national(self, fee_store):
        locality_store = MagicMock()
        locality_store.find_by_zip.side_effect = TimeoutError("slow")
        session = BenchmarkSession(fee_store, locality_store)

        result = session.locality(zip_code="90001")

        assert result.confidence == LocalityConfidence.NATIONAL_ESTIMATE
        assert result.adjustment is None

    def test_requested_year_defaults_to_latest(self, session):
        assert session.requested_year(None) == 2026
        assert session.requested_year("2025-06-01") == 2025


class TestYearResolver:

    def test_exact_year_found(self, session):
        resolution = YearResolver(session).resolve(2025, lambda year: {2025: "row"}.get(year))

        assert resolution.result == "row"
        assert resolution.year_used == 2025
        assert resolution.used_fallback is False

    def test_falls_back_to_latest(self, session):
        resolution = YearResolver(session).resolve(2019, lambda year: {2026: "row"}.get(year))

        assert resolution.result == "row"
        assert resolution.year_used == 2026
        assert resolution.used_fallback is True
        assert resolution.fallback_reason == (
            "Service year 2019 not in fee schedule; using 2026 (latest available)"
        )

    def test_latest_year_missing_too(self, session):
        calls = []
        resolution = YearResolver(session).resolve(2019, lambda year: calls.append(year))

        assert resolution.result is None
        assert resolution.used_fallback is True
        assert calls == [2019, 2026]

    def test_no_retry_when_requested_is_latest(self, session):
        calls = []
        resolution = YearResolver(session).resolve(2026, lambda year: calls.append(year))

        assert resolution.result is None
        assert resolution.used_fallback is False
        assert calls == [2026]
