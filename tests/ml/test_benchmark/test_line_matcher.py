"""
Unit tests for line matching and fairness classification.
"""

from unittest.mock import MagicMock

import pytest

from ml.benchmark.line_matcher import (
    BUNDLED_NOTE,
    MODIFIER_FALLBACK_NOTE,
    check_bundling,
    determine_status,
    find_row_with_modifier,
    match_line_item,
)
from ml.benchmark.models import FeeQuery, FeeScheduleRow, LineItem, LineStatus, MatchStatus
from ml.benchmark.session import BenchmarkSession


class TestDetermineStatus:

    @pytest.mark.parametrize("percent,expected", [
        (50, LineStatus.FAIR),
        (200, LineStatus.FAIR),
        (201, LineStatus.HIGH),
        (300, LineStatus.HIGH),
        (301, LineStatus.VERY_HIGH),
    ])
    def test_thresholds(self, percent, expected):
        assert determine_status(percent) == expected

    @pytest.mark.parametrize("billed,expected", [
        (200.0, LineStatus.FAIR),
        (201.0, LineStatus.HIGH),
        (300.0, LineStatus.HIGH),
        (301.0, LineStatus.VERY_HIGH),
    ])
    def test_boundaries_against_a_100_dollar_reference(self, session, billed, expected):
        match = match_line_item(LineItem(code="80053", billed_amount=billed), session)
        assert match.result.status == expected


class TestCheckBundling:

    @pytest.mark.parametrize("days,expected", [("090", True), ("010", True), ("000", False), ("XXX", False), (None, False)])
    def test_global_days(self, days, expected):
        row = FeeScheduleRow(code="58662", modifier="", year=2026, global_days=days)
        assert check_bundling(row) is expected


class TestFindRowWithModifier:

    def test_exact_modifier_row(self, session):
        queries = []
        match = find_row_with_modifier(session, "71046", "26", 2026, queries)

        assert match.row.modifier == "26"
        assert match.modifier_fallback is False
        assert queries == [FeeQuery("71046", "26", 2026, True)]

    def test_base_code_fallback(self, session):
        queries = []
        match = find_row_with_modifier(session, "99214", "25", 2026, queries)

        assert match.row.modifier == ""
        assert match.modifier_fallback is True
        assert queries == [
            FeeQuery("99214", "25", 2026, False),
            FeeQuery("99214", "", 2026, True),
        ]

    def test_no_modifier_queries_base_only(self, session):
        queries = []
        assert find_row_with_modifier(session, "12345", "", 2026, queries) is None
        assert queries == [FeeQuery("12345", "", 2026, False)]


class TestLineItem:
    """Billed amounts are validated before a line reaches the matcher."""

    @pytest.mark.parametrize("amount", [-1.0, float("inf"), float("nan")])
    def test_rejects_unusable_amounts(self, amount):
        with pytest.raises(ValueError):
            LineItem(code="99213", billed_amount=amount)

    def test_units_below_one_count_as_one(self):
        assert LineItem(code="99213", billed_amount=10.0, units=0).units == 1


class TestMatchLineItem:
    """Tests for match_line_item."""

    def test_office_visit_billed_high(self, session):
        match = match_line_item(LineItem(code="99213", billed_amount=300.0), session)
        result = match.result

        assert result.match_status == MatchStatus.MATCHED
        assert result.reference_per_unit == 83.05
        assert result.reference_total == 83.05
        assert result.multiple == 3.61
        assert result.status == LineStatus.VERY_HIGH
        assert result.year_used == 2026
        assert result.notes[-1] == "Significantly above standard rates - review recommended"

    def test_units_multiply_reference(self, session):
        result = match_line_item(LineItem(code="99213", billed_amount=300.0, units=3), session).result

        assert result.reference_total == 249.15
        assert result.multiple == 1.2
        assert result.status == LineStatus.FAIR

    def test_locality_adjusted(self, session, los_angeles):
        result = match_line_item(LineItem(code="99213", billed_amount=100.0), session, los_angeles).result
        assert result.reference_per_unit == 93.09

    def test_modifier_fallback(self, session):
        result = match_line_item(LineItem(code="99214-25", billed_amount=200.0), session).result

        assert result.code == "99214"
        assert result.modifier == "25"
        assert result.modifier_fallback_used is True
        assert result.reference_per_unit == 122.85
        assert MODIFIER_FALLBACK_NOTE in result.notes

    def test_modifier_from_item_field(self, session):
        item = LineItem(code="71046", modifier="26", billed_amount=50.0)
        result = match_line_item(item, session).result

        assert result.modifier_fallback_used is False
        assert result.modifier == "26"
        assert result.reference_per_unit == 11.07

    def test_bundled_code(self, session):
        result = match_line_item(LineItem(code="CPT 58662", billed_amount=1000.0), session).result

        assert result.is_bundled is True
        assert result.reference_per_unit == 553.7
        assert BUNDLED_NOTE in result.notes

    def test_service_year_used_when_available(self, session):
        match = match_line_item(LineItem(code="99213", billed_amount=100.0, service_date="2025-01-10"), session)

        assert match.result.year_used == 2025
        assert match.used_year_fallback is False
        assert match.requested_year == 2025

    def test_year_fallback(self, session):
        match = match_line_item(LineItem(code="99213", billed_amount=100.0, service_date="2019-05-01"), session)

        assert match.result.match_status == MatchStatus.MATCHED
        assert match.result.year_used == 2026
        assert match.used_year_fallback is True
        assert match.requested_year == 2019
        assert match.result.notes[0] == "Using 2026 Medicare reference (latest available)"

    def test_invalid_code(self, session):
        match = match_line_item(LineItem(code="ZZ##@", billed_amount=100.0), session)

        assert match.valid_code is False
        assert match.result.match_status == MatchStatus.MISSING
        assert match.result.status == LineStatus.UNKNOWN
        assert match.result.notes == ('Invalid or unrecognized code format: "ZZ##@"',)
        assert match.queries == ()

    def test_code_not_in_fee_schedule(self, session):
        match = match_line_item(LineItem(code="12345", billed_amount=100.0), session)

        assert match.valid_code is True
        assert match.result.match_status == MatchStatus.MISSING
        assert match.result.reference_total is None
        assert match.result.notes == ("No Medicare reference available for this service",)

    def test_row_without_pricing(self, session):
        result = match_line_item(LineItem(code="0001U", billed_amount=100.0), session).result

        assert result.match_status == MatchStatus.MISSING
        assert result.year_used == 2026
        assert result.description == "Lab test, no pricing"
        assert result.notes == ("No fee data available for this code",)

    def test_failing_store_degrades_line(self, locality_store):
        fee_store = MagicMock()
        fee_store.latest_year.return_value = 2026
        fee_store.find_row.side_effect = ConnectionError("db down")
        session = BenchmarkSession(fee_store, locality_store)

        match = match_line_item(LineItem(code="99213", billed_amount=100.0), session)

        assert match.result.match_status == MatchStatus.MISSING
        assert match.result.notes == ("Fee schedule lookup failed; no Medicare reference available",)

    def test_raw_code_preferred_over_code(self, session):
        item = LineItem(code="", raw_code="CPT 99213", billed_amount=83.05)
        match = match_line_item(item, session)

        assert match.raw_code == "CPT 99213"
        assert match.result.code == "99213"
        assert match.result.multiple == 1.0
