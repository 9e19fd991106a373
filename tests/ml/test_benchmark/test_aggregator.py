"""
Unit tests for bill-level aggregation and presentation helpers.
"""

import pytest

from ml.benchmark.aggregator import (
    ASSESSMENT_MESSAGES,
    aggregate,
    benchmark_statement,
    comparison_sentence,
    compute_totals,
    confidence_qualifier,
    determine_benchmark_status,
    year_fallback_disclosure,
)
from ml.benchmark.line_matcher import match_line_item
from ml.benchmark.models import AssessmentStatus, BenchmarkStatus, LineItem


@pytest.fixture
def run(session):
    """Match line items on the shared session and aggregate them."""

    def _run(*items, adjustment=None, state=None, zip_code=None):
        locality = session.locality(zip_code=zip_code, state=state)
        matches = [match_line_item(item, session, adjustment or locality.adjustment) for item in items]
        return aggregate(
            matches, locality, session.latest_year(), session.notes, state=state, zip_code=zip_code
        )

    return _run


class TestComputeTotals:

    def test_only_matched_lines_are_summed(self, session):
        results = [
            match_line_item(LineItem(code="99213", billed_amount=300.0), session).result,
            match_line_item(LineItem(code="12345", billed_amount=50.0), session).result,
        ]
        totals = compute_totals(results)

        assert totals.billed_total == 300.0
        assert totals.reference_total == 83.05
        assert totals.multiple == 3.61
        assert totals.difference == 216.95
        assert totals.unmatched_billed_total == 50.0

    def test_no_matched_lines(self, session):
        results = [match_line_item(LineItem(code="12345", billed_amount=50.0), session).result]
        totals = compute_totals(results)

        assert totals.billed_total == 0.0
        assert totals.reference_total is None
        assert totals.multiple is None
        assert totals.unmatched_billed_total == 50.0


class TestDetermineBenchmarkStatus:

    def _matches(self, session, *codes):
        return [match_line_item(LineItem(code=code, billed_amount=100.0), session) for code in codes]

    def test_empty(self):
        assert determine_benchmark_status([]) == BenchmarkStatus.NO_CODES

    def test_only_invalid_codes(self, session):
        assert determine_benchmark_status(self._matches(session, "ZZ##@", "N/A")) == BenchmarkStatus.NO_CODES

    def test_valid_codes_none_matched(self, session):
        assert determine_benchmark_status(self._matches(session, "12345", "ZZ##@")) == BenchmarkStatus.NO_MATCHES

    def test_partial(self, session):
        assert determine_benchmark_status(self._matches(session, "99213", "ZZ##@")) == BenchmarkStatus.PARTIAL

    def test_ok(self, session):
        assert determine_benchmark_status(self._matches(session, "99213", "80053")) == BenchmarkStatus.OK


class TestAggregate:

    def test_mixed_assessment(self, run):
        output = run(
            LineItem(code="80053", billed_amount=150.0),
            LineItem(code="99213", billed_amount=300.0),
        )

        assert output.assessment.status == AssessmentStatus.MIXED
        assert output.assessment.message == ASSESSMENT_MESSAGES[AssessmentStatus.MIXED]

    def test_single_fair_line(self, run):
        output = run(LineItem(code="99213", billed_amount=100.0))

        assert output.status == BenchmarkStatus.OK
        assert output.assessment.status == AssessmentStatus.FAIR

    def test_zero_billed_line_is_fair(self, run):
        output = run(LineItem(code="99213", billed_amount=0.0))

        assert output.totals.multiple == 0.0
        assert output.totals.reference_total == 83.05
        assert output.assessment.status == AssessmentStatus.FAIR

    def test_unknown_without_matches(self, run):
        output = run(LineItem(code="12345", billed_amount=100.0))
        assert output.assessment.status == AssessmentStatus.UNKNOWN

    def test_metadata(self, run):
        output = run(
            LineItem(code="99213", billed_amount=100.0, service_date="2025-02-01"),
            LineItem(code="80053", billed_amount=100.0, service_date="2026-02-01"),
            LineItem(code="99213", billed_amount=100.0, service_date="2025-03-01"),
            state="ca",
        )
        metadata = output.metadata

        assert metadata.requested_years == (2025, 2026)
        assert metadata.year_used == 2025
        assert metadata.used_year_fallback is False
        assert metadata.state == "CA"
        assert metadata.locality_name == "Los Angeles"
        assert "Using CA locality factors" in metadata.notes

    def test_year_fallback_metadata(self, run):
        output = run(LineItem(code="99213", billed_amount=100.0, service_date="2019-06-01"))
        metadata = output.metadata

        assert metadata.used_year_fallback is True
        assert metadata.year_used == 2026
        assert metadata.fallback_reason == "Service year 2019 not in fee schedule; using 2026 (latest available)"
        assert metadata.fallback_reason in metadata.notes

    def test_debug_trace(self, run):
        output = run(
            LineItem(code="99213", billed_amount=100.0),
            LineItem(code="12345", billed_amount=100.0),
            LineItem(code="ZZ##@", billed_amount=100.0),
        )
        trace = output.debug_trace

        assert trace.raw_codes == ("99213", "12345", "ZZ##@")
        assert trace.codes_matched == ("99213",)
        assert trace.codes_missing == ("12345", "ZZ##@")
        assert trace.latest_year == 2026
        assert len(trace.queries_attempted) == 2


class TestPresentation:

    def test_benchmark_statement(self, run):
        output = run(LineItem(code="99213", billed_amount=300.0))
        assert benchmark_statement(output) == (
            "Medicare's reference price for these services is approximately $83."
        )

    def test_benchmark_statement_with_year_fallback(self, run):
        output = run(LineItem(code="99213", billed_amount=300.0, service_date="2019-01-01"))
        assert benchmark_statement(output).endswith("(using 2026 rates, the latest available).")

    def test_benchmark_statement_without_reference(self, run):
        output = run(LineItem(code="12345", billed_amount=300.0))
        assert "not available" in benchmark_statement(output)

    def test_comparison_sentence(self, run):
        output = run(LineItem(code="99213", billed_amount=1300.0))
        assert comparison_sentence(output) == (
            "Your bill of $1,300 is about 15.65× higher than this reference price."
        )

    def test_comparison_sentence_below_reference(self, run):
        assert comparison_sentence(run(LineItem(code="99213", billed_amount=41.53))) == (
            "Your bill of $42 is about 0.5× of this reference price (about 50% lower)."
        )

    def test_comparison_sentence_for_zero_bill(self, run):
        assert comparison_sentence(run(LineItem(code="99213", billed_amount=0.0))) == (
            "Your bill of $0 is about 0× of this reference price (about 100% lower)."
        )

    def test_comparison_sentence_without_reference(self, run):
        assert comparison_sentence(run(LineItem(code="12345", billed_amount=300.0))) is None

    def test_confidence_qualifier(self, run):
        assert confidence_qualifier(run(LineItem(code="99213", billed_amount=100.0), state="NY")) == (
            "Adjusted for your region (Manhattan)"
        )
        assert confidence_qualifier(run(LineItem(code="99213", billed_amount=100.0))) == (
            "National estimate (exact locality unknown)"
        )

    def test_year_fallback_disclosure(self, run):
        output = run(LineItem(code="99213", billed_amount=100.0, service_date="2019-01-01"))
        assert year_fallback_disclosure(output) == (
            "Using 2026 Medicare reference pricing (latest available) to provide a comparison. "
            "This is not the historical 2019 Medicare rate."
        )

    def test_no_disclosure_without_fallback(self, run):
        assert year_fallback_disclosure(run(LineItem(code="99213", billed_amount=100.0))) is None
