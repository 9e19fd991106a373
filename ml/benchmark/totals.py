"""
Totals reconciliation.

A bill usually shows several "total" figures (charges, allowed amount,
patient balance, insurance paid) and the extraction step reports them in
many different places. This module:

1. Pulls candidate totals from each extraction source independently.
2. Ranks them by confidence, then amount, and drops near-duplicates.
3. Selects one comparison total: allowed -> charges -> patient responsibility.
4. Checks it against the sum of the line-item charges.
"""

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from ml.benchmark.bill_analysis import (
    extract_charges,
    find_dollar_amounts,
    get_field,
    get_list,
    get_mapping,
    parse_currency,
    probe_amount,
)
from ml.benchmark.document_classifier import classification_from_hint, classify_document
from ml.benchmark.models import (
    ComparisonTotal,
    Confidence,
    DocumentClassification,
    ReconciliationResult,
    ReconciliationStatus,
    TotalCandidate,
    TotalType,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.03
DUPLICATE_WINDOW = 1.0
ACTION_STEP_MIN_AMOUNT = 100.0

CONFIDENCE_RANK = {Confidence.HIGH: 0, Confidence.MEDIUM: 1, Confidence.LOW: 2}

CHARGE_TOTAL_FIELDS = (
    "totalCharges", "total_charges", "totalBilled", "total_billed",
    "grandTotal", "grand_total", "statementTotal", "statement_total",
)

BALANCE_FIELDS = (
    "amountDue", "amount_due", "balanceDue", "balance_due",
    "patientBalance", "patient_balance", "youOwe", "you_owe",
)

SUMMARY_EVIDENCE = "Extracted from document summary"
EOB_EVIDENCE = "From Explanation of Benefits"

ExtractionSource = Callable[[Any], list[TotalCandidate]]


# =============================================================================
# Extraction sources
# =============================================================================

def from_summary(analysis: Any) -> list[TotalCandidate]:
    """At-a-glance summary: total billed and amount you may owe."""
    summary = get_mapping(analysis, "atAGlance", "at_a_glance")
    candidates = []

    billed = probe_amount(get_field(summary, "totalBilled", "total_billed"))
    if billed:
        candidates.append(TotalCandidate(
            TotalType.CHARGES, billed.value, "Total Billed (at a glance)",
            Confidence.HIGH, SUMMARY_EVIDENCE, "summary",
        ))

    owed = probe_amount(get_field(summary, "amountYouMayOwe", "amount_you_may_owe"))
    if owed:
        candidates.append(TotalCandidate(
            TotalType.PATIENT_RESPONSIBILITY, owed.value, "Amount You May Owe",
            Confidence.HIGH, SUMMARY_EVIDENCE, "summary",
        ))
    return candidates


def from_line_item_sum(analysis: Any) -> list[TotalCandidate]:
    """Sum of the individual charge rows; weak when it rests on one row."""
    amounts = [c.charge_amount for c in extract_charges(analysis) if c.charge_amount]
    total = sum(amounts)
    if total <= 0:
        return []
    confidence = Confidence.MEDIUM if len(amounts) >= 2 else Confidence.LOW
    return [TotalCandidate(
        TotalType.CHARGES, round(total, 2), "Sum of line items", confidence,
        f"Calculated from {len(amounts)} line items", "line_item_sum",
    )]


_EXTRACTED_TOTAL_FIELDS = (
    # (key(s), type, default label, default confidence)
    (("totalCharges", "total_charges"), TotalType.CHARGES, "Total Charges (extracted)", Confidence.HIGH),
    (("patientResponsibility", "patient_responsibility"), TotalType.PATIENT_RESPONSIBILITY,
     "Patient Responsibility (extracted)", Confidence.HIGH),
    (("patientBalance", "patient_balance"), TotalType.PATIENT_RESPONSIBILITY,
     "Patient Balance (extracted)", Confidence.HIGH),
    (("amountDue", "amount_due"), TotalType.PATIENT_RESPONSIBILITY, "Amount Due (extracted)", Confidence.HIGH),
    (("insurancePaid", "insurance_paid"), TotalType.INSURANCE_PAID, "Insurance Paid (extracted)", Confidence.MEDIUM),
)


def from_extracted_totals(analysis: Any) -> list[TotalCandidate]:
    """Totals the extraction step reported explicitly."""
    extracted = get_mapping(analysis, "extractedTotals", "extracted_totals")
    if not extracted:
        return []

    source_note = get_field(extracted, "totalsSource", "totals_source")
    default_evidence = source_note if isinstance(source_note, str) else "From extractedTotals"

    candidates = []
    for keys, total_type, label, confidence in _EXTRACTED_TOTAL_FIELDS:
        probed = probe_amount(get_field(extracted, *keys))
        if probed is None:
            continue
        candidates.append(TotalCandidate(
            total_type,
            probed.value,
            probed.label or label,
            probed.confidence or confidence,
            probed.evidence or default_evidence,
            "extracted_totals",
        ))
    return candidates


def from_direct_fields(analysis: Any) -> list[TotalCandidate]:
    """Top-level total and balance fields."""
    candidates = []
    for name, total_type in [(f, TotalType.CHARGES) for f in CHARGE_TOTAL_FIELDS] + [
        (f, TotalType.PATIENT_RESPONSIBILITY) for f in BALANCE_FIELDS
    ]:
        probed = probe_amount(get_field(analysis, name))
        if probed is None:
            continue
        candidates.append(TotalCandidate(
            total_type, probed.value, f"From {name}", Confidence.HIGH,
            f"Direct field: {name}", "direct_fields",
        ))
    return candidates


def from_eob(analysis: Any) -> list[TotalCandidate]:
    """Explanation of Benefits amounts."""
    eob = get_mapping(analysis, "eobData", "eob_data")
    fields = (
        (("billedAmount", "billed_amount"), TotalType.CHARGES, "EOB Billed Amount"),
        (("allowedAmount", "allowed_amount"), TotalType.ALLOWED, "EOB Allowed Amount"),
        (("patientResponsibility", "patient_responsibility"), TotalType.PATIENT_RESPONSIBILITY,
         "EOB Patient Responsibility"),
        (("insurancePaid", "insurance_paid", "planPaid", "plan_paid"), TotalType.INSURANCE_PAID, "EOB Plan Paid"),
    )
    candidates = []
    for keys, total_type, label in fields:
        probed = probe_amount(get_field(eob, *keys))
        if probed:
            candidates.append(TotalCandidate(
                total_type, probed.value, label, Confidence.HIGH, EOB_EVIDENCE, "eob",
            ))
    return candidates


def from_education_text(analysis: Any) -> list[TotalCandidate]:
    """First dollar amount in the billed-vs-allowed explainer text."""
    education = get_mapping(analysis, "billingEducation", "billing_education")
    text = get_field(education, "billedVsAllowed", "billed_vs_allowed")
    amounts = [a for a in find_dollar_amounts(text) if a > 0]
    if not amounts:
        return []
    return [TotalCandidate(
        TotalType.CHARGES, amounts[0], "From billing education text", Confidence.LOW,
        text[:100], "education_text",
    )]


def from_template_data(analysis: Any) -> list[TotalCandidate]:
    """Billed amounts filled into dispute/letter templates."""
    candidates = []
    for template in get_list(analysis, "billingTemplates", "billing_templates"):
        filled = get_mapping(template, "filledData", "filled_data")
        probed = probe_amount(get_field(filled, "billedAmount", "billed_amount"))
        if probed:
            candidates.append(TotalCandidate(
                TotalType.CHARGES, probed.value, "From billing template data", Confidence.HIGH,
                "Extracted for template generation", "template_data",
            ))
    return candidates


def from_action_steps(analysis: Any) -> list[TotalCandidate]:
    """Dollar amounts over $100 mentioned in suggested action steps."""
    candidates = []
    for step in get_list(analysis, "actionSteps", "action_steps"):
        if not isinstance(step, Mapping):
            continue
        text = f"{step.get('action') or ''} {step.get('details') or ''}".strip()
        for amount in find_dollar_amounts(text):
            if amount > ACTION_STEP_MIN_AMOUNT:
                candidates.append(TotalCandidate(
                    TotalType.CHARGES, amount, "From action steps text", Confidence.LOW,
                    text[:80], "action_steps",
                ))
    return candidates


EXTRACTION_SOURCES: tuple[ExtractionSource, ...] = (
    from_summary,
    from_line_item_sum,
    from_extracted_totals,
    from_direct_fields,
    from_eob,
    from_education_text,
    from_template_data,
    from_action_steps,
)


# =============================================================================
# Ranking and selection
# =============================================================================

def rank_candidates(candidates: Iterable[TotalCandidate]) -> list[TotalCandidate]:
    """Sort by confidence, then larger amount; source order breaks ties."""
    return sorted(candidates, key=lambda c: (CONFIDENCE_RANK[c.confidence], -c.amount))


def dedupe_candidates(ranked: Iterable[TotalCandidate]) -> list[TotalCandidate]:
    """Drop candidates within $1 of a better-ranked one of the same type."""
    kept: list[TotalCandidate] = []
    for candidate in ranked:
        if any(
            k.type == candidate.type and abs(k.amount - candidate.amount) < DUPLICATE_WINDOW
            for k in kept
        ):
            continue
        kept.append(candidate)
    return kept


def extract_total_candidates(
    analysis: Any,
    sources: tuple[ExtractionSource, ...] = EXTRACTION_SOURCES,
) -> list[TotalCandidate]:
    """
    Run every extraction source and return ranked, de-duplicated candidates.

    A source that blows up on a malformed analysis is skipped with a warning.
    """
    collected: list[TotalCandidate] = []
    for source in sources:
        try:
            collected.extend(source(analysis))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Totals source {source.__name__} failed: {e}")
    return dedupe_candidates(rank_candidates(collected))


def _best(candidates: list[TotalCandidate], total_type: TotalType) -> Optional[TotalCandidate]:
    for candidate in candidates:
        if candidate.type == total_type:
            return candidate
    return None


def select_comparison_total(candidates: list[TotalCandidate]) -> Optional[ComparisonTotal]:
    """
    Pick the comparison total: allowed, then charges, then patient responsibility.

    Only the best-ranked candidate of each type is considered, and it must
    be above ``low`` confidence. Insurance-paid amounts are never chosen.
    """
    allowed = _best(candidates, TotalType.ALLOWED)
    if allowed and allowed.confidence != Confidence.LOW:
        return ComparisonTotal(
            value=allowed.amount,
            type=TotalType.ALLOWED,
            confidence=allowed.confidence,
            explanation=(
                f"Using the allowed amount ({allowed.label}) as this represents what "
                "insurance agreed to pay for these services."
            ),
        )

    charges = _best(candidates, TotalType.CHARGES)
    if charges and charges.confidence != Confidence.LOW:
        return ComparisonTotal(
            value=charges.amount,
            type=TotalType.CHARGES,
            confidence=charges.confidence,
            explanation=f"Using total charges ({charges.label}) as the comparison basis.",
        )

    patient = _best(candidates, TotalType.PATIENT_RESPONSIBILITY)
    if patient and patient.confidence != Confidence.LOW:
        return ComparisonTotal(
            value=patient.amount,
            type=TotalType.PATIENT_RESPONSIBILITY,
            confidence=patient.confidence,
            explanation=(
                "Only patient responsibility amount was available. This may already "
                "include insurance adjustments, making direct Medicare comparison "
                "less meaningful."
            ),
            limited_comparability=True,
        )

    return None


def check_reconciliation(
    comparison_total: Optional[ComparisonTotal],
    sum_of_line_charges: float,
    tolerance: float = DEFAULT_TOLERANCE,
) -> tuple[ReconciliationStatus, Optional[str], Optional[float]]:
    """
    Compare the chosen total with the line-item charge sum.

    Returns:
        (status, note, difference percent); the boundary is inclusive.
    """
    if comparison_total is None or sum_of_line_charges <= 0:
        return ReconciliationStatus.INSUFFICIENT_DATA, None, None

    fraction = abs(comparison_total.value - sum_of_line_charges) / sum_of_line_charges
    percent = round(fraction * 100, 4)

    if percent <= round(tolerance * 100, 4):
        note = f"Line item sum matches the total within {tolerance * 100:g}% tolerance."
        return ReconciliationStatus.MATCHED, note, round(percent, 2)

    note = (
        f"Line item sum (${sum_of_line_charges:.2f}) differs from total "
        f"(${comparison_total.value:.2f}) by {percent:.1f}%."
    )
    return ReconciliationStatus.MISMATCH, note, round(percent, 2)


def classify_analysis(analysis: Any, document_text: Optional[str] = None) -> DocumentClassification:
    """Classify from raw text, else from the extraction step's own label."""
    if document_text:
        return classify_document(document_text)
    summary = get_mapping(analysis, "atAGlance", "at_a_glance")
    return classification_from_hint(get_field(summary, "documentClassification", "document_classification"))


def reconcile_totals(
    analysis: Mapping,
    document_text: Optional[str] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> ReconciliationResult:
    """
    Reconcile the totals on a bill.

    Args:
        analysis: Bill-analysis mapping from the extraction step.
        document_text: Raw document text used for classification.
        tolerance: Allowed relative gap between total and line-item sum.

    Returns:
        ReconciliationResult: Never raises for malformed input.
    """
    line_items = extract_charges(analysis)
    sum_of_line_charges = round(sum(c.charge_amount or 0.0 for c in line_items), 2)

    classification = classify_analysis(analysis, document_text)
    candidates = extract_total_candidates(analysis)
    comparison_total = select_comparison_total(candidates)
    status, note, difference_percent = check_reconciliation(
        comparison_total, sum_of_line_charges, tolerance
    )

    logger.info(
        f"Totals reconciled: document={classification.value}, "
        f"candidates={len(candidates)}, status={status.value}"
    )

    return ReconciliationResult(
        line_items=line_items,
        sum_of_line_charges=sum_of_line_charges,
        comparison_total=comparison_total,
        document_classification=classification,
        reconciliation_status=status,
        candidates=tuple(candidates),
        note=note,
        difference_percent=difference_percent,
    )
