"""
Keyword-based document type classification for bill text.

Each indicator found in the text scores 2 points for its category. A
payment receipt is detected first by heuristic; otherwise the
highest-scoring category that clears its threshold wins.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ml.benchmark.models import DocumentClassification

logger = logging.getLogger(__name__)

INDICATOR_POINTS = 2

EOB_INDICATORS = (
    "explanation of benefits", "eob", "allowed amount", "plan paid",
    "member responsibility", "claim number", "processed date",
    "coinsurance", "copay", "deductible applied",
)

PORTAL_INDICATORS = (
    "mychart", "patient portal", "online balance", "your balance",
    "quick pay", "make a payment", "payment options",
)

STATEMENT_INDICATORS = (
    "statement", "itemized bill", "service date", "procedure",
    "charges", "billing statement", "date of service", "quantity", "cpt",
)


def score_indicators(text: str, indicators: tuple[str, ...]) -> int:
    """Points for every indicator phrase present in lowercased ``text``."""
    return sum(INDICATOR_POINTS for phrase in indicators if phrase in text)


def is_payment_receipt(text: str) -> bool:
    """Receipt wording with no charges listed."""
    if "charges" in text:
        return False
    return (
        "receipt" in text
        or "payment received" in text
        or ("paid" in text and "thank you" in text)
    )


@dataclass(frozen=True)
class ClassificationRule:
    classification: DocumentClassification
    indicators: tuple[str, ...]
    threshold: int
    # Extra condition on (text, scores) beyond clearing the threshold
    accepts: Optional[Callable[[str, dict], bool]] = None


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        DocumentClassification.EOB,
        EOB_INDICATORS,
        threshold=6,
        accepts=lambda text, scores: scores[DocumentClassification.EOB]
        > scores[DocumentClassification.ITEMIZED_STATEMENT],
    ),
    ClassificationRule(
        DocumentClassification.PORTAL_SUMMARY,
        PORTAL_INDICATORS,
        threshold=4,
        accepts=lambda text, scores: "itemized" not in text,
    ),
    ClassificationRule(
        DocumentClassification.ITEMIZED_STATEMENT,
        STATEMENT_INDICATORS,
        threshold=4,
    ),
)


def classify_document(text: Optional[str]) -> DocumentClassification:
    """
    Classify raw bill text.

    Args:
        text: Raw document text; empty or None classifies as unknown.

    Returns:
        DocumentClassification: Ties go to the earlier rule
        (EOB, then portal, then itemized statement).
    """
    if not text:
        return DocumentClassification.UNKNOWN

    lower = text.lower()
    if is_payment_receipt(lower):
        return DocumentClassification.PAYMENT_RECEIPT

    scores = {
        rule.classification: score_indicators(lower, rule.indicators)
        for rule in CLASSIFICATION_RULES
    }

    best: Optional[DocumentClassification] = None
    for rule in CLASSIFICATION_RULES:
        score = scores[rule.classification]
        if score < rule.threshold:
            continue
        if rule.accepts is not None and not rule.accepts(lower, scores):
            continue
        if best is None or score > scores[best]:
            best = rule.classification

    logger.debug(f"Document scores {scores} -> {best}")
    return best or DocumentClassification.UNKNOWN


def classification_from_hint(hint: object) -> DocumentClassification:
    """Accept an upstream classification label if it is one we know."""
    if isinstance(hint, DocumentClassification):
        return hint
    if isinstance(hint, str):
        try:
            return DocumentClassification(hint.strip().lower())
        except ValueError:
            logger.debug(f"Ignoring unknown document classification hint {hint!r}")
    return DocumentClassification.UNKNOWN
