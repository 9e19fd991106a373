"""
Defensive access to the untyped bill-analysis object.

The document-extraction step hands over a loosely structured mapping whose
keys may be camelCase or snake_case and whose amounts may be numbers,
currency strings or ``{value, label, confidence, evidence}`` objects. The
helpers here are the only place that reaches into it.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ml.benchmark.models import Confidence, ExtractedCharge, LineItem

logger = logging.getLogger(__name__)

CURRENCY_NOISE = re.compile(r"[$,\s]")
DOLLAR_AMOUNT_PATTERN = re.compile(r"\$([0-9,]+(?:\.[0-9]{2})?)")


@dataclass(frozen=True)
class ProbedAmount:
    """An amount pulled from a field, with whatever metadata came with it."""

    value: float
    label: Optional[str] = None
    confidence: Optional[Confidence] = None
    evidence: Optional[str] = None


def parse_currency(value: Any) -> Optional[float]:
    """
    Parse a currency value into a float.

    Strips ``$``, commas and whitespace; accounting-style parentheses mean a
    negative amount. Returns None for anything unparseable or non-finite.

    Examples:
        >>> parse_currency("$1,234.50")
        1234.5
        >>> parse_currency("(45.00)")
        -45.0
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            amount = float(value)
        except OverflowError:
            return None
        return amount if math.isfinite(amount) else None
    if not isinstance(value, str):
        return None

    cleaned = CURRENCY_NOISE.sub("", value)
    negative = cleaned.startswith("(") and cleaned.endswith(")")
    cleaned = cleaned.strip("()")
    try:
        amount = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return -amount if negative else amount


def find_dollar_amounts(text: Any) -> list[float]:
    """All ``$1,234.56`` style amounts in a piece of text."""
    if not isinstance(text, str):
        return []
    amounts = []
    for match in DOLLAR_AMOUNT_PATTERN.finditer(text):
        amount = parse_currency(match.group(1))
        if amount is not None:
            amounts.append(amount)
    return amounts


def get_field(data: Any, *names: str) -> Any:
    """First present, non-None value among ``names`` in a mapping."""
    if not isinstance(data, Mapping):
        return None
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return None


def get_mapping(data: Any, *names: str) -> Mapping:
    value = get_field(data, *names)
    return value if isinstance(value, Mapping) else {}


def get_list(data: Any, *names: str) -> list:
    value = get_field(data, *names)
    return list(value) if isinstance(value, (list, tuple)) else []


def parse_confidence(value: Any) -> Optional[Confidence]:
    if isinstance(value, Confidence):
        return value
    if isinstance(value, str):
        try:
            return Confidence(value.strip().lower())
        except ValueError:
            return None
    return None


def probe_amount(value: Any) -> Optional[ProbedAmount]:
    """
    Read a positive amount from a plain value or a structured object.

    Args:
        value: A number, a currency string or a mapping with ``value`` and
            optional ``label``, ``confidence`` and ``evidence``.

    Returns:
        Optional[ProbedAmount]: None unless the amount is positive.
    """
    if isinstance(value, Mapping):
        amount = parse_currency(value.get("value"))
        if amount is None or amount <= 0:
            return None
        label = value.get("label")
        evidence = value.get("evidence")
        return ProbedAmount(
            value=amount,
            label=label if isinstance(label, str) and label else None,
            confidence=parse_confidence(value.get("confidence")),
            evidence=evidence if isinstance(evidence, str) and evidence else None,
        )

    amount = parse_currency(value)
    if amount is None or amount <= 0:
        return None
    return ProbedAmount(value=amount)


def _charge_rows(analysis: Any) -> Iterable[Mapping]:
    for row in get_list(analysis, "charges", "lineItems", "line_items"):
        if isinstance(row, Mapping):
            yield row


def extract_charges(analysis: Any) -> tuple[ExtractedCharge, ...]:
    """Charge rows from the analysis, with non-positive amounts dropped."""
    charges = []
    for row in _charge_rows(analysis):
        amount = parse_currency(get_field(row, "amount", "chargeAmount", "charge_amount", "billedAmount"))
        code = get_field(row, "code", "cpt", "hcpcs")
        units = get_field(row, "units", "quantity")
        try:
            units = max(int(units), 1) if units is not None else 1
        except (TypeError, ValueError, OverflowError):
            units = 1
        description = get_field(row, "description")
        charges.append(
            ExtractedCharge(
                description=str(description) if description is not None else "",
                charge_amount=amount if amount is not None and amount > 0 else None,
                code=str(code) if code is not None else None,
                units=units,
            )
        )
    return tuple(charges)


def line_items_from_analysis(analysis: Any, is_facility: bool = False) -> list[LineItem]:
    """
    Build benchmark ``LineItem``s from charge rows that carry a code and an amount.

    Rows without a code or a positive amount are skipped.
    """
    items = []
    for row in _charge_rows(analysis):
        code = get_field(row, "code", "cpt", "hcpcs")
        amount = parse_currency(get_field(row, "amount", "chargeAmount", "charge_amount", "billedAmount"))
        if code is None or str(code).strip() == "" or amount is None or amount <= 0:
            continue

        units = get_field(row, "units", "quantity")
        try:
            units = int(units) if units is not None else 1
        except (TypeError, ValueError, OverflowError):
            units = 1

        modifier = get_field(row, "modifier")
        service_date = get_field(row, "serviceDate", "service_date", "dateOfService", "date_of_service")
        description = get_field(row, "description")
        items.append(
            LineItem(
                code=str(code),
                raw_code=str(code),
                billed_amount=amount,
                description=str(description) if description is not None else None,
                units=units,
                service_date=str(service_date) if service_date is not None else None,
                modifier=str(modifier) if modifier else None,
                is_facility=is_facility,
            )
        )

    logger.debug(f"Derived {len(items)} line items from bill analysis")
    return items
