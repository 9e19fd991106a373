"""
CPT/HCPCS code normalization.

Turns raw, messily formatted code strings pulled off a bill into a
structured (code, modifier) pair. Never raises: a string that holds no
recognizable code normalizes to an empty ``code``.

Valid code shapes:
- 5 digits (CPT): 99213, 80053, 00100
- 1 letter + 4 digits (HCPCS Level II): J1885, G0378
- 4 digits + 1 letter (Category II / PLA): 0001F, 0001U
- 4 characters for a few legacy/revenue style codes

Examples:
    >>> normalize_code("CPT 58662")
    NormalizedCode(code='58662', modifier='', raw_input='CPT 58662')
    >>> normalize_code("58662-59").modifier
    '59'
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from ml.benchmark.models import NormalizedCode

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"[A-Z0-9]{4,5}")
HAS_DIGIT = re.compile(r"\d")
MODIFIER_PATTERN = re.compile(r"[A-Z0-9]{2}")

# "CPT", "HCPCS", "CODE:", "PROCEDURE #" ... possibly stacked ("CPT CODE: 99213")
LABEL_PATTERN = re.compile(r"^(?:CPT|HCPCS|CODE|PROCEDURE)(?![A-Z])[\s:#.]*")

# Anything that is not a word character, whitespace or hyphen
PUNCTUATION_PATTERN = re.compile(r"[^\w\s-]")

# Code with its modifier glued on: "9921325", "A4570TC"
INLINE_MODIFIER_PATTERN = re.compile(r"(\d{5}|[A-Z]\d{4})([A-Z0-9]{2})")


@dataclass(frozen=True)
class SalvageRule:
    """One pattern tried, in order, when the leading token is not a code."""

    name: str
    pattern: re.Pattern

    def apply(self, cleaned: str) -> Optional[str]:
        match = self.pattern.search(cleaned)
        return match.group(1) if match else None


# Real codes always carry at least one digit, so words like "VISIT" are skipped
SALVAGE_RULES: tuple[SalvageRule, ...] = (
    SalvageRule("five_char_token", re.compile(r"\b(?=[A-Z]*\d)([A-Z0-9]{5})\b")),
    SalvageRule("four_char_token", re.compile(r"\b(?=[A-Z]*\d)([A-Z0-9]{4})\b")),
)


def strip_labels(value: str) -> str:
    """Remove leading "CPT"/"HCPCS"/"CODE:"/"PROCEDURE:" labels."""
    previous = None
    while previous != value:
        previous = value
        value = LABEL_PATTERN.sub("", value).lstrip()
    return value


def apply_salvage_rules(
    cleaned: str,
    rules: tuple[SalvageRule, ...] = SALVAGE_RULES,
) -> Optional[str]:
    """Return the first code any rule can pull out of ``cleaned``."""
    for rule in rules:
        found = rule.apply(cleaned)
        if found:
            logger.debug(f"Salvaged code {found!r} via {rule.name}")
            return found
    return None


def _split_code_and_modifier(cleaned: str) -> tuple[str, str]:
    if "-" in cleaned:
        parts = [p.strip() for p in cleaned.split("-") if p.strip()]
    else:
        parts = cleaned.split()

    if not parts:
        return "", ""

    code = parts[0]
    modifier = ""
    if len(parts) >= 2 and MODIFIER_PATTERN.fullmatch(parts[1]):
        modifier = parts[1]

    if len(parts) == 1:
        inline = INLINE_MODIFIER_PATTERN.fullmatch(code)
        if inline:
            code, modifier = inline.group(1), inline.group(2)

    return code, modifier


def normalize_code(raw_code: object) -> NormalizedCode:
    """
    Normalize a raw CPT/HCPCS code string.

    Args:
        raw_code: Anything the extraction step produced for a code.

    Returns:
        NormalizedCode: ``code`` is empty or matches ``[A-Z0-9]{4,5}``;
        ``raw_input`` always echoes the input.
    """
    if raw_code is None:
        return NormalizedCode(code="", modifier="", raw_input="")

    raw = raw_code if isinstance(raw_code, str) else str(raw_code)

    cleaned = strip_labels(raw.strip().upper())
    cleaned = PUNCTUATION_PATTERN.sub("", cleaned).strip()

    code, modifier = _split_code_and_modifier(cleaned)

    # A leading word like "XRAY" is not a code; look past it
    if not CODE_PATTERN.fullmatch(code) or not HAS_DIGIT.search(code):
        code = apply_salvage_rules(cleaned) or ""
        if not code:
            modifier = ""

    return NormalizedCode(code=code, modifier=modifier, raw_input=raw)


def is_valid_billable_code(normalized: Union[NormalizedCode, str]) -> bool:
    """True if the code is 4-5 uppercase alphanumeric characters."""
    code = normalized.code if isinstance(normalized, NormalizedCode) else normalized
    if not code or len(code) not in (4, 5):
        return False
    return CODE_PATTERN.fullmatch(code) is not None


def format_code(normalized: NormalizedCode) -> str:
    """Render a normalized code back to ``CODE`` or ``CODE-MOD`` form."""
    if normalized.modifier:
        return f"{normalized.code}-{normalized.modifier}"
    return normalized.code


