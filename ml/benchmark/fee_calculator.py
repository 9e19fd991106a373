"""
Reference fee calculation from an MPFS row.

Formula:
    fee = (work_rvu * work_gpci + pe_rvu * pe_gpci + mp_rvu * mp_gpci) * CF

``pe_rvu`` is the facility or non-facility practice expense RVU depending on
the care setting. GPCI factors are 1.0 when no locality was resolved.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ml.benchmark.models import FeeScheduleRow, LocalityAdjustment

logger = logging.getLogger(__name__)

# CY2026 non-QP conversion factor, used when a row carries none
DEFAULT_CONVERSION_FACTOR = 34.6062


def round_half_up(value: float, places: int = 2) -> float:
    """Round halves away from zero, the way bills and fee schedules do."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def direct_fee(row: FeeScheduleRow, is_facility: bool = False) -> Optional[float]:
    """The published national fee for the care setting, if any."""
    return row.facility_fee if is_facility else row.nonfacility_fee


def calculate_reference_fee(
    row: FeeScheduleRow,
    adjustment: Optional[LocalityAdjustment] = None,
    is_facility: bool = False,
) -> Optional[float]:
    """
    Compute the reference price for one unit of service.

    Args:
        row: Matched fee schedule row.
        adjustment: Resolved locality, or None for national pricing.
        is_facility: True for facility (hospital) setting.

    Returns:
        Optional[float]: Fee rounded to cents, or None if nothing usable.
    """
    published = direct_fee(row, is_facility)
    has_published = published is not None and published > 0

    # Published fees are national, so a resolved locality forces the RVU path
    if has_published and adjustment is None:
        return round_half_up(published)

    work_rvu = row.work_rvu or 0.0
    mp_rvu = row.malpractice_rvu or 0.0
    pe_rvu = (row.facility_pe_rvu if is_facility else row.nonfacility_pe_rvu) or 0.0

    # No RVUs: the unadjusted published fee is all there is, locality or not
    if work_rvu == 0 and pe_rvu == 0 and mp_rvu == 0:
        if published is None:
            logger.debug(f"No RVUs or published fee for {row.code} ({row.year})")
            return None
        return round_half_up(published)

    factors = adjustment or LocalityAdjustment.national()
    cf = row.conversion_factor or DEFAULT_CONVERSION_FACTOR

    fee = (
        work_rvu * factors.work_factor
        + pe_rvu * factors.practice_expense_factor
        + mp_rvu * factors.malpractice_factor
    ) * cf

    return round_half_up(fee)
