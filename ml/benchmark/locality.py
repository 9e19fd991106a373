"""
Geographic locality resolution for GPCI adjustment.

Fallback ladder:
1. ZIP matches a locality row directly      -> local_adjusted
2. ZIP found in the ZIP-to-locality crosswalk -> local_adjusted
3. State matches a locality                 -> local_adjusted
4. Nothing matched                          -> national_estimate (factors 1.0)
"""

import logging
import re
from typing import Optional

from ml.benchmark.models import (
    LocalityConfidence,
    LocalityMethod,
    LocalityResolution,
)
from ml.benchmark.stores import LocalityStore

logger = logging.getLogger(__name__)

VALID_STATES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL",
    "GA", "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME",
    "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH",
    "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "PR",
    "RI", "SC", "SD", "TN", "TX", "UT", "VT", "VA", "VI", "WA",
    "WV", "WI", "WY",
})


def normalize_zip(zip_input: Optional[str]) -> Optional[str]:
    """Reduce a ZIP or ZIP+4 to five digits, or None if it isn't one."""
    if not zip_input:
        return None
    digits = re.sub(r"\D", "", str(zip_input))
    zip5 = digits[:5]
    return zip5 if len(zip5) == 5 else None


def normalize_state(state_input: Optional[str]) -> Optional[str]:
    """Uppercase two-letter US state/territory code, or None."""
    if not state_input:
        return None
    cleaned = str(state_input).strip().upper()
    return cleaned if cleaned in VALID_STATES else None


class LocalityResolver:
    """Resolves a ZIP/state hint to GPCI factors using a locality store."""

    def __init__(self, store: LocalityStore):
        self.store = store

    def resolve(
        self,
        zip_code: Optional[str] = None,
        state: Optional[str] = None,
    ) -> LocalityResolution:
        """
        Resolve geography to a locality adjustment.

        Args:
            zip_code: Optional ZIP or ZIP+4.
            state: Optional two-letter state code.

        Returns:
            LocalityResolution: adjustment is None for the national default.
        """
        notes: list[str] = []
        zip5 = normalize_zip(zip_code)
        state_code = normalize_state(state)

        if zip_code and not zip5:
            notes.append(f"ZIP code '{zip_code}' is not a valid 5-digit ZIP")
        if state and not state_code:
            notes.append(f"State '{state}' is not a recognized US state code")

        if zip5:
            locality = self.store.find_by_zip(zip5)
            if locality:
                return self._local(locality, LocalityMethod.ZIP_EXACT, notes)

            locality = self.store.find_by_crosswalk(zip5)
            if locality:
                notes.append(f"ZIP {zip5} mapped to locality via crosswalk")
                return self._local(locality, LocalityMethod.ZIP_CROSSWALK, notes)

            notes.append(f"ZIP {zip5} not found in locality data")

        if state_code:
            locality = self.store.find_by_state(state_code)
            if locality:
                notes.append(f"Using {state_code} locality factors")
                return self._local(locality, LocalityMethod.STATE, notes)
            notes.append(f"No locality data for state {state_code}")

        notes.append("National average used (no geographic adjustment)")
        logger.info(f"No locality match for zip={zip_code!r}, state={state!r}")
        return LocalityResolution(
            adjustment=None,
            confidence=LocalityConfidence.NATIONAL_ESTIMATE,
            method=LocalityMethod.NATIONAL_DEFAULT,
            locality_name=None,
            notes=tuple(notes),
        )

    @staticmethod
    def _local(locality, method: LocalityMethod, notes: list[str]) -> LocalityResolution:
        logger.debug(f"Resolved locality {locality.locality_id} ({locality.locality_name}) via {method.value}")
        return LocalityResolution(
            adjustment=locality,
            confidence=LocalityConfidence.LOCAL_ADJUSTED,
            method=method,
            locality_name=locality.locality_name,
            notes=tuple(notes),
        )
