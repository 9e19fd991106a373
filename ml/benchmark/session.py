"""
Per-invocation benchmark context and fee schedule year resolution.

A ``BenchmarkSession`` is created at the start of every benchmark
calculation and threaded through every component. It memoizes the latest
fee schedule year and the resolved locality for the duration of that one
calculation only; two calculations never share a session, so concurrent
bills cannot observe each other's cached values.
"""

import logging
import re
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Generic, Optional, TypeVar, Union

from ml.benchmark.locality import LocalityResolver
from ml.benchmark.models import LocalityConfidence, LocalityMethod, LocalityResolution
from ml.benchmark.stores import DEFAULT_STATUS_FLAG, FeeScheduleStore, LocalityStore

logger = logging.getLogger(__name__)

# Used only when the fee schedule store has no rows at all
DEFAULT_FEE_SCHEDULE_YEAR = 2026

MIN_SERVICE_YEAR = 1990
MAX_SERVICE_YEAR = 2100

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%Y/%m/%d")
YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")

T = TypeVar("T")


def extract_service_year(service_date: Optional[Union[str, date]]) -> Optional[int]:
    """
    Pull a plausible calendar year out of a service date.

    Accepts date/datetime objects, ISO strings, US-style dates, or any
    string containing a 19xx/20xx year.
    """
    if not service_date:
        return None

    year: Optional[int] = None
    if isinstance(service_date, (date, datetime)):
        year = service_date.year
    else:
        text = str(service_date).strip()
        try:
            year = datetime.fromisoformat(text).year
        except ValueError:
            for fmt in DATE_FORMATS:
                try:
                    year = datetime.strptime(text, fmt).year
                    break
                except ValueError:
                    continue
        if year is None:
            match = YEAR_PATTERN.search(text)
            if match:
                year = int(match.group(0))

    if year is not None and MIN_SERVICE_YEAR <= year <= MAX_SERVICE_YEAR:
        return year
    return None


@dataclass(frozen=True)
class YearResolution(Generic[T]):
    """Outcome of looking something up by fee schedule year."""

    result: Optional[T]
    requested_year: int
    year_used: int
    used_fallback: bool
    fallback_reason: Optional[str] = None


class BenchmarkSession:
    """
    Context for a single benchmark calculation.

    Holds the stores and the values that are computed once per calculation
    and shared by every line item: the latest fee schedule year and the
    resolved locality. Safe to share across the worker threads of one
    calculation.
    """

    def __init__(
        self,
        fee_store: FeeScheduleStore,
        locality_store: LocalityStore,
        status_flag: str = DEFAULT_STATUS_FLAG,
        default_year: int = DEFAULT_FEE_SCHEDULE_YEAR,
    ):
        self.fee_store = fee_store
        self.locality_store = locality_store
        self.status_flag = status_flag
        self.default_year = default_year
        self.notes: list[str] = []
        self._lock = threading.Lock()
        self._latest_year: Optional[int] = None
        self._locality: Optional[LocalityResolution] = None
        self._locality_key: Optional[tuple] = None

    def reset(self) -> None:
        """Drop memoized values so the session can be reused from scratch."""
        with self._lock:
            self._latest_year = None
            self._locality = None
            self._locality_key = None
            self.notes = []

    def latest_year(self) -> int:
        """Latest fee schedule year in the store, computed at most once."""
        with self._lock:
            if self._latest_year is None:
                latest = None
                try:
                    latest = self.fee_store.latest_year(self.status_flag)
                except Exception as e:
                    logger.warning(f"Could not fetch latest fee schedule year: {e}")
                if latest is None:
                    latest = self.default_year
                    self.notes.append(
                        f"Latest fee schedule year unavailable; defaulting to {latest}"
                    )
                self._latest_year = latest
                logger.debug(f"Latest fee schedule year for session: {latest}")
            return self._latest_year

    def locality(
        self,
        zip_code: Optional[str] = None,
        state: Optional[str] = None,
    ) -> LocalityResolution:
        """Resolve (once) the locality for this calculation's geography."""
        key = (zip_code, state)
        with self._lock:
            if self._locality is None or self._locality_key != key:
                try:
                    self._locality = LocalityResolver(self.locality_store).resolve(
                        zip_code=zip_code, state=state
                    )
                except Exception as e:
                    logger.warning(f"Locality lookup failed, using national defaults: {e}")
                    self._locality = LocalityResolution(
                        adjustment=None,
                        confidence=LocalityConfidence.NATIONAL_ESTIMATE,
                        method=LocalityMethod.NATIONAL_DEFAULT,
                        notes=("Locality lookup failed; national average used",),
                    )
                self._locality_key = key
            return self._locality

    def requested_year(self, service_date: Optional[Union[str, date]]) -> int:
        """Year to query for a service date, the latest year when unknown."""
        return extract_service_year(service_date) or self.latest_year()


class YearResolver:
    """Looks a value up by requested year, falling back to the latest year."""

    def __init__(self, session: BenchmarkSession):
        self.session = session

    def resolve(
        self,
        requested_year: int,
        lookup: Callable[[int], Optional[T]],
    ) -> YearResolution[T]:
        """
        Try ``lookup(requested_year)``, then ``lookup(latest_year)``.

        Args:
            requested_year: Year derived from the service date.
            lookup: Called with a year; returns None when nothing exists.

        Returns:
            YearResolution: ``used_fallback`` is set whenever the latest
            year had to be tried, whether or not it produced a result.
        """
        result = lookup(requested_year)
        if result is not None:
            return YearResolution(
                result=result,
                requested_year=requested_year,
                year_used=requested_year,
                used_fallback=False,
            )

        latest = self.session.latest_year()
        if requested_year == latest:
            return YearResolution(
                result=None,
                requested_year=requested_year,
                year_used=latest,
                used_fallback=False,
            )

        reason = (
            f"Service year {requested_year} not in fee schedule; "
            f"using {latest} (latest available)"
        )
        return YearResolution(
            result=lookup(latest),
            requested_year=requested_year,
            year_used=latest,
            used_fallback=True,
            fallback_reason=reason,
        )
