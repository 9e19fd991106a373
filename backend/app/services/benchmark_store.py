"""
SQLAlchemy-backed fee schedule and locality stores.

Implement the engine's read-only store interfaces over the
``mpfs_benchmarks``, ``gpci_localities`` and ``zip_to_locality`` tables.

A SQLAlchemy ``Session`` is not thread safe while the engine looks lines up
from a worker pool, so both stores built for one request share a lock that
serializes access to that request's session.
"""

import logging
import threading
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.fee_schedule import GpciLocality, MpfsBenchmark, ZipToLocality
from ml.benchmark.models import FeeScheduleRow, LocalityAdjustment
from ml.benchmark.stores import DEFAULT_STATUS_FLAG

logger = logging.getLogger(__name__)


class SqlFeeScheduleStore:
    """MPFS rows from the database."""

    def __init__(self, db: Session, lock: Optional[threading.Lock] = None):
        self.db = db
        self._lock = lock or threading.Lock()

    def find_row(
        self,
        code: str,
        modifier: str,
        year: int,
        status_flag: str = DEFAULT_STATUS_FLAG,
    ) -> Optional[FeeScheduleRow]:
        stmt = (
            select(MpfsBenchmark)
            .where(
                MpfsBenchmark.hcpcs == code.strip().upper(),
                MpfsBenchmark.modifier == (modifier or "").strip().upper(),
                MpfsBenchmark.year == year,
                MpfsBenchmark.qp_status == status_flag,
            )
            .limit(1)
        )
        with self._lock:
            record = self.db.execute(stmt).scalar_one_or_none()
            row = record.to_row() if record else None

        logger.debug(f"MPFS lookup {code}/{modifier or '-'}/{year}: {'hit' if row else 'miss'}")
        return row

    def latest_year(self, status_flag: str = DEFAULT_STATUS_FLAG) -> Optional[int]:
        stmt = select(func.max(MpfsBenchmark.year)).where(MpfsBenchmark.qp_status == status_flag)
        with self._lock:
            return self.db.execute(stmt).scalar()


class SqlLocalityStore:
    """GPCI localities and the ZIP crosswalk from the database."""

    def __init__(self, db: Session, lock: Optional[threading.Lock] = None):
        self.db = db
        self._lock = lock or threading.Lock()

    def _first(self, stmt) -> Optional[LocalityAdjustment]:
        with self._lock:
            record = self.db.execute(stmt.limit(1)).scalars().first()
            return record.to_adjustment() if record else None

    def find_by_zip(self, zip_code: str) -> Optional[LocalityAdjustment]:
        return self._first(
            select(GpciLocality).where(GpciLocality.zip_code == zip_code).order_by(GpciLocality.id)
        )

    def find_by_crosswalk(self, zip_code: str) -> Optional[LocalityAdjustment]:
        return self._first(
            select(GpciLocality)
            .join(
                ZipToLocality,
                (ZipToLocality.state_abbr == GpciLocality.state_abbr)
                & (ZipToLocality.locality_num == GpciLocality.locality_num),
            )
            .where(ZipToLocality.zip5 == zip_code)
        )

    def find_by_state(self, state_code: str) -> Optional[LocalityAdjustment]:
        return self._first(
            select(GpciLocality)
            .where(GpciLocality.state_abbr == state_code.upper())
            .order_by(GpciLocality.id)
        )


def build_stores(db: Session) -> tuple[SqlFeeScheduleStore, SqlLocalityStore]:
    """Both stores over one session, sharing one lock."""
    lock = threading.Lock()
    return SqlFeeScheduleStore(db, lock), SqlLocalityStore(db, lock)
