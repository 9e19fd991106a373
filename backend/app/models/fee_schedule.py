"""
Fee Schedule Reference Models.

Read-only reference data consumed by the benchmark engine:
- MPFS rows (RVUs, conversion factor, published fees) per code/modifier/year
- GPCI localities (geographic adjustment factors)
- ZIP to locality crosswalk

The tables are populated by a separate import pipeline; this service only
reads them.
"""

from typing import Optional

from sqlalchemy import String, Integer, Float, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, IDMixin, TimestampMixin
from ml.benchmark.models import FeeScheduleRow, LocalityAdjustment


class MpfsBenchmark(Base, IDMixin, TimestampMixin):
    """
    One Medicare Physician Fee Schedule row.

    ``modifier`` is an empty string for the base code row.
    """
    __tablename__ = "mpfs_benchmarks"

    hcpcs: Mapped[str] = mapped_column(String(5), nullable=False, index=True)
    modifier: Mapped[str] = mapped_column(String(2), nullable=False, default="")
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    qp_status: Mapped[str] = mapped_column(String(10), nullable=False, default="nonQP")
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relative value units
    work_rvu: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    nonfac_pe_rvu: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fac_pe_rvu: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    mp_rvu: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    conversion_factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Published national fees
    nonfac_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fac_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    global_days: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    __table_args__ = (
        UniqueConstraint("hcpcs", "modifier", "year", "qp_status", name="uq_mpfs_code_mod_year_status"),
        Index("ix_mpfs_lookup", "hcpcs", "year", "qp_status"),
    )

    def to_row(self) -> FeeScheduleRow:
        return FeeScheduleRow(
            code=self.hcpcs,
            modifier=self.modifier or "",
            year=self.year,
            description=self.description,
            work_rvu=self.work_rvu,
            nonfacility_pe_rvu=self.nonfac_pe_rvu,
            facility_pe_rvu=self.fac_pe_rvu,
            malpractice_rvu=self.mp_rvu,
            conversion_factor=self.conversion_factor,
            nonfacility_fee=self.nonfac_fee,
            facility_fee=self.fac_fee,
            global_days=self.global_days,
            status_flag=self.qp_status,
        )

    def __repr__(self) -> str:
        mod = f"-{self.modifier}" if self.modifier else ""
        return f"<MpfsBenchmark {self.hcpcs}{mod} {self.year}>"


class GpciLocality(Base, IDMixin, TimestampMixin):
    """Geographic practice cost indices for one Medicare payment locality."""
    __tablename__ = "gpci_localities"

    locality_num: Mapped[str] = mapped_column(String(10), nullable=False)
    state_abbr: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    locality_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(5), nullable=True, index=True)

    work_gpci: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    pe_gpci: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    mp_gpci: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    __table_args__ = (
        UniqueConstraint("state_abbr", "locality_num", name="uq_gpci_state_locality"),
    )

    def to_adjustment(self) -> LocalityAdjustment:
        return LocalityAdjustment(
            locality_id=self.locality_num,
            state_code=self.state_abbr,
            locality_name=self.locality_name,
            zip_code=self.zip_code,
            work_factor=self.work_gpci,
            practice_expense_factor=self.pe_gpci,
            malpractice_factor=self.mp_gpci,
        )

    def __repr__(self) -> str:
        return f"<GpciLocality {self.state_abbr}-{self.locality_num} ({self.locality_name})>"


class ZipToLocality(Base, IDMixin):
    """Crosswalk from a 5-digit ZIP to its Medicare locality."""
    __tablename__ = "zip_to_locality"

    zip5: Mapped[str] = mapped_column(String(5), nullable=False, unique=True, index=True)
    state_abbr: Mapped[str] = mapped_column(String(2), nullable=False)
    locality_num: Mapped[str] = mapped_column(String(10), nullable=False)

    def __repr__(self) -> str:
        return f"<ZipToLocality {self.zip5} -> {self.state_abbr}-{self.locality_num}>"
