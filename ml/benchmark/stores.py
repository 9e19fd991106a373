"""
Read-only data stores consumed by the benchmark engine.

The engine only needs two collaborators:
- a fee schedule store (MPFS rows by code/modifier/year/status flag)
- a locality store (GPCI factors by ZIP, ZIP crosswalk or state)

They are populated by an external import pipeline. This module defines the
interfaces plus in-memory implementations that can be loaded from the JSON
files that pipeline produces. ``app.services.benchmark_store`` provides the
database-backed versions.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from ml.benchmark.models import FeeScheduleRow, LocalityAdjustment

logger = logging.getLogger(__name__)

DEFAULT_STATUS_FLAG = "nonQP"


class FeeScheduleStore(Protocol):
    """Lookup interface for MPFS rows."""

    def find_row(
        self,
        code: str,
        modifier: str,
        year: int,
        status_flag: str = DEFAULT_STATUS_FLAG,
    ) -> Optional[FeeScheduleRow]:
        ...

    def latest_year(self, status_flag: str = DEFAULT_STATUS_FLAG) -> Optional[int]:
        ...


class LocalityStore(Protocol):
    """Lookup interface for GPCI localities."""

    def find_by_zip(self, zip_code: str) -> Optional[LocalityAdjustment]:
        ...

    def find_by_crosswalk(self, zip_code: str) -> Optional[LocalityAdjustment]:
        ...

    def find_by_state(self, state_code: str) -> Optional[LocalityAdjustment]:
        ...


class InMemoryFeeScheduleStore:
    """Fee schedule held in a dict keyed by (code, modifier, year, flag)."""

    def __init__(self, rows: Iterable[FeeScheduleRow] = ()):
        self._rows: dict[tuple[str, str, int, str], FeeScheduleRow] = {}
        for row in rows:
            self.add(row)

    def add(self, row: FeeScheduleRow) -> None:
        key = (row.code.upper(), (row.modifier or "").upper(), row.year, row.status_flag)
        self._rows[key] = row

    def __len__(self) -> int:
        return len(self._rows)

    def find_row(
        self,
        code: str,
        modifier: str,
        year: int,
        status_flag: str = DEFAULT_STATUS_FLAG,
    ) -> Optional[FeeScheduleRow]:
        return self._rows.get((code.upper(), (modifier or "").upper(), year, status_flag))

    def latest_year(self, status_flag: str = DEFAULT_STATUS_FLAG) -> Optional[int]:
        years = [key[2] for key in self._rows if key[3] == status_flag]
        return max(years) if years else None

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryFeeScheduleStore":
        """
        Load rows from a JSON list of MPFS records.

        Unknown keys are ignored so exports carrying extra columns load fine.
        """
        records = _load_json_list(path)
        rows = []
        for record in records:
            try:
                rows.append(_fee_row_from_record(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed fee schedule record {record!r}: {e}")
        logger.info(f"Loaded {len(rows)} fee schedule rows from {path}")
        return cls(rows)


class InMemoryLocalityStore:
    """GPCI localities indexed by ZIP, crosswalk ZIP and state."""

    def __init__(
        self,
        localities: Iterable[LocalityAdjustment] = (),
        crosswalk: Optional[dict[str, tuple[str, str]]] = None,
    ):
        self._localities = list(localities)
        # zip5 -> (state_code, locality_id)
        self._crosswalk = dict(crosswalk or {})

    def find_by_zip(self, zip_code: str) -> Optional[LocalityAdjustment]:
        for locality in self._localities:
            if locality.zip_code and locality.zip_code == zip_code:
                return locality
        return None

    def find_by_crosswalk(self, zip_code: str) -> Optional[LocalityAdjustment]:
        entry = self._crosswalk.get(zip_code)
        if not entry:
            return None
        state_code, locality_id = entry
        for locality in self._localities:
            if locality.state_code == state_code and locality.locality_id == locality_id:
                return locality
        return None

    def find_by_state(self, state_code: str) -> Optional[LocalityAdjustment]:
        for locality in self._localities:
            if locality.state_code == state_code.upper():
                return locality
        return None

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryLocalityStore":
        """
        Load localities from JSON.

        Accepts either a list of locality records or an object with
        ``localities`` and an optional ``crosswalk`` list of
        ``{zip5, state_abbr, locality_num}`` records.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, list):
            records, crosswalk_records = data, []
        else:
            records = data.get("localities", [])
            crosswalk_records = data.get("crosswalk", [])

        localities = [
            LocalityAdjustment(
                locality_id=str(r["locality_num"]),
                state_code=str(r["state_abbr"]).upper(),
                locality_name=r.get("locality_name"),
                zip_code=r.get("zip_code"),
                work_factor=float(r.get("work_gpci", 1.0)),
                practice_expense_factor=float(r.get("pe_gpci", 1.0)),
                malpractice_factor=float(r.get("mp_gpci", 1.0)),
            )
            for r in records
        ]
        crosswalk = {
            str(c["zip5"]): (str(c["state_abbr"]).upper(), str(c["locality_num"]))
            for c in crosswalk_records
        }
        logger.info(
            f"Loaded {len(localities)} GPCI localities and "
            f"{len(crosswalk)} crosswalk ZIPs from {path}"
        )
        return cls(localities, crosswalk)


def _load_json_list(path: Union[str, Path]) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("rows", [])
    return data


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _fee_row_from_record(record: dict) -> FeeScheduleRow:
    return FeeScheduleRow(
        code=str(record["hcpcs"]).strip().upper(),
        modifier=str(record.get("modifier") or "").strip().upper(),
        year=int(record["year"]),
        description=record.get("description"),
        work_rvu=_optional_float(record.get("work_rvu")),
        nonfacility_pe_rvu=_optional_float(record.get("nonfac_pe_rvu")),
        facility_pe_rvu=_optional_float(record.get("fac_pe_rvu")),
        malpractice_rvu=_optional_float(record.get("mp_rvu")),
        conversion_factor=_optional_float(record.get("conversion_factor")),
        nonfacility_fee=_optional_float(record.get("nonfac_fee")),
        facility_fee=_optional_float(record.get("fac_fee")),
        global_days=record.get("global_days"),
        status_flag=record.get("qp_status") or DEFAULT_STATUS_FLAG,
    )
