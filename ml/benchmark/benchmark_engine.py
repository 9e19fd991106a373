"""
Benchmark engine entry point.

Pipeline:
    line items -> code normalizer -> (locality, year) -> fee calculator
               -> line matcher -> aggregator

Every call builds its own ``BenchmarkSession``; locality and latest year are
resolved once on it and shared by the worker threads that match lines.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Optional, Sequence

from ml.benchmark.aggregator import aggregate
from ml.benchmark.line_matcher import match_line_item
from ml.benchmark.models import BenchmarkOutput, LineItem, ReconciliationResult
from ml.benchmark.session import DEFAULT_FEE_SCHEDULE_YEAR, BenchmarkSession
from ml.benchmark.stores import DEFAULT_STATUS_FLAG, FeeScheduleStore, LocalityStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def calculate_benchmarks(
    line_items: Sequence[LineItem],
    fee_store: FeeScheduleStore,
    locality_store: LocalityStore,
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    default_year: int = DEFAULT_FEE_SCHEDULE_YEAR,
    status_flag: str = DEFAULT_STATUS_FLAG,
    reconciliation: Optional[ReconciliationResult] = None,
) -> BenchmarkOutput:
    """
    Benchmark a bill's line items against the Medicare fee schedule.

    Args:
        line_items: Billed lines, in bill order.
        fee_store: Fee schedule data.
        locality_store: GPCI locality data.
        state: Optional two-letter state code.
        zip_code: Optional ZIP or ZIP+4.
        max_workers: Upper bound on concurrent line lookups.
        default_year: Year assumed when the fee store is empty.
        status_flag: Fee schedule billable status flag to query.
        reconciliation: Totals reconciliation to attach as a cross-check.

    Returns:
        BenchmarkOutput: Line results in input order with totals, metadata
        and a debug trace.
    """
    start = time.perf_counter()
    logger.info(f"Calculating benchmarks for {len(line_items)} line items (state={state}, zip={zip_code})")

    session = BenchmarkSession(
        fee_store,
        locality_store,
        status_flag=status_flag,
        default_year=default_year,
    )
    locality = session.locality(zip_code=zip_code, state=state)
    latest_year = session.latest_year()

    if line_items:
        workers = max(1, min(max_workers, len(line_items)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="benchmark") as executor:
            matches = list(
                executor.map(
                    lambda item: match_line_item(item, session, locality.adjustment),
                    line_items,
                )
            )
    else:
        matches = []

    output = aggregate(
        matches,
        locality,
        latest_year,
        session_notes=session.notes,
        state=state,
        zip_code=zip_code,
    )
    if reconciliation is not None:
        output = replace(output, reconciliation=reconciliation)

    elapsed = time.perf_counter() - start
    logger.info(f"Benchmark calculation finished in {elapsed:.3f}s with status {output.status.value}")
    return output
