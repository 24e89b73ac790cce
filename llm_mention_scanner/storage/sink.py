"""
Result sinks for completed scan batches.

The orchestrator hands every finished ScanBatch to a ResultSink exactly once.
A sink either stores the whole batch or raises; the orchestrator wraps the
error in ResultPersistenceError and never retries.

SQLiteResultSink is the reference implementation: one row per result plus
an update of the keyword-level rollup, all in a single transaction.

Example:
    >>> sink = SQLiteResultSink("./output/scans.db")
    >>> batch = await run_scan(request, adapters, sink=sink)
"""

import logging
import sqlite3
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..exceptions import DatabaseInitError, DatabaseQueryError
from .db import (
    init_db_if_needed,
    insert_scan,
    insert_scan_result,
    upsert_keyword_metrics,
)

if TYPE_CHECKING:
    from ..llm_runner.runner import ScanBatch

logger = logging.getLogger(__name__)


class ResultSink(Protocol):
    """Destination for completed scan batches."""

    def persist_results(self, batch: "ScanBatch") -> None:
        """
        Store a completed batch.

        Raises:
            Exception: Any failure; the caller surfaces it as ResultPersistenceError
        """
        ...


class SQLiteResultSink:
    """
    Store scan batches in a local SQLite database.

    The schema is created (or migrated) on construction.

    Attributes:
        db_path: Path to the SQLite file

    Raises:
        DatabaseInitError: If the database cannot be created or migrated
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        try:
            init_db_if_needed(self.db_path)
        except (sqlite3.Error, OSError, ValueError) as e:
            raise DatabaseInitError(
                f"Failed to initialize scan database {self.db_path}: {e}"
            ) from e

    def persist_results(self, batch: "ScanBatch") -> None:
        """
        Write the batch header, every result and the keyword rollup.

        Raises:
            DatabaseQueryError: If any statement fails (nothing is committed)
        """
        request = batch.request
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                conn.execute("PRAGMA foreign_keys = ON")
                insert_scan(
                    conn,
                    scan_id=batch.scan_id,
                    requester_id=request.requester_id,
                    brand_name=request.brand_name,
                    topic=batch.topic,
                    started_at=batch.started_at,
                    completed_at=batch.completed_at,
                    avg_position=batch.aggregate.avg_position,
                )
                for result in batch.results:
                    insert_scan_result(
                        conn,
                        scan_id=batch.scan_id,
                        provider_name=result.provider_name,
                        query=result.query,
                        brand_mentioned=result.brand_mentioned,
                        position=result.position,
                        confidence=result.confidence,
                        answer_text=result.answer_text,
                        context_snippet=result.context_snippet,
                        sources=[asdict(source) for source in result.sources],
                        duration_ms=result.duration_ms,
                    )
                upsert_keyword_metrics(
                    conn,
                    requester_id=request.requester_id,
                    brand_name=request.brand_name,
                    topic=batch.topic,
                    avg_position=batch.aggregate.avg_position,
                    per_provider_position=batch.aggregate.per_provider_position,
                    scanned_at=batch.completed_at,
                )
        except sqlite3.Error as e:
            raise DatabaseQueryError(
                f"Failed to store scan {batch.scan_id} in {self.db_path}: {e}"
            ) from e
        finally:
            conn.close()

        logger.info(
            f"Stored scan {batch.scan_id}: {len(batch.results)} result(s) "
            f"in {self.db_path}"
        )
