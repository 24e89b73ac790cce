"""
SQLite database initialization and schema management for LLM Mention Scanner.

This module provides database setup with schema versioning and migration support.
All timestamps are stored in ISO 8601 format with 'Z' suffix (UTC).

The database tracks:
- scans: One row per scan batch with its average position
- scan_results: One row per provider result, sources stored as JSON
- keyword_metrics: Rolling per-(requester, brand, topic) visibility record

Example usage:
    >>> from llm_mention_scanner.storage.db import init_db_if_needed
    >>> init_db_if_needed("./output/scans.db")

Security:
    - ALL queries use parameterized statements to prevent SQL injection
    - NO API keys are ever stored in the database
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from ..utils.time import utc_timestamp

logger = logging.getLogger(__name__)

# Current schema version - increment when migrations are added
CURRENT_SCHEMA_VERSION = 1


def init_db_if_needed(db_path: str | Path) -> None:
    """
    Initialize SQLite database with schema versioning.

    Creates the database file and its parent directory if needed, then applies
    any pending migrations. Idempotent: a database already at the current
    version is left untouched.

    Raises:
        sqlite3.Error: If database creation or migration fails
        ValueError: If the database schema is newer than this package supports
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA foreign_keys = ON")

        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL
            )
        """)
        conn.commit()

        current_version = get_schema_version(conn)

        if current_version < CURRENT_SCHEMA_VERSION:
            logger.info(
                f"Database schema upgrade needed: "
                f"v{current_version} -> v{CURRENT_SCHEMA_VERSION}"
            )
            apply_migrations(conn, current_version, CURRENT_SCHEMA_VERSION)
        elif current_version > CURRENT_SCHEMA_VERSION:
            raise ValueError(
                f"Database schema version {current_version} is newer than "
                f"expected {CURRENT_SCHEMA_VERSION}. Update your software or "
                f"use a different database file."
            )


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied schema version (0 for a fresh database)."""
    result = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    return result if result is not None else 0


def apply_migrations(
    conn: sqlite3.Connection, from_version: int, to_version: int
) -> None:
    """
    Apply schema migrations from one version to another.

    Each migration runs in its own transaction and is recorded in
    schema_version once committed.

    Raises:
        sqlite3.Error: If any migration SQL fails (transaction rolled back)
        ValueError: If from_version > to_version (downgrades not supported)
    """
    if from_version > to_version:
        raise ValueError(
            f"Cannot downgrade schema from v{from_version} to v{to_version}. "
            f"Downgrades are not supported. Use a database backup instead."
        )

    for target_version in range(from_version + 1, to_version + 1):
        logger.info(f"Applying migration to schema version {target_version}")

        try:
            conn.execute("BEGIN")

            if target_version == 1:
                _migrate_to_v1(conn)
            else:
                raise ValueError(f"No migration defined for version {target_version}")

            timestamp = utc_timestamp()
            conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (target_version, timestamp),
            )
            conn.commit()
            logger.info(f"Migrated to schema version {target_version} at {timestamp}")

        except Exception as e:
            conn.rollback()
            logger.error(
                f"Migration to version {target_version} failed: {e}", exc_info=True
            )
            raise sqlite3.Error(
                f"Failed to migrate database to version {target_version}: {e}"
            ) from e


def _migrate_to_v1(conn: sqlite3.Connection) -> None:
    """
    Create the initial scan tables and indexes.

    Do NOT call directly - use apply_migrations() instead.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS scans (
            scan_id TEXT PRIMARY KEY,
            requester_id TEXT NOT NULL,
            brand_name TEXT NOT NULL,
            topic TEXT NOT NULL,
            started_at TEXT NOT NULL,
            completed_at TEXT NOT NULL,
            avg_position REAL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS scan_results (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            scan_id TEXT NOT NULL,
            provider_name TEXT NOT NULL,
            query TEXT NOT NULL,
            brand_mentioned INTEGER NOT NULL,
            position INTEGER,
            confidence REAL NOT NULL,
            answer_text TEXT NOT NULL,
            context_snippet TEXT,
            sources_json TEXT NOT NULL,
            duration_ms INTEGER NOT NULL,
            UNIQUE(scan_id, provider_name),
            FOREIGN KEY (scan_id) REFERENCES scans(scan_id)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS keyword_metrics (
            requester_id TEXT NOT NULL,
            brand_name TEXT NOT NULL,
            topic TEXT NOT NULL,
            avg_position REAL,
            chatgpt_position INTEGER,
            perplexity_position INTEGER,
            gemini_position INTEGER,
            previous_avg_position REAL,
            position_change REAL,
            scan_count INTEGER NOT NULL DEFAULT 0,
            last_scan_at TEXT NOT NULL,
            PRIMARY KEY (requester_id, brand_name, topic)
        )
    """)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_scans_requester "
        "ON scans(requester_id, brand_name)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_scan_results_provider "
        "ON scan_results(provider_name, brand_mentioned)"
    )


def insert_scan(
    conn: sqlite3.Connection,
    scan_id: str,
    requester_id: str,
    brand_name: str,
    topic: str,
    started_at: str,
    completed_at: str,
    avg_position: float | None,
) -> None:
    """
    Insert one scan batch header.

    Raises:
        sqlite3.IntegrityError: If scan_id already exists
    """
    conn.execute(
        """
        INSERT INTO scans (
            scan_id, requester_id, brand_name, topic,
            started_at, completed_at, avg_position
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (scan_id, requester_id, brand_name, topic, started_at, completed_at, avg_position),
    )


def insert_scan_result(
    conn: sqlite3.Connection,
    scan_id: str,
    provider_name: str,
    query: str,
    brand_mentioned: bool,
    position: int | None,
    confidence: float,
    answer_text: str,
    context_snippet: str | None,
    sources: list[dict[str, Any]],
    duration_ms: int,
) -> None:
    """
    Insert one provider result.

    Args:
        sources: Source references as plain dicts (url, domain, title,
            observed_date), stored as a JSON array
    """
    conn.execute(
        """
        INSERT INTO scan_results (
            scan_id, provider_name, query, brand_mentioned, position,
            confidence, answer_text, context_snippet, sources_json, duration_ms
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            scan_id,
            provider_name,
            query,
            1 if brand_mentioned else 0,
            position,
            confidence,
            answer_text,
            context_snippet,
            json.dumps(sources),
            duration_ms,
        ),
    )
    logger.debug(f"Inserted scan result: scan_id={scan_id}, provider={provider_name}")


def upsert_keyword_metrics(
    conn: sqlite3.Connection,
    requester_id: str,
    brand_name: str,
    topic: str,
    avg_position: float | None,
    per_provider_position: dict[str, int | None],
    scanned_at: str,
) -> None:
    """
    Update the rolling visibility record for (requester, brand, topic).

    The previous avg_position moves to previous_avg_position and
    position_change is new minus previous when both exist. scan_count grows
    by one per scan.
    """
    row = conn.execute(
        """
        SELECT avg_position, scan_count FROM keyword_metrics
        WHERE requester_id = ? AND brand_name = ? AND topic = ?
        """,
        (requester_id, brand_name, topic),
    ).fetchone()

    previous_avg = row[0] if row else None
    scan_count = (row[1] if row else 0) + 1
    position_change = (
        avg_position - previous_avg
        if avg_position is not None and previous_avg is not None
        else None
    )

    conn.execute(
        """
        INSERT INTO keyword_metrics (
            requester_id, brand_name, topic, avg_position,
            chatgpt_position, perplexity_position, gemini_position,
            previous_avg_position, position_change, scan_count, last_scan_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(requester_id, brand_name, topic) DO UPDATE SET
            avg_position = excluded.avg_position,
            chatgpt_position = excluded.chatgpt_position,
            perplexity_position = excluded.perplexity_position,
            gemini_position = excluded.gemini_position,
            previous_avg_position = excluded.previous_avg_position,
            position_change = excluded.position_change,
            scan_count = excluded.scan_count,
            last_scan_at = excluded.last_scan_at
        """,
        (
            requester_id,
            brand_name,
            topic,
            avg_position,
            per_provider_position.get("chatgpt"),
            per_provider_position.get("perplexity"),
            per_provider_position.get("gemini"),
            previous_avg,
            position_change,
            scan_count,
            scanned_at,
        ),
    )


def get_keyword_metrics(
    conn: sqlite3.Connection, requester_id: str, brand_name: str, topic: str
) -> dict | None:
    """Return the keyword_metrics row as a dict, or None if never scanned."""
    conn.row_factory = sqlite3.Row
    try:
        row = conn.execute(
            """
            SELECT * FROM keyword_metrics
            WHERE requester_id = ? AND brand_name = ? AND topic = ?
            """,
            (requester_id, brand_name, topic),
        ).fetchone()
    finally:
        conn.row_factory = None
    return dict(row) if row else None


def get_scan_results(conn: sqlite3.Connection, scan_id: str) -> list[dict]:
    """Return the stored results of a scan, sources decoded, in insertion order."""
    conn.row_factory = sqlite3.Row
    try:
        rows = conn.execute(
            "SELECT * FROM scan_results WHERE scan_id = ? ORDER BY id",
            (scan_id,),
        ).fetchall()
    finally:
        conn.row_factory = None

    results = []
    for row in rows:
        result = dict(row)
        result["brand_mentioned"] = bool(result["brand_mentioned"])
        result["sources"] = json.loads(result.pop("sources_json"))
        results.append(result)
    return results
