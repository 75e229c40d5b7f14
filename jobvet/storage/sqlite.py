"""
SQLite-based job storage with upserts keyed by the composite natural key.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from jobvet.models import (
    CanonicalJobRecord,
    CompositeKey,
    FeatureSet,
    now_utc,
    parse_date,
)

logger = logging.getLogger(__name__)


@dataclass
class StoredJob:
    """Most recent stored version of a posting plus its feature set, if any."""
    job_id: int
    record: CanonicalJobRecord
    first_seen_at: Optional[datetime]
    last_seen_at: Optional[datetime]
    features: Optional[FeatureSet] = None


class JobStore:
    """
    SQLite store for canonical records and their extracted features.
    """

    def __init__(self, db_path: str):
        """
        Initialize the database.

        Args:
            db_path: Path to SQLite database file (":memory:" for tests)
        """
        self.db_path = db_path
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (creating if needed)."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._lock:
            conn = self._get_conn()
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS jobs (
                    job_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    provider TEXT NOT NULL,
                    tenant TEXT NOT NULL,
                    external_id TEXT NOT NULL,

                    title TEXT,
                    company TEXT,
                    location TEXT,
                    url TEXT,

                    first_published TEXT,
                    updated_at TEXT,
                    requisition_id TEXT,

                    content TEXT,
                    raw_payload TEXT,  -- JSON
                    jsonld TEXT,  -- JSON array

                    fetch_info TEXT,  -- JSON
                    content_length INTEGER,
                    content_sha1 TEXT,
                    provenance TEXT,

                    first_seen_at TEXT NOT NULL,
                    last_seen_at TEXT NOT NULL,

                    UNIQUE (provider, tenant, external_id)
                );

                CREATE INDEX IF NOT EXISTS idx_jobs_sha1 ON jobs(content_sha1);
                CREATE INDEX IF NOT EXISTS idx_jobs_last_seen ON jobs(last_seen_at);

                CREATE TABLE IF NOT EXISTS job_features (
                    job_id INTEGER PRIMARY KEY,
                    salary_min REAL,
                    salary_mid REAL,
                    salary_max REAL,
                    currency TEXT,
                    comp_period TEXT,
                    time_type TEXT,
                    department TEXT,
                    salary_source TEXT,
                    extracted_at TEXT NOT NULL,
                    FOREIGN KEY (job_id) REFERENCES jobs(job_id)
                );
            """)
            conn.commit()

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def upsert_job(self, record: CanonicalJobRecord) -> int:
        """
        Insert or update a record under its composite key.

        Returns:
            The stable row id for the key (unchanged across updates).
        """
        now = now_utc().isoformat()
        d = record.to_dict()

        with self._lock:
            conn = self._get_conn()
            conn.execute("""
                INSERT INTO jobs (
                    provider, tenant, external_id,
                    title, company, location, url,
                    first_published, updated_at, requisition_id,
                    content, raw_payload, jsonld,
                    fetch_info, content_length, content_sha1, provenance,
                    first_seen_at, last_seen_at
                ) VALUES (
                    ?, ?, ?,
                    ?, ?, ?, ?,
                    ?, ?, ?,
                    ?, ?, ?,
                    ?, ?, ?, ?,
                    ?, ?
                )
                ON CONFLICT (provider, tenant, external_id) DO UPDATE SET
                    title = excluded.title,
                    company = excluded.company,
                    location = excluded.location,
                    url = excluded.url,
                    first_published = COALESCE(excluded.first_published, first_published),
                    updated_at = excluded.updated_at,
                    requisition_id = excluded.requisition_id,
                    content = excluded.content,
                    raw_payload = excluded.raw_payload,
                    jsonld = excluded.jsonld,
                    fetch_info = excluded.fetch_info,
                    content_length = excluded.content_length,
                    content_sha1 = excluded.content_sha1,
                    provenance = excluded.provenance,
                    last_seen_at = excluded.last_seen_at
            """, (
                record.provider, record.tenant, record.external_id,
                record.title, record.company, record.location, record.url,
                d["first_published"], d["updated_at"], record.requisition_id,
                record.content,
                json.dumps(record.raw_payload),
                json.dumps(record.jsonld),
                json.dumps(d["fetch"]),
                record.fingerprint.length_bytes,
                record.fingerprint.sha1,
                record.provenance.value,
                now, now,
            ))
            row = conn.execute(
                "SELECT job_id FROM jobs WHERE provider = ? AND tenant = ? AND external_id = ?",
                record.key,
            ).fetchone()
            conn.commit()

        logger.debug("Upserted %s as job %s", record.key, row["job_id"])
        return int(row["job_id"])

    def save_features(self, job_id: int, features: FeatureSet) -> None:
        """Replace the feature set stored for a job."""
        d = features.to_dict()
        with self._lock:
            conn = self._get_conn()
            conn.execute("""
                INSERT OR REPLACE INTO job_features (
                    job_id, salary_min, salary_mid, salary_max, currency,
                    comp_period, time_type, department, salary_source, extracted_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                job_id,
                d["salary_min"], d["salary_mid"], d["salary_max"], d["currency"],
                d["comp_period"], d["time_type"], d["department"], d["salary_source"],
                now_utc().isoformat(),
            ))
            conn.commit()

    def get_by_key(self, key: CompositeKey) -> Optional[StoredJob]:
        """Read the stored record (and features) for a composite key."""
        with self._lock:
            conn = self._get_conn()
            row = conn.execute("""
                SELECT j.*, f.job_id AS f_job_id, f.salary_min, f.salary_mid, f.salary_max,
                       f.currency, f.comp_period, f.time_type, f.department, f.salary_source
                FROM jobs j
                LEFT JOIN job_features f ON f.job_id = j.job_id
                WHERE j.provider = ? AND j.tenant = ? AND j.external_id = ?
            """, tuple(key)).fetchone()

        if row is None:
            return None
        return _row_to_stored(row)

    def count(self) -> int:
        with self._lock:
            row = self._get_conn().execute("SELECT COUNT(*) AS n FROM jobs").fetchone()
        return int(row["n"])


def _row_to_stored(row: sqlite3.Row) -> StoredJob:
    record = CanonicalJobRecord.from_dict({
        "provider": row["provider"],
        "tenant": row["tenant"],
        "external_id": row["external_id"],
        "title": row["title"],
        "company": row["company"],
        "location": row["location"],
        "url": row["url"],
        "first_published": row["first_published"],
        "updated_at": row["updated_at"],
        "requisition_id": row["requisition_id"],
        "content": row["content"],
        "raw_payload": json.loads(row["raw_payload"]) if row["raw_payload"] else {},
        "jsonld": json.loads(row["jsonld"]) if row["jsonld"] else [],
        "fetch": json.loads(row["fetch_info"]) if row["fetch_info"] else {},
        "fingerprint": {"length_bytes": row["content_length"], "sha1": row["content_sha1"]},
        "provenance": row["provenance"],
    })

    features = None
    if row["f_job_id"] is not None:
        features = FeatureSet.from_partial({
            k: row[k]
            for k in (
                "salary_min", "salary_mid", "salary_max", "currency",
                "comp_period", "time_type", "department", "salary_source",
            )
        })

    return StoredJob(
        job_id=int(row["job_id"]),
        record=record,
        first_seen_at=parse_date(row["first_seen_at"]),
        last_seen_at=parse_date(row["last_seen_at"]),
        features=features,
    )


__all__ = ["JobStore", "StoredJob"]
