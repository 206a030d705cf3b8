from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterator

from resumate.core.config import settings

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "owner_id",
    "file_name",
    "file_url",
    "resume_path",
    "company_name",
    "job_title",
    "job_description",
    "feedback",
    "rating",
    "created_at",
    "updated_at",
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore:
    """SQLite persistence for resume records, upserted by the pre-generated id."""

    def __init__(
        self,
        db_path: str,
        *,
        job_description_max_chars: int | None = None,
        feedback_max_chars: int | None = None,
    ):
        self._db_path = db_path
        self._job_description_max_chars = job_description_max_chars or settings.job_description_max_chars
        self._feedback_max_chars = feedback_max_chars or settings.feedback_max_chars
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS resumes (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_url TEXT NOT NULL,
                    resume_path TEXT NOT NULL,
                    company_name TEXT,
                    job_title TEXT NOT NULL,
                    job_description TEXT,
                    feedback TEXT,
                    rating INTEGER CHECK (rating IS NULL OR (rating BETWEEN 1 AND 10)),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_resumes_owner_created
                ON resumes (owner_id, created_at);
                """
            )
            self._conn = conn
            return conn

    def init(self) -> None:
        self._get_connection()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _cap_job_description(self, value: str | None) -> str | None:
        if not value:
            return None
        if len(value) > self._job_description_max_chars:
            return value[: self._job_description_max_chars] + "..."
        return value

    def _serialize_feedback(self, value: Any) -> str | None:
        if value is None:
            return None
        serialized = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        if len(serialized) > self._feedback_max_chars:
            logger.warning(
                "record_store_feedback_truncated length=%s cap=%s",
                len(serialized),
                self._feedback_max_chars,
            )
            serialized = serialized[: self._feedback_max_chars]
        return serialized

    def upsert(self, record: dict[str, Any]) -> None:
        row = {column: record.get(column) for column in _COLUMNS}
        if not row["id"] or not row["owner_id"]:
            raise ValueError("Record id and owner_id are required.")
        now = utc_now_iso()
        row["created_at"] = row["created_at"] or now
        row["updated_at"] = row["updated_at"] or now
        row["company_name"] = row["company_name"] or None
        row["job_description"] = self._cap_job_description(row["job_description"])
        row["feedback"] = self._serialize_feedback(row["feedback"])

        conn = self._get_connection()
        with self._lock:
            conn.execute(
                """
                INSERT INTO resumes (
                    id, owner_id, file_name, file_url, resume_path, company_name,
                    job_title, job_description, feedback, rating, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    file_name = excluded.file_name,
                    file_url = excluded.file_url,
                    resume_path = excluded.resume_path,
                    company_name = excluded.company_name,
                    job_title = excluded.job_title,
                    job_description = excluded.job_description,
                    feedback = excluded.feedback,
                    rating = excluded.rating,
                    updated_at = excluded.updated_at
                WHERE resumes.owner_id = excluded.owner_id
                """,
                tuple(row[column] for column in _COLUMNS),
            )

    def get(self, record_id: str) -> dict[str, Any] | None:
        if not record_id:
            return None
        conn = self._get_connection()
        with self._lock:
            cur = conn.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM resumes WHERE id = ?",
                (record_id,),
            )
            row = cur.fetchone()
        return dict(zip(_COLUMNS, row)) if row else None

    def list_by_owner(self, owner_id: str) -> list[dict[str, Any]]:
        conn = self._get_connection()
        with self._lock:
            cur = conn.execute(
                f"""
                SELECT {', '.join(_COLUMNS)} FROM resumes
                WHERE owner_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (owner_id,),
            )
            rows = cur.fetchall()
        return [dict(zip(_COLUMNS, row)) for row in rows]

    def iter_records(self, owner_id: str | None = None) -> Iterator[dict[str, Any]]:
        if owner_id:
            yield from self.list_by_owner(owner_id)
            return
        conn = self._get_connection()
        with self._lock:
            rows = conn.execute(f"SELECT {', '.join(_COLUMNS)} FROM resumes ORDER BY created_at DESC").fetchall()
        for row in rows:
            yield dict(zip(_COLUMNS, row))

    def delete_by_owner(self, owner_id: str) -> int:
        conn = self._get_connection()
        with self._lock:
            cur = conn.execute("DELETE FROM resumes WHERE owner_id = ?", (owner_id,))
        return int(cur.rowcount or 0)


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    return RecordStore(settings.records_db_path)
