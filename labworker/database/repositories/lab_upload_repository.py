from enum import Enum
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from labworker.database.connection import get_connection
from labworker.database.models import JobStatus, ProcessingStage, UploadJob
from labworker.processor.exceptions import (
    DocumentNotFoundError,
    JobAlreadyProcessingError,
    JobNotPendingError,
)

_JOB_COLUMNS = """
    id, user_id, filename, storage_path, storage_disk, file_size,
    skip_verification, status, processing_stage, page_count,
    current_page, total_pages, error_message, started_at, completed_at,
    created_at
"""

_UPDATABLE_COLUMNS = frozenset({
    "status",
    "processing_stage",
    "page_count",
    "current_page",
    "total_pages",
    "extracted_data",
    "extraction_confidence",
    "verification_status",
    "corrections",
    "matched_count",
    "unmatched_count",
    "error_message",
    "started_at",
    "completed_at",
})

_JSON_COLUMNS = frozenset({"extracted_data", "corrections"})

# Sentinel for timestamp columns that should be stamped by the database clock.
NOW = object()


class LabUploadRepository:
    """Database operations for the lab_uploads table (the job state store)."""

    def find_next_pending_id(self, conn: psycopg.Connection[Any]) -> int | None:
        """Return the oldest pending upload not locked by another worker."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id
                FROM lab_uploads
                WHERE status = 'pending'
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()
        conn.commit()
        return None if row is None else int(row[0])

    def begin_processing(self, job_id: int) -> UploadJob:
        """Move a pending upload to processing, clearing prior error and progress.

        The transition is a single conditional UPDATE, so two concurrent
        triggers for the same upload cannot both win.

        Raises:
            DocumentNotFoundError: if the upload does not exist.
            JobAlreadyProcessingError: if the upload is already processing.
            JobNotPendingError: if the upload is terminal and was not reset.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL(
                        """
                        UPDATE lab_uploads
                        SET status = 'processing',
                            processing_stage = %s,
                            error_message = NULL,
                            current_page = NULL,
                            total_pages = NULL,
                            started_at = NOW(),
                            completed_at = NULL
                        WHERE id = %s AND status = 'pending'
                        RETURNING {columns}
                        """
                    ).format(columns=sql.SQL(_JOB_COLUMNS)),
                    (ProcessingStage.FETCHING_DOCUMENT.value, job_id),
                )
                row = cur.fetchone()
            conn.commit()

        if row is not None:
            return _row_to_job(row)

        existing = self.find_by_id(job_id)
        if existing is None:
            raise DocumentNotFoundError(f"Upload {job_id} not found")
        if existing.status == JobStatus.PROCESSING:
            raise JobAlreadyProcessingError(f"Upload {job_id} is already being processed")
        raise JobNotPendingError(
            f"Upload {job_id} is {existing.status.value}; reset it before reprocessing"
        )

    def update_status(self, job_id: int, **fields: object) -> None:
        """Persist a partial set of status/progress/result columns.

        Enum values are stored by value, dict/list values for JSON columns as
        Jsonb, and the NOW sentinel as the database clock.

        Raises:
            ValueError: if a field is not an updatable column.
            DocumentNotFoundError: if the upload does not exist.
        """
        if not fields:
            return
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update lab_uploads columns: {sorted(unknown)}")

        assignments: list[sql.Composable] = []
        params: list[object] = []
        for column, value in fields.items():
            if value is NOW:
                assignments.append(sql.SQL("{} = NOW()").format(sql.Identifier(column)))
                continue
            assignments.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(_adapt_value(column, value))
        params.append(job_id)

        query = sql.SQL("UPDATE lab_uploads SET {} WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Upload {job_id} not found")
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark an upload as terminally failed."""
        self.update_status(
            job_id,
            status=JobStatus.FAILED,
            processing_stage=None,
            error_message=error,
            completed_at=NOW,
        )

    def reset(self, job_id: int) -> None:
        """Return a terminal upload to pending and clear its previous result.

        Raises:
            DocumentNotFoundError: if the upload does not exist.
            JobAlreadyProcessingError: if the upload is currently processing.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE lab_uploads
                    SET status = 'pending',
                        processing_stage = NULL,
                        current_page = NULL,
                        total_pages = NULL,
                        extracted_data = NULL,
                        extraction_confidence = NULL,
                        verification_status = NULL,
                        corrections = NULL,
                        matched_count = NULL,
                        unmatched_count = NULL,
                        error_message = NULL,
                        started_at = NULL,
                        completed_at = NULL
                    WHERE id = %s AND status <> 'processing'
                    """,
                    (job_id,),
                )
                updated = cur.rowcount
            conn.commit()

        if updated == 0:
            if self.find_by_id(job_id) is None:
                raise DocumentNotFoundError(f"Upload {job_id} not found")
            raise JobAlreadyProcessingError(f"Upload {job_id} is being processed")

    def find_by_id(self, job_id: int) -> UploadJob | None:
        """Find an upload by ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL("SELECT {columns} FROM lab_uploads WHERE id = %s").format(
                        columns=sql.SQL(_JOB_COLUMNS)
                    ),
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _row_to_job(row)

    def get_profile_gender(self, user_id: int) -> str | None:
        """Fetch the gender stored on the user's profile, lowercased.

        Returns None if the user has no profile or no gender set.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT gender FROM user_profiles WHERE user_id = %s",
                    (user_id,),
                )
                row = cur.fetchone()

        if row is None or row[0] is None:
            return None
        return str(row[0]).strip().lower() or None


def _adapt_value(column: str, value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if column in _JSON_COLUMNS and value is not None:
        return Jsonb(value)
    return value


def _row_to_job(row: dict[str, Any]) -> UploadJob:
    stage = row.get("processing_stage")
    return UploadJob(
        id=row["id"],
        user_id=row["user_id"],
        filename=row["filename"],
        storage_path=row["storage_path"],
        storage_disk=row["storage_disk"],
        file_size=row["file_size"],
        skip_verification=bool(row["skip_verification"]),
        status=JobStatus(row["status"]),
        processing_stage=ProcessingStage(stage) if stage else None,
        page_count=row.get("page_count"),
        current_page=row.get("current_page"),
        total_pages=row.get("total_pages"),
        error_message=row.get("error_message"),
        started_at=row.get("started_at"),
        completed_at=row.get("completed_at"),
        created_at=row.get("created_at"),
    )
