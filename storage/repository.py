import datetime as dt
import sqlite3
from dataclasses import replace
from typing import Optional

from core import JOB_STATUSES, ConcurrentUpdateError, DigestPreview, Highlight, ImportJob, ReviewState
from core.timeutil import parse_timestamp


def _optional_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    return parse_timestamp(value) if value else None


def _utc_iso(value: Optional[dt.datetime]) -> Optional[str]:
    # Full precision, fixed width and UTC, so ORDER BY on the text column follows time order.
    return parse_timestamp(value).isoformat(timespec="microseconds") if value is not None else None


def join_tags(tags) -> str:
    return ",".join(t.strip() for t in tags if t and t.strip())


def split_tags(raw: str) -> tuple[str, ...]:
    return tuple(t.strip() for t in (raw or "").split(",") if t.strip())


def row_to_highlight(row: sqlite3.Row) -> Highlight:
    return Highlight(
        id=row["id"],
        user_id=row["user_id"],
        source=row["source"],
        source_title=row["source_title"] or "",
        author=row["author"] or "",
        text=row["text"],
        location=row["location"] or "",
        captured_at=parse_timestamp(row["captured_at"]),
        tags=split_tags(row["tags"]),
        review=ReviewState(
            ease_factor=row["ease_factor"],
            interval_days=row["interval_days"],
            mastery_score=row["mastery_score"],
            review_count=row["review_count"],
            last_reviewed_at=_optional_timestamp(row["last_reviewed_at"]),
            next_review_at=parse_timestamp(row["next_review_at"]),
        ),
        version=row["version"],
    )


def row_to_job(row: sqlite3.Row) -> ImportJob:
    return ImportJob(
        id=row["id"],
        user_id=row["user_id"],
        source=row["source"],
        status=row["status"],
        submitted_at=parse_timestamp(row["submitted_at"]),
        processed_at=_optional_timestamp(row["processed_at"]),
        failure_reason=row["failure_reason"],
    )


def row_to_digest(row: sqlite3.Row) -> DigestPreview:
    return DigestPreview(
        id=row["id"],
        user_id=row["user_id"],
        scheduled_for=parse_timestamp(row["scheduled_for"]),
        highlight_count=row["highlight_count"],
        recently_added_count=row["recently_added_count"],
    )


class SQLiteHighlightRepository:
    """Repository for Highlight persistence in SQLite."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create_many(self, highlights: list[Highlight]) -> list[Highlight]:
        """Insert highlights in one transaction and return them with ids."""
        created = []
        with self.conn:
            for h in highlights:
                cursor = self.conn.execute(
                    """
                    INSERT INTO highlights (
                        user_id, source, source_title, author, text, location, tags, captured_at,
                        last_reviewed_at, next_review_at, review_count, ease_factor, interval_days,
                        mastery_score, version
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
                    """,
                    (
                        h.user_id,
                        h.source,
                        h.source_title,
                        h.author,
                        h.text.strip(),
                        h.location,
                        join_tags(h.tags),
                        _utc_iso(h.captured_at),
                        _utc_iso(h.review.last_reviewed_at),
                        _utc_iso(h.review.next_review_at),
                        h.review.review_count,
                        h.review.ease_factor,
                        h.review.interval_days,
                        h.review.mastery_score,
                    ),
                )
                created.append(replace(h, id=cursor.lastrowid, text=h.text.strip(), version=0))
        return created

    def get(self, highlight_id: int) -> Optional[Highlight]:
        row = self.conn.execute(
            "SELECT * FROM highlights WHERE id = ?", (highlight_id,)
        ).fetchone()
        if row:
            return row_to_highlight(row)
        return None

    def list_by_user(self, user_id: str) -> list[Highlight]:
        rows = self.conn.execute(
            "SELECT * FROM highlights WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [row_to_highlight(row) for row in rows]

    def save_review_state(self, highlight: Highlight, state: ReviewState) -> Highlight:
        """Write a new review state if nobody else has since the highlight was read."""
        with self.conn:
            cursor = self.conn.execute(
                """
                UPDATE highlights
                SET review_count = ?, ease_factor = ?, interval_days = ?, mastery_score = ?,
                    last_reviewed_at = ?, next_review_at = ?, version = version + 1
                WHERE id = ? AND version = ?
                """,
                (
                    state.review_count,
                    state.ease_factor,
                    state.interval_days,
                    state.mastery_score,
                    _utc_iso(state.last_reviewed_at),
                    _utc_iso(state.next_review_at),
                    highlight.id,
                    highlight.version,
                ),
            )
        if cursor.rowcount == 0:
            raise ConcurrentUpdateError(highlight.id)
        return replace(highlight, review=state, version=highlight.version + 1)

    def delete(self, highlight_id: int) -> bool:
        with self.conn:
            cursor = self.conn.execute("DELETE FROM highlights WHERE id = ?", (highlight_id,))
        return cursor.rowcount > 0


class SQLiteImportJobRepository:
    """Repository for import job bookkeeping in SQLite."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create(self, user_id: str, source: str, submitted_at: dt.datetime) -> ImportJob:
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO import_jobs (user_id, source, status, submitted_at) VALUES (?, ?, 'processing', ?)",
                (user_id, source, _utc_iso(submitted_at)),
            )
        return ImportJob(id=cursor.lastrowid, user_id=user_id, source=source,
                         status="processing", submitted_at=parse_timestamp(submitted_at))

    def update_status(self, job_id: int, status: str, processed_at: Optional[dt.datetime] = None,
                      failure_reason: Optional[str] = None) -> Optional[ImportJob]:
        if status not in JOB_STATUSES:
            raise ValueError(f"Unknown import job status: {status!r}")
        with self.conn:
            self.conn.execute(
                "UPDATE import_jobs SET status = ?, processed_at = ?, failure_reason = ? WHERE id = ?",
                (status, _utc_iso(processed_at), failure_reason, job_id),
            )
        row = self.conn.execute("SELECT * FROM import_jobs WHERE id = ?", (job_id,)).fetchone()
        return row_to_job(row) if row else None

    def list_by_user(self, user_id: str) -> list[ImportJob]:
        rows = self.conn.execute(
            "SELECT * FROM import_jobs WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [row_to_job(row) for row in rows]


class SQLiteDigestRepository:
    """Repository for scheduled digests in SQLite."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def schedule(self, user_id: str, scheduled_for: dt.datetime, highlight_count: int,
                 recently_added_count: int) -> DigestPreview:
        with self.conn:
            cursor = self.conn.execute(
                """
                INSERT INTO digests (user_id, scheduled_for, highlight_count, recently_added_count)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, _utc_iso(scheduled_for), highlight_count, recently_added_count),
            )
        return DigestPreview(
            id=cursor.lastrowid,
            user_id=user_id,
            scheduled_for=parse_timestamp(scheduled_for),
            highlight_count=highlight_count,
            recently_added_count=recently_added_count,
        )

    def latest_for_user(self, user_id: str) -> Optional[DigestPreview]:
        row = self.conn.execute(
            "SELECT * FROM digests WHERE user_id = ? ORDER BY scheduled_for DESC, id DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        return row_to_digest(row) if row else None
