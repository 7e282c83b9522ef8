"""Dict-backed repositories.

Each instance owns its own maps, so tests and demo sessions never share state.
Records are immutable dataclasses and can be handed out without copying.
"""
import datetime as dt
import itertools
import threading
from dataclasses import replace
from typing import Optional

from core import JOB_STATUSES, ConcurrentUpdateError, DigestPreview, Highlight, ImportJob, ReviewState


class InMemoryHighlightRepository:

    def __init__(self):
        self._highlights: dict[int, Highlight] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_many(self, highlights: list[Highlight]) -> list[Highlight]:
        created = []
        with self._lock:
            for h in highlights:
                record = replace(h, id=next(self._ids), text=h.text.strip(), version=0)
                self._highlights[record.id] = record
                created.append(record)
        return created

    def get(self, highlight_id: int) -> Optional[Highlight]:
        with self._lock:
            return self._highlights.get(highlight_id)

    def list_by_user(self, user_id: str) -> list[Highlight]:
        with self._lock:
            return [h for h in self._highlights.values() if h.user_id == user_id]

    def save_review_state(self, highlight: Highlight, state: ReviewState) -> Highlight:
        with self._lock:
            current = self._highlights.get(highlight.id)
            if current is None or current.version != highlight.version:
                raise ConcurrentUpdateError(highlight.id)
            updated = replace(current, review=state, version=current.version + 1)
            self._highlights[highlight.id] = updated
        return updated

    def delete(self, highlight_id: int) -> bool:
        with self._lock:
            return self._highlights.pop(highlight_id, None) is not None


class InMemoryImportJobRepository:

    def __init__(self):
        self._jobs: dict[int, ImportJob] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, user_id: str, source: str, submitted_at: dt.datetime) -> ImportJob:
        with self._lock:
            job = ImportJob(id=next(self._ids), user_id=user_id, source=source,
                            status="processing", submitted_at=submitted_at)
            self._jobs[job.id] = job
        return job

    def update_status(self, job_id: int, status: str, processed_at: Optional[dt.datetime] = None,
                      failure_reason: Optional[str] = None) -> Optional[ImportJob]:
        if status not in JOB_STATUSES:
            raise ValueError(f"Unknown import job status: {status!r}")
        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is None:
                return None
            updated = replace(existing, status=status, processed_at=processed_at,
                              failure_reason=failure_reason)
            self._jobs[job_id] = updated
        return updated

    def list_by_user(self, user_id: str) -> list[ImportJob]:
        with self._lock:
            return [job for job in self._jobs.values() if job.user_id == user_id]


class InMemoryDigestRepository:

    def __init__(self):
        self._digests: dict[int, DigestPreview] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def schedule(self, user_id: str, scheduled_for: dt.datetime, highlight_count: int,
                 recently_added_count: int) -> DigestPreview:
        with self._lock:
            digest = DigestPreview(
                id=next(self._ids),
                user_id=user_id,
                scheduled_for=scheduled_for,
                highlight_count=highlight_count,
                recently_added_count=recently_added_count,
            )
            self._digests[digest.id] = digest
        return digest

    def latest_for_user(self, user_id: str) -> Optional[DigestPreview]:
        with self._lock:
            candidates = [d for d in self._digests.values() if d.user_id == user_id]
        if not candidates:
            return None
        return max(candidates, key=lambda d: (d.scheduled_for, d.id))
