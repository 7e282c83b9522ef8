"""Wires repositories into the services that use them.

Repositories are chosen once, at construction, and shared by every service
in the bundle.
"""
import sqlite3
from dataclasses import dataclass

from scheduler import Scheduler, default_scheduler
from storage import (
    DigestRepository,
    HighlightRepository,
    ImportJobRepository,
    InMemoryDigestRepository,
    InMemoryHighlightRepository,
    InMemoryImportJobRepository,
    SQLiteDigestRepository,
    SQLiteHighlightRepository,
    SQLiteImportJobRepository,
)

from .dashboard_service import DashboardService
from .digest_service import DigestService
from .import_service import ImportService
from .note_service import NoteService
from .review_service import ReviewService


@dataclass
class Services:
    imports: ImportService
    notes: NoteService
    reviews: ReviewService
    digests: DigestService
    dashboard: DashboardService
    highlights: HighlightRepository
    import_jobs: ImportJobRepository


def build_services(highlights: HighlightRepository, jobs: ImportJobRepository,
                   digests: DigestRepository, scheduler: Scheduler = default_scheduler,
                   digest_lead_days: int = 7) -> Services:
    reviews = ReviewService(highlights, scheduler)
    digest_service = DigestService(highlights, digests)
    return Services(
        imports=ImportService(highlights, jobs, scheduler),
        notes=NoteService(highlights, scheduler),
        reviews=reviews,
        digests=digest_service,
        dashboard=DashboardService(highlights, jobs, reviews, digest_service, digest_lead_days),
        highlights=highlights,
        import_jobs=jobs,
    )


def sqlite_services(conn: sqlite3.Connection, **kwargs) -> Services:
    return build_services(
        SQLiteHighlightRepository(conn),
        SQLiteImportJobRepository(conn),
        SQLiteDigestRepository(conn),
        **kwargs,
    )


def memory_services(**kwargs) -> Services:
    return build_services(
        InMemoryHighlightRepository(),
        InMemoryImportJobRepository(),
        InMemoryDigestRepository(),
        **kwargs,
    )
