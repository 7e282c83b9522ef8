# Application services
from .container import Services, build_services, memory_services, sqlite_services
from .dashboard_service import DashboardService, build_metrics
from .demo import seed_demo
from .digest_service import DigestService
from .import_service import ImportResult, ImportService
from .note_service import NoteService
from .review_service import ReviewService

__all__ = [
    "Services",
    "build_services",
    "memory_services",
    "sqlite_services",
    "DashboardService",
    "build_metrics",
    "seed_demo",
    "DigestService",
    "ImportResult",
    "ImportService",
    "NoteService",
    "ReviewService",
]
