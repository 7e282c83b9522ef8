import datetime as dt
import logging

from .container import Services
from .validation import parse_import_payload

logger = logging.getLogger(__name__)

DEMO_ENTRIES = [
    {
        "text": "Complex ideas deserve repeated exposure; schedule time to revisit notes that mattered most.",
        "source_title": "Learning in the Digital Age",
        "author": "A. Lerner",
        "days_ago": 6,
        "tags": ["learning", "workflow"],
    },
    {
        "text": "Knowledge compounds when you resurface highlights just before you forget them.",
        "source_title": "Spaced Repetition Playbook",
        "author": "N. Ortega",
        "days_ago": 3,
        "tags": ["memory", "focus"],
    },
    {
        "text": "Summaries are helpful, but the original words often trigger deeper context and emotion.",
        "source_title": "Reading for Remembering",
        "author": "L. Chambers",
        "days_ago": 1,
        "tags": ["reading", "mindset"],
    },
]


def seed_demo(services: Services, user_id: str, now: dt.datetime) -> None:
    """Load sample highlights, one completed import and a digest two days out."""
    entries = [
        {
            "text": e["text"],
            "source_title": e["source_title"],
            "author": e["author"],
            "tags": e["tags"],
            "captured_at": (now - dt.timedelta(days=e["days_ago"])).isoformat(),
        }
        for e in DEMO_ENTRIES
    ]
    services.imports.process_import(
        user_id, parse_import_payload({"source": "kindle", "entries": entries}), now
    )
    services.digests.schedule(user_id, now + dt.timedelta(days=2))
    logger.info("Seeded demo data for %s", user_id)
