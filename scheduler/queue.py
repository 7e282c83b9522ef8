import datetime as dt
from typing import Iterable, Optional

from core import Highlight, QueueItem

GRADUATE_MASTERY = 0.8


def _due_at(highlight: Highlight, now: dt.datetime) -> dt.datetime:
    # A highlight that was never scheduled is due immediately.
    if highlight.review.next_review_at is not None:
        return highlight.review.next_review_at
    return min(highlight.captured_at or now, now)


def recommended_action(highlight: Highlight) -> str:
    return "graduate" if highlight.review.mastery_score > GRADUATE_MASTERY else "review"


def select_due(highlights: Iterable[Highlight], now: dt.datetime,
               limit: Optional[int] = None) -> list[QueueItem]:
    """Highlights due at `now`, most overdue first.

    Ties on the due time put the most recently captured highlight first.
    """
    due = [h for h in highlights if _due_at(h, now) <= now]
    # Two stable sorts: secondary key first.
    due.sort(key=lambda h: h.captured_at or now, reverse=True)
    due.sort(key=lambda h: _due_at(h, now))
    if limit:
        due = due[:limit]
    return [
        QueueItem(
            highlight_id=h.id,
            text=h.text,
            source_title=h.source_title,
            due_at=_due_at(h, now),
            mastery_score=h.review.mastery_score,
            recommended_action=recommended_action(h),
        )
        for h in due
    ]
