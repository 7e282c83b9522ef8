import datetime as dt
import unittest

from core import Highlight, ReviewState
from scheduler import select_due

UTC = dt.timezone.utc
NOW = dt.datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def make_highlight(id, due_in_days, captured_days_ago=10, mastery=0.5):
    return Highlight(
        id=id,
        user_id="u1",
        text=f"Highlight {id}",
        source_title="Book",
        captured_at=NOW - dt.timedelta(days=captured_days_ago),
        review=ReviewState(
            mastery_score=mastery,
            next_review_at=NOW + dt.timedelta(days=due_in_days),
        ),
    )


class TestSelectDue(unittest.TestCase):
    """Tests for review queue selection."""

    def test_only_due_highlights(self):
        items = select_due([make_highlight(1, -1), make_highlight(2, 1), make_highlight(3, 0)], NOW)

        self.assertEqual([i.highlight_id for i in items], [1, 3])

    def test_most_overdue_first(self):
        items = select_due([make_highlight(1, -1), make_highlight(2, -5), make_highlight(3, -3)], NOW)

        self.assertEqual([i.highlight_id for i in items], [2, 3, 1])

    def test_ties_prefer_recent_captures(self):
        highlights = [
            make_highlight(1, -2, captured_days_ago=30),
            make_highlight(2, -2, captured_days_ago=3),
            make_highlight(3, -2, captured_days_ago=12),
        ]

        items = select_due(highlights, NOW)

        self.assertEqual([i.highlight_id for i in items], [2, 3, 1])

    def test_recommended_action(self):
        highlights = [
            make_highlight(1, -1, mastery=0.81),
            make_highlight(2, -1, mastery=0.8),
            make_highlight(3, -1, mastery=0.1),
        ]

        actions = {i.highlight_id: i.recommended_action for i in select_due(highlights, NOW)}

        self.assertEqual(actions, {1: "graduate", 2: "review", 3: "review"})

    def test_item_fields(self):
        [item] = select_due([make_highlight(7, -1, mastery=0.3)], NOW)

        self.assertEqual(item.highlight_id, 7)
        self.assertEqual(item.text, "Highlight 7")
        self.assertEqual(item.source_title, "Book")
        self.assertEqual(item.due_at, NOW - dt.timedelta(days=1))
        self.assertEqual(item.mastery_score, 0.3)

    def test_limit(self):
        highlights = [make_highlight(i, -i) for i in range(1, 6)]

        items = select_due(highlights, NOW, limit=2)

        self.assertEqual([i.highlight_id for i in items], [5, 4])

    def test_empty(self):
        self.assertEqual(select_due([], NOW), [])


if __name__ == "__main__":
    unittest.main()
