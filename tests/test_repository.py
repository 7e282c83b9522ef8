import datetime as dt
import tempfile
import threading
import unittest
from dataclasses import replace
from pathlib import Path

from core import ConcurrentUpdateError, Highlight, ReviewState
from storage import (
    InMemoryDigestRepository,
    InMemoryHighlightRepository,
    InMemoryImportJobRepository,
    SQLiteDigestRepository,
    SQLiteHighlightRepository,
    SQLiteImportJobRepository,
    connect,
)

UTC = dt.timezone.utc
NOW = dt.datetime(2024, 5, 1, 9, 30, tzinfo=UTC)


def make_highlight(text="Test highlight", user_id="u1", **kwargs) -> Highlight:
    defaults = dict(
        user_id=user_id,
        source="kindle",
        source_title="Test Source",
        author="Test Author",
        text=text,
        location="Location 12",
        captured_at=NOW - dt.timedelta(days=2),
        tags=("python", "memory"),
        review=ReviewState(
            ease_factor=2.15,
            interval_days=1,
            mastery_score=0.45,
            next_review_at=NOW + dt.timedelta(days=1),
        ),
    )
    defaults.update(kwargs)
    return Highlight(**defaults)


class RepositoryContract:
    """Behaviour every repository implementation must share."""

    def make_repositories(self):
        raise NotImplementedError

    def setUp(self):
        self.highlights, self.jobs, self.digests = self.make_repositories()

    def test_create_many_assigns_ids(self):
        created = self.highlights.create_many([make_highlight("First"), make_highlight("Second")])

        self.assertEqual(len(created), 2)
        self.assertNotEqual(created[0].id, created[1].id)
        self.assertTrue(all(h.id > 0 for h in created))
        self.assertTrue(all(h.version == 0 for h in created))

    def test_create_many_strips_text(self):
        [created] = self.highlights.create_many([make_highlight("  padded  ")])

        self.assertEqual(self.highlights.get(created.id).text, "padded")

    def test_get_round_trips_fields(self):
        [created] = self.highlights.create_many([make_highlight()])

        loaded = self.highlights.get(created.id)

        self.assertEqual(loaded.text, "Test highlight")
        self.assertEqual(loaded.source, "kindle")
        self.assertEqual(loaded.source_title, "Test Source")
        self.assertEqual(loaded.author, "Test Author")
        self.assertEqual(loaded.location, "Location 12")
        self.assertEqual(loaded.tags, ("python", "memory"))
        self.assertEqual(loaded.captured_at, NOW - dt.timedelta(days=2))
        self.assertEqual(loaded.review, created.review)

    def test_get_not_found(self):
        self.assertIsNone(self.highlights.get(99999))

    def test_list_by_user(self):
        self.highlights.create_many([make_highlight("A"), make_highlight("B"), make_highlight("C", user_id="u2")])

        self.assertEqual(sorted(h.text for h in self.highlights.list_by_user("u1")), ["A", "B"])
        self.assertEqual([h.text for h in self.highlights.list_by_user("u2")], ["C"])
        self.assertEqual(self.highlights.list_by_user("nobody"), [])

    def test_save_review_state(self):
        [created] = self.highlights.create_many([make_highlight()])
        state = ReviewState(
            ease_factor=2.3,
            interval_days=6,
            mastery_score=0.35,
            review_count=2,
            last_reviewed_at=NOW,
            next_review_at=NOW + dt.timedelta(days=6),
        )

        updated = self.highlights.save_review_state(created, state)

        self.assertEqual(updated.review, state)
        self.assertEqual(updated.version, 1)
        loaded = self.highlights.get(created.id)
        self.assertEqual(loaded.review, state)
        self.assertEqual(loaded.version, 1)

    def test_stale_version_is_rejected(self):
        [created] = self.highlights.create_many([make_highlight()])
        state = replace(created.review, review_count=1, last_reviewed_at=NOW)
        self.highlights.save_review_state(created, state)

        with self.assertRaises(ConcurrentUpdateError):
            self.highlights.save_review_state(created, replace(state, review_count=2))

        self.assertEqual(self.highlights.get(created.id).review.review_count, 1)

    def test_delete(self):
        [created] = self.highlights.create_many([make_highlight()])

        self.assertTrue(self.highlights.delete(created.id))
        self.assertIsNone(self.highlights.get(created.id))
        self.assertFalse(self.highlights.delete(created.id))

    def test_import_job_lifecycle(self):
        job = self.jobs.create("u1", "kindle", NOW)
        self.assertEqual(job.status, "processing")
        self.assertEqual(job.submitted_at, NOW)

        done = self.jobs.update_status(job.id, "completed", NOW + dt.timedelta(minutes=1))

        self.assertEqual(done.status, "completed")
        self.assertEqual(done.processed_at, NOW + dt.timedelta(minutes=1))
        self.assertIsNone(done.failure_reason)
        self.assertEqual([j.status for j in self.jobs.list_by_user("u1")], ["completed"])

    def test_import_job_failure_reason(self):
        job = self.jobs.create("u1", "manual", NOW)

        failed = self.jobs.update_status(job.id, "failed", NOW, "disk full")

        self.assertEqual(failed.failure_reason, "disk full")

    def test_update_missing_job(self):
        self.assertIsNone(self.jobs.update_status(404, "completed", NOW))

    def test_unknown_job_status_is_rejected(self):
        job = self.jobs.create("u1", "kindle", NOW)

        with self.assertRaises(ValueError):
            self.jobs.update_status(job.id, "exploded", NOW)

        self.assertEqual([j.status for j in self.jobs.list_by_user("u1")], ["processing"])

    def test_import_jobs_by_user(self):
        self.jobs.create("u1", "kindle", NOW)
        self.jobs.create("u2", "manual", NOW)

        self.assertEqual([j.source for j in self.jobs.list_by_user("u2")], ["manual"])

    def test_latest_digest_is_by_schedule_time(self):
        later = self.digests.schedule("u1", NOW + dt.timedelta(days=7), 4, 1)
        self.digests.schedule("u1", NOW + dt.timedelta(days=2), 2, 0)
        self.digests.schedule("u2", NOW + dt.timedelta(days=30), 1, 0)

        latest = self.digests.latest_for_user("u1")

        self.assertEqual(latest.id, later.id)
        self.assertEqual(latest.scheduled_for, NOW + dt.timedelta(days=7))
        self.assertEqual(latest.highlight_count, 4)
        self.assertEqual(latest.recently_added_count, 1)

    def test_latest_digest_none(self):
        self.assertIsNone(self.digests.latest_for_user("u1"))


class TestInMemoryRepositories(RepositoryContract, unittest.TestCase):

    def make_repositories(self):
        return InMemoryHighlightRepository(), InMemoryImportJobRepository(), InMemoryDigestRepository()

    def test_instances_do_not_share_state(self):
        self.highlights.create_many([make_highlight()])

        self.assertEqual(InMemoryHighlightRepository().list_by_user("u1"), [])

    def test_concurrent_reads_see_whole_updates(self):
        [created] = self.highlights.create_many([make_highlight()])
        seen = []

        def writer():
            current = created
            for n in range(1, 201):
                current = self.highlights.save_review_state(current, replace(current.review, review_count=n))

        def reader():
            for _ in range(200):
                h = self.highlights.get(created.id)
                seen.append((h.version, h.review.review_count))

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertTrue(all(version == count for version, count in seen))
        self.assertEqual(self.highlights.get(created.id).version, 200)


class TestSQLiteRepositories(RepositoryContract, unittest.TestCase):

    def make_repositories(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.conn = connect(Path(self.tmp.name) / "nested" / "test.db")
        return (
            SQLiteHighlightRepository(self.conn),
            SQLiteImportJobRepository(self.conn),
            SQLiteDigestRepository(self.conn),
        )

    def tearDown(self):
        self.conn.close()
        self.tmp.cleanup()

    def test_timestamps_are_normalised_to_utc(self):
        plus_two = dt.timezone(dt.timedelta(hours=2))
        captured = dt.datetime(2024, 5, 1, 12, 0, tzinfo=plus_two)
        [created] = self.highlights.create_many([make_highlight(captured_at=captured)])

        row = self.conn.execute("SELECT captured_at FROM highlights WHERE id = ?", (created.id,)).fetchone()

        self.assertEqual(row["captured_at"], "2024-05-01T10:00:00.000000+00:00")
        self.assertEqual(self.highlights.get(created.id).captured_at, captured)

    def test_schema_has_review_columns(self):
        cols = {row["name"] for row in self.conn.execute("PRAGMA table_info(highlights)")}

        self.assertTrue({"ease_factor", "interval_days", "mastery_score", "version"} <= cols)

    def test_review_state_keeps_microseconds(self):
        now = NOW.replace(microsecond=750000)
        [created] = self.highlights.create_many([make_highlight()])
        state = ReviewState(review_count=1, last_reviewed_at=now, next_review_at=now + dt.timedelta(days=1))

        updated = self.highlights.save_review_state(created, state)

        self.assertEqual(self.highlights.get(created.id), updated)
        self.assertEqual(self.highlights.get(created.id).review.next_review_at, now + dt.timedelta(days=1))

    def test_data_survives_reconnect(self):
        [created] = self.highlights.create_many([make_highlight()])
        path = Path(self.tmp.name) / "nested" / "test.db"
        self.conn.close()

        self.conn = connect(path)

        self.assertEqual(SQLiteHighlightRepository(self.conn).get(created.id).text, "Test highlight")


if __name__ == "__main__":
    unittest.main()
