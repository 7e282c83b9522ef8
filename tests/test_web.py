import datetime as dt
import json
import threading
import unittest
import urllib.error
import urllib.request
from http.server import ThreadingHTTPServer

from core import Highlight, ReviewState
from services import memory_services
from web.server import App, make_handler, to_jsonable

UTC = dt.timezone.utc
NOW = dt.datetime(2024, 6, 15, 9, 0, tzinfo=UTC)


class TestAPI(unittest.TestCase):
    """Exercises the JSON API against in-memory repositories."""

    def setUp(self):
        self.services = memory_services()
        app = App(services=self.services, user_id="u1", clock=lambda: NOW)
        self.server = ThreadingHTTPServer(("127.0.0.1", 0), make_handler(app))
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.base = f"http://127.0.0.1:{self.server.server_address[1]}"

    def tearDown(self):
        self.server.shutdown()
        self.server.server_close()
        self.thread.join()

    def request(self, method, path, payload=None, raw=None):
        data = raw if raw is not None else (json.dumps(payload).encode("utf-8") if payload is not None else None)
        req = urllib.request.Request(self.base + path, data=data, method=method)
        if data is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(req) as resp:
                return resp.status, json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            with exc:
                return exc.code, json.loads(exc.read().decode("utf-8"))

    def import_entries(self):
        payload = {
            "source": "kindle",
            "entries": [
                {"text": "Stale", "source_title": "Book", "captured_at": (NOW - dt.timedelta(days=20)).isoformat()},
                {"text": "Fresh", "source_title": "Book", "captured_at": NOW.isoformat(), "tags": "x, y"},
            ],
        }
        status, body = self.request("POST", "/api/imports", payload)
        self.assertEqual(status, 201)
        return body

    def test_import(self):
        body = self.import_entries()

        self.assertEqual(body["job"]["status"], "completed")
        self.assertEqual([h["text"] for h in body["highlights"]], ["Stale", "Fresh"])
        self.assertEqual(body["highlights"][1]["tags"], ["x", "y"])
        self.assertEqual(body["highlights"][1]["review"]["next_review_at"], "2024-06-16T09:00:00+00:00")

    def test_queue_and_review(self):
        stale_id = self.import_entries()["highlights"][0]["id"]

        status, body = self.request("GET", "/api/reviews")
        self.assertEqual(status, 200)
        self.assertEqual([i["highlight_id"] for i in body["queue"]], [stale_id])

        status, body = self.request("POST", "/api/reviews", {"highlight_id": stale_id, "rating": "good"})
        self.assertEqual(status, 200)
        self.assertEqual(body["review"]["review_count"], 1)
        self.assertEqual(body["review"]["last_reviewed_at"], "2024-06-15T09:00:00+00:00")
        self.assertEqual(body["version"], 1)

        status, body = self.request("GET", "/api/reviews")
        self.assertEqual(body["queue"], [])

    def test_invalid_rating(self):
        stale_id = self.import_entries()["highlights"][0]["id"]

        status, body = self.request("POST", "/api/reviews", {"highlight_id": stale_id, "rating": "meh"})

        self.assertEqual(status, 400)
        self.assertIn("meh", body["error"])
        self.assertEqual(self.services.highlights.get(stale_id).review.review_count, 0)

    def test_review_unknown_highlight(self):
        status, _ = self.request("POST", "/api/reviews", {"highlight_id": 404, "rating": "good"})

        self.assertEqual(status, 404)

    def test_bad_queue_limit(self):
        status, _ = self.request("GET", "/api/reviews?limit=zero")

        self.assertEqual(status, 400)

    def test_note(self):
        status, body = self.request("POST", "/api/notes", {"text": "Idea", "source_title": "Journal"})
        self.assertEqual(status, 201)
        self.assertEqual(body["source"], "manual")

        status, body = self.request("POST", "/api/notes", {"source_title": "Journal"})
        self.assertEqual(status, 400)
        self.assertIn("text", body["error"])

    def test_digest(self):
        self.import_entries()

        status, body = self.request("POST", "/api/digests", {"scheduled_for": "2024-06-15T21:00:00Z"})
        self.assertEqual(status, 201)
        self.assertEqual(body["highlight_count"], 1)
        self.assertEqual(body["recently_added_count"], 1)
        self.assertEqual(body["actions"][0], {"label": "View Digest", "href": f"/digests/{body['id']}"})

        status, latest = self.request("GET", "/api/digests")
        self.assertEqual(latest["digest"]["id"], body["id"])

    def test_dashboard(self):
        self.import_entries()

        status, body = self.request("GET", "/api/dashboard")

        self.assertEqual(status, 200)
        self.assertEqual(body["metrics"]["total_highlights"], 2)
        self.assertEqual(body["metrics"]["due_now"], 1)
        self.assertEqual(body["upcoming_digest"]["scheduled_for"], "2024-06-22T09:00:00+00:00")
        self.assertEqual(len(body["review_queue"]), 1)
        self.assertEqual(len(body["import_jobs"]), 1)

    def test_listing_endpoints(self):
        self.import_entries()

        _, highlights = self.request("GET", "/api/highlights")
        _, jobs = self.request("GET", "/api/imports")

        self.assertEqual(len(highlights["highlights"]), 2)
        self.assertEqual(jobs["jobs"][0]["source"], "kindle")

    def test_invalid_json(self):
        status, body = self.request("POST", "/api/imports", raw=b"{nope")

        self.assertEqual(status, 400)
        self.assertIn("Invalid JSON", body["error"])

    def test_unknown_route(self):
        self.assertEqual(self.request("GET", "/api/nothing")[0], 404)
        self.assertEqual(self.request("POST", "/api/nothing", {})[0], 404)

    def test_delete(self):
        stale_id = self.import_entries()["highlights"][0]["id"]

        status, body = self.request("DELETE", f"/api/highlights/{stale_id}")
        self.assertEqual(status, 200)
        self.assertEqual(body["deleted"], stale_id)
        self.assertEqual(self.request("DELETE", f"/api/highlights/{stale_id}")[0], 404)

    def test_corrupt_state(self):
        [corrupt] = self.services.highlights.create_many([
            Highlight(user_id="u1", text="Broken", captured_at=NOW,
                      review=ReviewState(mastery_score=2.0, next_review_at=NOW)),
        ])

        with self.assertLogs("web.server", level="ERROR"):
            status, _ = self.request("POST", "/api/reviews", {"highlight_id": corrupt.id, "rating": "good"})

        self.assertEqual(status, 500)


class TestToJsonable(unittest.TestCase):

    def test_nested(self):
        value = {"when": NOW, "items": (ReviewState(),)}

        data = to_jsonable(value)

        self.assertEqual(data["when"], "2024-06-15T09:00:00+00:00")
        self.assertEqual(data["items"][0]["ease_factor"], 2.5)
        self.assertIsNone(data["items"][0]["next_review_at"])


if __name__ == "__main__":
    unittest.main()
