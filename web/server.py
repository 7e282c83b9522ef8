#!/usr/bin/env python3
"""JSON API over the standard library HTTP server."""
import argparse
import datetime as dt
import json
import logging
from contextlib import contextmanager
from dataclasses import fields, is_dataclass
from enum import Enum
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Iterator, Optional
from urllib.parse import parse_qs, urlparse

from core import (
    ConcurrentUpdateError,
    DigestPreview,
    InvalidRatingError,
    InvalidStateError,
    ValidationError,
)
from core.config import load_settings
from core.timeutil import iso_timestamp, utcnow
from services import Services, memory_services, seed_demo, sqlite_services
from services.validation import (
    optional_limit,
    parse_digest_payload,
    parse_import_payload,
    parse_note_payload,
    parse_review_payload,
)
from storage import connect

logger = logging.getLogger(__name__)


def to_jsonable(value):
    if isinstance(value, DigestPreview):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
        data["actions"] = value.actions
        return data
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dt.datetime):
        return iso_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


class App:
    """Holds either a shared in-memory service bundle or a path to open per request."""

    def __init__(self, db_path: Optional[str] = None, services: Optional[Services] = None,
                 user_id: str = "demo-user", digest_lead_days: int = 7,
                 clock: Callable[[], dt.datetime] = utcnow):
        if db_path is None and services is None:
            raise ValueError("App needs a database path or a service bundle")
        self.db_path = db_path
        self._services = services
        self.user_id = user_id
        self.digest_lead_days = digest_lead_days
        self.clock = clock

    @contextmanager
    def services(self) -> Iterator[Services]:
        if self._services is not None:
            yield self._services
            return
        conn = connect(Path(self.db_path))
        try:
            yield sqlite_services(conn, digest_lead_days=self.digest_lead_days)
        finally:
            conn.close()


def make_handler(app: App):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            self.dispatch(self.route_get)

        def do_POST(self):
            self.dispatch(self.route_post)

        def do_DELETE(self):
            self.dispatch(self.route_delete)

        def route_get(self, path: str):
            if path == "/api/reviews":
                return self.handle_queue()
            if path == "/api/highlights":
                return self.handle_highlights()
            if path == "/api/imports":
                return self.handle_jobs()
            if path == "/api/digests":
                return self.handle_latest_digest()
            if path == "/api/dashboard":
                return self.handle_dashboard()
            self.respond_error(HTTPStatus.NOT_FOUND, "Not found")

        def route_post(self, path: str):
            if path == "/api/reviews":
                return self.handle_review_submit()
            if path == "/api/imports":
                return self.handle_import_submit()
            if path == "/api/notes":
                return self.handle_note_submit()
            if path == "/api/digests":
                return self.handle_digest_submit()
            self.respond_error(HTTPStatus.NOT_FOUND, "Not found")

        def route_delete(self, path: str):
            prefix = "/api/highlights/"
            if path.startswith(prefix) and path[len(prefix):].isdigit():
                return self.handle_delete_highlight(int(path[len(prefix):]))
            self.respond_error(HTTPStatus.NOT_FOUND, "Not found")

        def dispatch(self, route):
            path = urlparse(self.path).path.rstrip("/") or "/"
            try:
                route(path)
            except ConcurrentUpdateError as exc:
                self.respond_error(HTTPStatus.CONFLICT, str(exc))
            except InvalidStateError as exc:
                logger.error("Refused %s %s: %s", self.command, path, exc)
                self.respond_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Stored review state is invalid")
            except (ValidationError, InvalidRatingError) as exc:
                self.respond_error(HTTPStatus.BAD_REQUEST, str(exc))
            except json.JSONDecodeError as exc:
                self.respond_error(HTTPStatus.BAD_REQUEST, f"Invalid JSON: {exc.msg}")
            except Exception:
                logger.exception("Unhandled error on %s %s", self.command, path)
                self.respond_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal error")

        def query(self) -> dict:
            parsed = parse_qs(urlparse(self.path).query)
            return {k: v[0] for k, v in parsed.items()}

        def read_json(self):
            length = int(self.headers.get("Content-Length", "0") or 0)
            raw = self.rfile.read(length).decode("utf-8") if length else ""
            return json.loads(raw or "null")

        def respond(self, status: HTTPStatus, payload):
            raw = json.dumps(to_jsonable(payload), ensure_ascii=False).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json; charset=utf-8")
            self.send_header("Content-Length", str(len(raw)))
            self.end_headers()
            self.wfile.write(raw)

        def respond_error(self, status: HTTPStatus, message: str):
            self.respond(status, {"error": message})

        def handle_queue(self):
            limit = optional_limit(self.query().get("limit"))
            with app.services() as services:
                queue = services.reviews.queue(app.user_id, app.clock(), limit)
            self.respond(HTTPStatus.OK, {"queue": queue})

        def handle_highlights(self):
            with app.services() as services:
                highlights = services.highlights.list_by_user(app.user_id)
            self.respond(HTTPStatus.OK, {"highlights": highlights})

        def handle_jobs(self):
            with app.services() as services:
                jobs = services.import_jobs.list_by_user(app.user_id)
            self.respond(HTTPStatus.OK, {"jobs": jobs})

        def handle_latest_digest(self):
            with app.services() as services:
                digest = services.digests.latest(app.user_id)
            self.respond(HTTPStatus.OK, {"digest": digest})

        def handle_dashboard(self):
            with app.services() as services:
                snapshot = services.dashboard.snapshot(app.user_id, app.clock())
            self.respond(HTTPStatus.OK, snapshot)

        def handle_review_submit(self):
            payload = parse_review_payload(self.read_json())
            with app.services() as services:
                updated = services.reviews.submit_review(payload.highlight_id, payload.rating, app.clock())
            if updated is None:
                return self.respond_error(HTTPStatus.NOT_FOUND, f"Highlight {payload.highlight_id} not found")
            self.respond(HTTPStatus.OK, updated)

        def handle_import_submit(self):
            payload = parse_import_payload(self.read_json())
            with app.services() as services:
                result = services.imports.process_import(app.user_id, payload, app.clock())
            self.respond(HTTPStatus.CREATED, {"job": result.job, "highlights": result.highlights})

        def handle_note_submit(self):
            payload = parse_note_payload(self.read_json())
            with app.services() as services:
                highlight = services.notes.create_note(app.user_id, payload, app.clock())
            self.respond(HTTPStatus.CREATED, highlight)

        def handle_digest_submit(self):
            scheduled_for = parse_digest_payload(self.read_json())
            with app.services() as services:
                digest = services.digests.schedule(app.user_id, scheduled_for)
            self.respond(HTTPStatus.CREATED, digest)

        def handle_delete_highlight(self, highlight_id: int):
            with app.services() as services:
                deleted = services.highlights.delete(highlight_id)
            if not deleted:
                return self.respond_error(HTTPStatus.NOT_FOUND, f"Highlight {highlight_id} not found")
            self.respond(HTTPStatus.OK, {"deleted": highlight_id})

        def log_message(self, fmt: str, *args):
            logger.debug("%s - %s", self.address_string(), fmt % args)

    return Handler


def main():
    parser = argparse.ArgumentParser(description="Resurface JSON API")
    parser.add_argument("--config", default=None, help="Path to config.json.")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--db", default=None)
    parser.add_argument("--memory", action="store_true", help="Keep data in memory instead of SQLite.")
    parser.add_argument("--demo", action="store_true", help="Seed demo highlights on startup.")
    args = parser.parse_args()

    settings = load_settings(Path(args.config) if args.config else None)
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.memory:
        app = App(services=memory_services(digest_lead_days=settings.digest_lead_days),
                  user_id=settings.user_id)
    else:
        app = App(db_path=args.db or str(settings.db_path), user_id=settings.user_id,
                  digest_lead_days=settings.digest_lead_days)
    if args.demo:
        with app.services() as services:
            seed_demo(services, app.user_id, utcnow())

    host = args.host or settings.host
    port = args.port or settings.port
    server = ThreadingHTTPServer((host, port), make_handler(app))
    print(f"Resurface API running at http://{host}:{port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
