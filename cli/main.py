#!/usr/bin/env python3
"""Resurface CLI - import highlights, review them and check what is due."""
import argparse
import logging
import sys
from pathlib import Path

from core import Rating, ResurfaceError
from core.config import Settings, load_settings
from core.timeutil import iso_timestamp, parse_timestamp, utcnow
from services import Services, seed_demo, sqlite_services
from services.import_files import parse_import_file, rows_to_entries
from services.validation import parse_import_payload, parse_note_payload
from storage import connect

logger = logging.getLogger(__name__)

RATING_KEYS = {"a": Rating.AGAIN, "h": Rating.HARD, "g": Rating.GOOD, "e": Rating.EASY}


def _meta(author: str, source_title: str) -> str:
    return f"{author} - {source_title}".strip(" -")


def add_note(services: Services, args: argparse.Namespace) -> None:
    payload = parse_note_payload({
        "text": args.text,
        "source_title": args.source_title,
        "author": args.author,
        "tags": args.tags,
    })
    highlight = services.notes.create_note(args.user, payload, utcnow())
    print(f"Added highlight {highlight.id}, first review on {highlight.review.next_review_at.date()}.")


def import_highlights(services: Services, args: argparse.Namespace) -> None:
    now = utcnow()
    entries = rows_to_entries(parse_import_file(Path(args.file)), now)
    if not entries:
        print("No valid highlights found.")
        return
    payload = parse_import_payload({"source": args.source, "entries": entries})
    result = services.imports.process_import(args.user, payload, now)
    print(f"Imported {len(result.highlights)} highlights (job {result.job.id}).")


def list_highlights(services: Services, args: argparse.Namespace) -> None:
    now = utcnow()
    highlights = services.highlights.list_by_user(args.user)
    if args.due:
        highlights = [h for h in highlights if h.review.next_review_at <= now]
    highlights = sorted(highlights, key=lambda h: h.id, reverse=True)[:args.limit]

    if not highlights:
        print("No highlights.")
        return

    for h in highlights:
        tags = f" #{' #'.join(h.tags)}" if h.tags else ""
        print(
            f"[{h.id}] (due {h.review.next_review_at.date()}) reviews={h.review.review_count} "
            f"mastery={h.review.mastery_score:.2f}\n"
            f"{h.text}\n"
            f"{_meta(h.author, h.source_title)}{tags}\n"
        )


def show_queue(services: Services, args: argparse.Namespace) -> None:
    items = services.reviews.queue(args.user, utcnow(), args.limit)
    if not items:
        print("Nothing is due.")
        return
    for item in items:
        print(f"[{item.highlight_id}] {item.recommended_action:<8} due {iso_timestamp(item.due_at)}  "
              f"{item.source_title}: {item.text[:80]}")


def review(services: Services, args: argparse.Namespace) -> None:
    items = services.reviews.queue(args.user, utcnow(), args.limit)

    if not items:
        print("No due highlights.")
        return

    reviewed = 0
    for item in items:
        print(f"\n[{item.highlight_id}] {item.source_title}")
        print(item.text)

        if args.rating is None:
            raw = input("Rate recall: (a)gain (h)ard (g)ood (e)asy, q to quit: ").strip().lower()
            if raw == "q":
                break
            if raw not in RATING_KEYS and raw not in {r.value for r in Rating}:
                print("Invalid rating. Skipping.")
                continue
            rating = RATING_KEYS.get(raw) or Rating.parse(raw)
        else:
            rating = Rating.parse(args.rating)

        updated = services.reviews.submit_review(item.highlight_id, rating, utcnow())
        if updated is None:
            continue
        reviewed += 1
        print(f"Rated {rating.value}, next review on {updated.review.next_review_at.date()}")

    print(f"\nReviewed {reviewed} highlight(s).")


def digest(services: Services, args: argparse.Namespace) -> None:
    if args.schedule:
        preview = services.digests.schedule(args.user, parse_timestamp(args.schedule))
    else:
        preview = services.digests.latest(args.user)
    if preview is None:
        print("No digest scheduled.")
        return

    items = services.reviews.queue(args.user, preview.scheduled_for, args.limit)
    print(f"# Digest {preview.id} ({iso_timestamp(preview.scheduled_for)})\n")
    print(f"- Due highlights: {preview.highlight_count}")
    print(f"- Recently added: {preview.recently_added_count}\n")
    print("## Due by delivery")
    if not items:
        print("- None")
    for item in items:
        print(f"- [{item.highlight_id}] {item.text} ({item.source_title})")


def stats(services: Services, args: argparse.Namespace) -> None:
    metrics = services.dashboard.metrics(args.user, utcnow())
    print(f"Total highlights:   {metrics.total_highlights}")
    print(f"Due now:            {metrics.due_now}")
    print(f"Reviews this week:  {metrics.weekly_reviews_completed}")
    print(f"Retention score:    {metrics.retention_score}%")
    print(f"Streak (weeks):     {metrics.streak_weeks}")


def list_jobs(services: Services, args: argparse.Namespace) -> None:
    jobs = services.import_jobs.list_by_user(args.user)
    if not jobs:
        print("No import jobs.")
        return
    for job in jobs:
        reason = f" ({job.failure_reason})" if job.failure_reason else ""
        print(f"[{job.id}] {job.source} {job.status} submitted {iso_timestamp(job.submitted_at)}{reason}")


def seed(services: Services, args: argparse.Namespace) -> None:
    seed_demo(services, args.user, utcnow())
    print("Seeded demo highlights.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resurface: spaced repetition for your highlights.")
    parser.add_argument("--config", default=None, help="Path to config.json.")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides config).")
    parser.add_argument("--user", default=None, help="User id (overrides config).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_add = sub.add_parser("add", help="Add one manual note.")
    p_add.add_argument("--text", required=True, help="Highlight content.")
    p_add.add_argument("--source-title", required=True, help="Book/article title.")
    p_add.add_argument("--author", default="", help="Author.")
    p_add.add_argument("--tags", default="", help="Comma-separated tags.")
    p_add.set_defaults(func=add_note)

    p_import = sub.add_parser("import", help="Import highlights from json/jsonl/csv.")
    p_import.add_argument("--file", required=True, help="Input file path.")
    p_import.add_argument("--source", default="kindle", choices=["kindle", "manual", "integration"],
                          help="Where the highlights came from.")
    p_import.set_defaults(func=import_highlights)

    p_list = sub.add_parser("list", help="List highlights.")
    p_list.add_argument("--due", action="store_true", help="Only show due highlights.")
    p_list.add_argument("--limit", type=int, default=20, help="Max items.")
    p_list.set_defaults(func=list_highlights)

    p_queue = sub.add_parser("queue", help="Show the review queue.")
    p_queue.add_argument("--limit", type=int, default=None, help="Max items.")
    p_queue.set_defaults(func=show_queue)

    p_review = sub.add_parser("review", help="Review due highlights.")
    p_review.add_argument("--limit", type=int, default=None, help="Max due items.")
    p_review.add_argument(
        "--rating", choices=[r.value for r in Rating], help="Apply one rating for non-interactive mode."
    )
    p_review.set_defaults(func=review)

    p_digest = sub.add_parser("digest", help="Schedule or show the upcoming digest.")
    p_digest.add_argument("--schedule", default="", help="Delivery time (ISO-8601) for a new digest.")
    p_digest.add_argument("--limit", type=int, default=10, help="Due items listed.")
    p_digest.set_defaults(func=digest)

    p_stats = sub.add_parser("stats", help="Print review metrics.")
    p_stats.set_defaults(func=stats)

    p_jobs = sub.add_parser("jobs", help="List import jobs.")
    p_jobs.set_defaults(func=list_jobs)

    p_seed = sub.add_parser("seed", help="Load demo highlights.")
    p_seed.set_defaults(func=seed)

    return parser


def _apply_settings(args: argparse.Namespace, settings: Settings) -> None:
    args.user = args.user or settings.user_id
    if getattr(args, "limit", 0) is None:
        args.limit = settings.queue_limit


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _apply_settings(args, settings)

    conn = connect(Path(args.db) if args.db else settings.db_path)
    try:
        services = sqlite_services(conn, digest_lead_days=settings.digest_lead_days)
        args.func(services, args)
    except (ResurfaceError, OSError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
