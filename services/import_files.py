import csv
import datetime as dt
import json
from pathlib import Path

from core.timeutil import iso_timestamp


def parse_import_file(path: Path) -> list[dict]:
    """Read rows from a .jsonl, .json (list of objects) or .csv file."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix.lower() == ".jsonl":
        rows = []
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    rows.append(json.loads(line))
        return rows
    if path.suffix.lower() == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, list):
            return data
        raise ValueError("JSON file must be a list of objects.")
    if path.suffix.lower() == ".csv":
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            return list(csv.DictReader(f))
    raise ValueError("Unsupported format. Use .jsonl, .json, or .csv")


def rows_to_entries(rows: list[dict], now: dt.datetime) -> list[dict]:
    """Normalise file rows into import entries.

    Rows without text are skipped. `source` and `title` are accepted for the
    source title, and a missing capture time means "captured now".
    """
    entries = []
    for row in rows:
        text = (row.get("text") or "").strip()
        if not text:
            continue
        entries.append({
            "text": text,
            "source_title": row.get("source_title") or row.get("source") or row.get("title") or "Untitled",
            "author": row.get("author") or "",
            "location": row.get("location") or "",
            "captured_at": row.get("captured_at") or iso_timestamp(now),
            "tags": row.get("tags") or [],
        })
    return entries
