# Configuration
"""
Settings are read from config.json at the project root (or the file named by
RESURFACE_CONFIG) and merged over DEFAULTS. RESURFACE_DB overrides the
database path.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _config_dir() -> Path:
    return Path(__file__).resolve().parent.parent


DEFAULTS: dict = {
    "storage": {
        "db_path": str(_config_dir() / "data" / "resurface.db"),
    },
    "user_id": "demo-user",
    "log_level": "WARNING",
    "review": {
        "queue_limit": 10,
    },
    "digest": {
        "lead_days": 7,
    },
    "web": {
        "host": "127.0.0.1",
        "port": 8787,
    },
}


@dataclass(frozen=True)
class Settings:
    db_path: Path
    user_id: str = "demo-user"
    log_level: str = "WARNING"
    queue_limit: int = 10
    digest_lead_days: int = 7
    host: str = "127.0.0.1"
    port: int = 8787


def _merge_dict(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_dict(base_value, value)
        else:
            merged[key] = value
    return merged


def _load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be an object", path)
        return {}
    return data


def load_settings(path: Optional[Path] = None) -> Settings:
    if path is None:
        path = Path(os.environ.get("RESURFACE_CONFIG") or _config_dir() / "config.json")
    raw = _merge_dict(DEFAULTS, _load_config(Path(path)))

    db_path = os.environ.get("RESURFACE_DB") or raw["storage"]["db_path"]
    return Settings(
        db_path=Path(db_path),
        user_id=str(raw["user_id"]),
        log_level=str(raw["log_level"]).upper(),
        queue_limit=int(raw["review"]["queue_limit"]),
        digest_lead_days=int(raw["digest"]["lead_days"]),
        host=str(raw["web"]["host"]),
        port=int(raw["web"]["port"]),
    )
