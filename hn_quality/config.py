import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from hn_quality.constants import (
    ALGOLIA_BASE,
    CACHE_TTL_SECONDS,
    COMMENTS_DEADLINE,
    DEFAULT_PAGE_SIZE,
    ITEM_DEADLINE,
    LIST_DEADLINE,
)

CONFIG_DIR = Path.home() / ".config" / "hn_quality"
CONFIG_FILE = CONFIG_DIR / "config.json"


@dataclass(frozen=True)
class Settings:
    base_url: str = ALGOLIA_BASE
    cache_ttl: float = CACHE_TTL_SECONDS
    list_deadline: float = LIST_DEADLINE
    item_deadline: float = ITEM_DEADLINE
    comments_deadline: float = COMMENTS_DEADLINE
    page_size: int = DEFAULT_PAGE_SIZE
    log_level: str = "INFO"


def load_config() -> dict:
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(key: str, value: Any) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config = load_config()
    config[key] = value
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def get_settings() -> Settings:
    """Defaults from constants, overridden by keys present in the config file.

    Values of the wrong type, and numbers that are not positive, are ignored
    rather than trusted.
    """
    defaults = Settings()
    overrides: dict[str, Any] = {}
    for key, value in load_config().items():
        if not hasattr(defaults, key):
            continue
        expected = type(getattr(defaults, key))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected) or isinstance(value, bool):
            continue
        if expected in (int, float) and value <= 0:
            continue
        overrides[key] = value
    return replace(defaults, **overrides)
