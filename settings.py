from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from paths import get_portable_dir


SETTINGS_FILE = "preventivi.json"

DEFAULTS: dict[str, Any] = {
    "theme": "light",
    "language": "it",
    "database_url": "",
    "last_username": "",
    "log_level": "INFO",
    "quote_header_expanded": True,
}

logger = logging.getLogger("preventivi.settings")


@dataclass
class AppSettings:
    """Application-level preferences stored next to the database.

    Business settings (company data, numbering, default images) are per user
    and live in the database; this file only holds what is needed before a
    user logs in.
    """

    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls) -> "AppSettings":
        data_dir = get_portable_dir("data")
        path = data_dir / SETTINGS_FILE
        if not path.exists():
            data = dict(DEFAULTS)
            with path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            return cls(data=data)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                data = dict(DEFAULTS)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable %s, using defaults: %s", path, exc)
            data = dict(DEFAULTS)

        for key, value in DEFAULTS.items():
            if key not in data:
                data[key] = value
        return cls(data=data)

    def save(self) -> None:
        data_dir = get_portable_dir("data")
        path = data_dir / SETTINGS_FILE
        with path.open("w", encoding="utf-8") as f:
            json.dump(self.data, f, ensure_ascii=False, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
