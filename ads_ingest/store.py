"""Key-value store backed by a single JSON file, used by the CLI."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DAILY_LEDGER_KEY = "daily_ledger"
ADS_INTEL_KEY = "ads_intel"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "item"):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonFileStore:
    """
    Minimal get/set store persisted as one JSON object.

    The file is read once when the store is opened; ``save()`` writes the
    whole object back. A missing file starts an empty store.
    """

    def __init__(self, path: "str | Path") -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError as exc:
                raise ValueError(f"Could not read store {self.path}: {exc}") from exc
            if not isinstance(loaded, dict):
                raise ValueError(f"Store {self.path} must hold a JSON object")
            self._data = loaded

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def save(self) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self._data, indent=2, ensure_ascii=False, sort_keys=True, default=_json_default)
        self.path.write_text(payload, encoding="utf-8")
        logger.info("Store saved: %s", self.path)
        return self.path
