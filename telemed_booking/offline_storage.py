"""Local JSON cache of prescriptions and orders for offline display.

Read-only fallback: nothing cached here is ever written back to the server.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

PRESCRIPTIONS_KEY = "telemedicine_prescriptions"
ORDERS_KEY = "telemedicine_orders"
LAST_SYNC_KEY = "telemedicine_last_sync"


class OfflineStorage:
    """File-backed key/value cache with fixed keys."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def store_prescriptions(self, prescriptions: list[dict]) -> None:
        """Cache prescriptions and stamp the sync time."""
        self._write({
            PRESCRIPTIONS_KEY: prescriptions,
            LAST_SYNC_KEY: datetime.now().isoformat(),
        })

    def get_prescriptions(self) -> list[dict]:
        return self._read().get(PRESCRIPTIONS_KEY, [])

    def store_orders(self, orders: list[dict]) -> None:
        self._write({ORDERS_KEY: orders})

    def get_orders(self) -> list[dict]:
        return self._read().get(ORDERS_KEY, [])

    def get_last_sync_date(self) -> datetime | None:
        """When prescriptions were last cached, if ever."""
        stored = self._read().get(LAST_SYNC_KEY)
        if not stored:
            return None
        try:
            return datetime.fromisoformat(stored)
        except ValueError:
            logger.error("Corrupt last sync timestamp in %s", self.path)
            return None

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read offline cache %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, updates: dict) -> None:
        data = self._read()
        data.update(updates)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write offline cache %s: %s", self.path, e)
