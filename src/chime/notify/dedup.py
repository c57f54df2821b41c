# src/chime/notify/dedup.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

DAY_TOKEN_KEY_PREFIX = "last_notify_day"


def day_token_key(category: str) -> str:
    return f"{DAY_TOKEN_KEY_PREFIX}:{category}"


def day_token(now_ts: float, tz: tzinfo | None = None) -> str:
    """Calendar-day token ("2024-05-01") in tz, or the local zone when tz is None."""
    if tz is None:
        return datetime.fromtimestamp(now_ts).astimezone().date().isoformat()
    return datetime.fromtimestamp(now_ts, tz).date().isoformat()


@dataclass(slots=True)
class DedupState:
    """
    Per-process dedup memory.

    notified_ids is append-only: an id in here never alerts again until restart.
    """

    notified_ids: set[str] = field(default_factory=set)
    has_run_missed_scan: bool = False

    def is_notified(self, reminder_id: str) -> bool:
        return reminder_id in self.notified_ids

    def mark(self, reminder_ids: Iterable[str]) -> None:
        self.notified_ids.update(reminder_ids)


class DailyThrottle:
    """
    Once-per-calendar-day limit for one notification category.

    The day token lives in the durable store so the limit holds across restarts.
    If the store is unavailable the category is simply not throttled.
    """

    def __init__(self, store: KeyValueStore, category: str, *, tz: tzinfo | None = None) -> None:
        self._store = store
        self._key = day_token_key(category)
        self._tz = tz

    def today_token(self, now_ts: float) -> str:
        return day_token(now_ts, self._tz)

    def last_token(self) -> str | None:
        try:
            return self._store.get(self._key)
        except Exception:
            logger.warning("Day token read failed key=%s; treating as not notified", self._key, exc_info=True)
            return None

    def already_notified(self, now_ts: float) -> bool:
        return self.last_token() == self.today_token(now_ts)

    def mark(self, now_ts: float) -> None:
        token = self.today_token(now_ts)
        try:
            self._store.set(self._key, token)
        except Exception:
            logger.warning("Day token write failed key=%s token=%s", self._key, token, exc_info=True)
