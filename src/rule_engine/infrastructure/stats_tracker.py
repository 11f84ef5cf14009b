"""Bounded, thread-safe cache of per-recipient notification stats."""

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from loguru import logger

from src.rule_engine.domain.exceptions import InvalidEvaluationRequestError
from src.rule_engine.domain.models import UserNotificationStats, local_now
from src.rule_engine.domain.protocols import StatsReader


@dataclass
class _Entry:
    stats: UserNotificationStats
    last_access: datetime
    lock: threading.Lock = field(default_factory=threading.Lock)


class StatsTracker(StatsReader):
    """
    Tracks daily send counts and last send time per recipient.

    Entries are created lazily and kept in LRU order. A structural lock guards
    the mapping itself; each entry carries its own lock so that updates to one
    recipient never wait on another.
    """

    def __init__(
        self,
        max_entries: int | None = 10_000,
        idle_ttl_seconds: int | None = 172_800,
        clock: Callable[[], datetime] = local_now,
    ):
        """
        Initialize the tracker.

        Args:
            max_entries: Evict the least recently used recipient beyond this size (None = unbounded)
            idle_ttl_seconds: Evict recipients not touched for this long (None = never)
            clock: Returns the current aware local time
        """
        self.max_entries = max_entries
        self.idle_ttl = timedelta(seconds=idle_ttl_seconds) if idle_ttl_seconds else None
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    def _entry(self, recipient_id: str) -> _Entry:
        if not recipient_id:
            raise InvalidEvaluationRequestError("recipient_id must be a non-empty string")

        now = self._clock()
        with self._lock:
            entry = self._entries.get(recipient_id)
            if entry is not None and self.idle_ttl and now - entry.last_access > self.idle_ttl:
                logger.debug(f"Stats for {recipient_id} expired after {self.idle_ttl}")
                del self._entries[recipient_id]
                entry = None

            if entry is None:
                entry = _Entry(
                    stats=UserNotificationStats(last_reset_date=now.date()),
                    last_access=now,
                )
                self._entries[recipient_id] = entry
                self._evict_overflow()
            else:
                entry.last_access = now
                self._entries.move_to_end(recipient_id)
            return entry

    def _evict_overflow(self) -> None:
        """Drop least recently used entries beyond max_entries. Caller holds the lock."""
        if self.max_entries is None:
            return
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted stats for {evicted} (max_entries={self.max_entries})")

    def get_or_create(self, recipient_id: str) -> UserNotificationStats:
        """Return the live stats record for a recipient, allocating it on first access."""
        return self._entry(recipient_id).stats

    def snapshot(self, recipient_id: str) -> UserNotificationStats:
        """Return a copy of the recipient's stats as they read today."""
        entry = self._entry(recipient_id)
        today = self._clock().date()
        with entry.lock:
            return entry.stats.as_of(today)

    def update_stats(self, recipient_id: str) -> UserNotificationStats:
        """
        Record one accepted send for a recipient.

        Rolls the daily counter over when the calendar day changed, then
        increments it and stamps the send time, all under the recipient's lock.
        """
        entry = self._entry(recipient_id)
        now = self._clock()
        today = now.date()
        with entry.lock:
            stats = entry.stats
            if stats.last_reset_date < today:
                stats.daily_count = 0
                stats.last_reset_date = today
            stats.daily_count += 1
            stats.last_notification_time = now
            logger.debug(f"Stats for {recipient_id}: daily_count={stats.daily_count}")
            return stats.as_of(today)

    def reset(self, recipient_id: str) -> None:
        """Forget everything tracked for a recipient."""
        with self._lock:
            self._entries.pop(recipient_id, None)

    def purge_expired(self) -> int:
        """Drop idle entries eagerly. Returns the number removed."""
        if not self.idle_ttl:
            return 0
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now - entry.last_access > self.idle_ttl]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Purged stats for {len(expired)} idle recipients")
        return len(expired)

    def retains(self, interval: timedelta) -> bool:
        """Whether an idle recipient keeps its last send time for at least `interval`."""
        return self.idle_ttl is None or interval <= self.idle_ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, recipient_id: object) -> bool:
        with self._lock:
            return recipient_id in self._entries
