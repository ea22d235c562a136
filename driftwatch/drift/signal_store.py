"""
Signal Store - Session-Scoped Rolling Drift State

Holds the small record every drift signal is computed from:
1. Last confirmed progress timestamp (time bleed)
2. Context switch counter (tab cascade)
3. Open loop counts, previous vs current (loop expansion)
4. Idea capture timestamps, pruned to a trailing minute (idea storm)
5. Raw activity timestamps, capped to the last 20 (emotional spike)

The record is scoped to one continuous usage session. It is persisted through
a pluggable session storage so a reload within the session picks it back up,
but it is never required to survive the session: drift is short-horizon.

Storage faults never reach the caller. A failed read yields a fresh record and
a failed write leaves the in-memory record authoritative for the session.
"""
from typing import Dict, List, Optional, Protocol, Tuple
from dataclasses import dataclass, field, asdict
import json
import logging
import math

import redis

from .clock import Clock, read_clock, system_clock

logger = logging.getLogger(__name__)


IDEA_WINDOW_MS = 60_000        # Idea captures older than this are dropped
ACTIVITY_HISTORY_LIMIT = 20    # Most recent raw interactions kept
INITIAL_TAB_COUNT = 1          # The context the session started in


@dataclass
class SignalRecord:
    """Rolling drift counters for one session"""
    last_progress_at: Optional[int]
    tab_count: int = INITIAL_TAB_COUNT
    previous_open_loop_count: int = 0
    open_loop_count: int = 0
    recent_idea_timestamps: List[int] = field(default_factory=list)
    recent_activity_timestamps: List[int] = field(default_factory=list)

    @classmethod
    def fresh(cls, now_ms: Optional[int]) -> "SignalRecord":
        """Session-start defaults; None leaves the progress anchor unknown"""
        return cls(last_progress_at=now_ms)

    def copy(self) -> "SignalRecord":
        return SignalRecord(
            last_progress_at=self.last_progress_at,
            tab_count=self.tab_count,
            previous_open_loop_count=self.previous_open_loop_count,
            open_loop_count=self.open_loop_count,
            recent_idea_timestamps=list(self.recent_idea_timestamps),
            recent_activity_timestamps=list(self.recent_activity_timestamps),
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "SignalRecord":
        """
        Parse a persisted record

        Missing keys take defaults and unknown keys are ignored.

        Raises:
            ValueError: if the payload is not a valid record
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("record is not an object")

        if "last_progress_at" not in data:
            raise ValueError("record has no last_progress_at")

        record = cls(
            last_progress_at=_as_optional_count(data["last_progress_at"], "last_progress_at"),
            tab_count=_as_count(data.get("tab_count", INITIAL_TAB_COUNT), "tab_count"),
            previous_open_loop_count=_as_count(
                data.get("previous_open_loop_count", 0), "previous_open_loop_count"
            ),
            open_loop_count=_as_count(data.get("open_loop_count", 0), "open_loop_count"),
            recent_idea_timestamps=_as_timeline(
                data.get("recent_idea_timestamps", []), "recent_idea_timestamps"
            ),
            recent_activity_timestamps=_as_timeline(
                data.get("recent_activity_timestamps", []), "recent_activity_timestamps"
            ),
        )
        return record


def _as_count(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _as_optional_count(value, name: str) -> Optional[int]:
    if value is None:
        return None
    return _as_count(value, name)


def _as_timeline(value, name: str) -> List[int]:
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    timeline = [_as_count(v, name) for v in value]
    if any(b < a for a, b in zip(timeline, timeline[1:])):
        raise ValueError(f"{name} is not in chronological order")
    return timeline


# ============== Session Storage ==============

class SessionStorage(Protocol):
    """Key/value storage scoped to a usage session"""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemorySessionStorage:
    """
    Process-local storage; lives as long as the host process

    With a TTL, entries expire like their Redis counterparts: an entry not
    written for ttl_seconds reads as absent and is swept on the next write.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Optional[Clock] = None):
        self.ttl_seconds = ttl_seconds
        self.clock = clock or system_clock
        self._data: Dict[str, Tuple[str, Optional[int]]] = {}

    def _expires_at(self) -> Optional[int]:
        if self.ttl_seconds is None:
            return None
        now = read_clock(self.clock)
        if now is None:
            return None
        return now + self.ttl_seconds * 1000

    def _expired(self, expires_at: Optional[int], now: Optional[int]) -> bool:
        return expires_at is not None and now is not None and now >= expires_at

    def sweep(self) -> int:
        """Drop expired entries, returning how many were removed"""
        if self.ttl_seconds is None:
            return 0
        now = read_clock(self.clock)
        expired = [k for k, (_, expires_at) in self._data.items() if self._expired(expires_at, now)]
        for key in expired:
            del self._data[key]
        return len(expired)

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._expired(expires_at, read_clock(self.clock)):
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: str) -> None:
        self.sweep()
        self._data[key] = (value, self._expires_at())

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class RedisSessionStorage:
    """
    Redis-backed session storage.

    Entries expire after the session TTL so abandoned sessions clean
    themselves up. Errors propagate to the SignalStore, which swallows them.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        ttl_seconds: int = 12 * 60 * 60,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._client = client

    @property
    def client(self) -> redis.Redis:
        """Lazy initialization of Redis client."""
        if self._client is None:
            self._client = redis.from_url(self.redis_url, decode_responses=True)
        return self._client

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self.client.setex(key, self.ttl_seconds, value)

    def delete(self, key: str) -> None:
        self.client.delete(key)


# ============== Signal Store ==============

class SignalStore:
    """
    Durable rolling drift record for one session

    The record is loaded lazily on first access. Every mutation writes the
    whole record back; writes that fail are logged and dropped.
    """

    def __init__(
        self,
        session_id: str,
        storage: Optional[SessionStorage] = None,
        clock: Optional[Clock] = None,
        key_prefix: str = "drift:",
    ):
        self.session_id = session_id
        self.storage = storage if storage is not None else InMemorySessionStorage()
        self.clock = clock or system_clock
        self.key = f"{key_prefix}{session_id}"
        self.log_context = {"session_id": session_id}
        self._record: Optional[SignalRecord] = None
        self._last_now = 0

    def _now(self) -> Optional[int]:
        now = read_clock(self.clock)
        if now is None:
            return None
        # Timelines never go backwards even if the wall clock does
        self._last_now = max(self._last_now, now)
        if self._record is not None and self._record.last_progress_at is None:
            self._anchor_progress(self._last_now)
        return self._last_now

    def _anchor_progress(self, now_ms: int):
        self._record.last_progress_at = now_ms
        self._save()
        logger.debug("Progress anchor set from first clock reading", extra=self.log_context)

    def _fresh_record(self) -> SignalRecord:
        # Without a clock reading the anchor stays unknown until one arrives
        return SignalRecord.fresh(self._now())

    def _load(self) -> SignalRecord:
        try:
            raw = self.storage.get(self.key)
        except Exception as e:
            logger.warning(f"Error reading drift state: {e}", extra=self.log_context)
            return self._fresh_record()

        if raw is None:
            record = self._fresh_record()
            self._record = record
            self._save()
            return record

        try:
            record = SignalRecord.from_json(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding corrupt drift state: {e}", extra=self.log_context)
            return self._fresh_record()

        timelines = record.recent_idea_timestamps + record.recent_activity_timestamps
        if record.last_progress_at is not None:
            timelines.append(record.last_progress_at)
        self._last_now = max([self._last_now, *timelines])
        return record

    def _save(self):
        try:
            self.storage.set(self.key, self._record.to_json())
        except Exception as e:
            logger.warning(f"Error persisting drift state: {e}", extra=self.log_context)

    @property
    def record(self) -> SignalRecord:
        """The live record; read-only use only, mutate through the record_* methods"""
        if self._record is None:
            self._record = self._load()
        return self._record

    def anchor_progress(self, now_ms: Optional[int]):
        """Start the progress clock at now_ms if no progress time is known yet"""
        if now_ms is None:
            return
        if self.record.last_progress_at is None:
            self._anchor_progress(now_ms)

    def snapshot(self) -> SignalRecord:
        """Independent copy of the current record"""
        return self.record.copy()

    def record_progress(self):
        """Mark confirmed forward progress on a tracked unit of work"""
        now = self._now()
        if now is None:
            return
        self.record.last_progress_at = now
        self._save()

    def record_context_switch(self):
        """Count a newly opened browsing/view context"""
        self.record.tab_count += 1
        self._save()

    def record_idea_capture(self):
        """Record an unstructured idea capture, keeping only the trailing minute"""
        now = self._now()
        if now is None:
            return
        record = self.record
        record.recent_idea_timestamps = [
            t for t in record.recent_idea_timestamps if now - t <= IDEA_WINDOW_MS
        ]
        record.recent_idea_timestamps.append(now)
        self._save()

    def record_activity(self):
        """Record a raw pointer/keyboard interaction"""
        now = self._now()
        if now is None:
            return
        record = self.record
        record.recent_activity_timestamps.append(now)
        record.recent_activity_timestamps = record.recent_activity_timestamps[-ACTIVITY_HISTORY_LIMIT:]
        self._save()

    def update_open_loop_count(self, count) -> bool:
        """
        Observe the current number of open loops

        On change the previous observation becomes the growth baseline. Invalid
        counts (negative, non-integer) are ignored and the last good value kept.

        Returns:
            True if the stored count changed
        """
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            logger.debug(f"Ignoring non-numeric open loop count: {count!r}", extra=self.log_context)
            return False
        if not math.isfinite(count) or count < 0 or count != int(count):
            logger.debug(f"Ignoring invalid open loop count: {count!r}", extra=self.log_context)
            return False

        count = int(count)
        record = self.record
        if count == record.open_loop_count:
            return False

        record.previous_open_loop_count = record.open_loop_count
        record.open_loop_count = count
        self._save()
        return True

    def reset(self):
        """Restore session-start defaults"""
        self._record = self._fresh_record()
        self._save()
        logger.info("Drift state reset", extra=self.log_context)

    def discard(self):
        """Drop the persisted record at session end"""
        try:
            self.storage.delete(self.key)
        except Exception as e:
            logger.warning(f"Error discarding drift state: {e}", extra=self.log_context)
        self._record = None
