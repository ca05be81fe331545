# backend/gymbook/core/abuse_guard.py
"""
Anti-abuse guard for public write endpoints.

Per-address daily rate limits for bookings, signups and the contact form,
captcha verification against a siteverify endpoint, and a bounded log of
suspicious activity that admins can read. Counters live in memory behind a
lock or in Redis; one guard is built at startup and injected per request.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
import logging
import threading
from typing import Callable, Deque, Dict, List, Optional, Protocol, Tuple

from fastapi import Request
import httpx
from redis.asyncio import Redis

from .config import settings
from .timezone_utils import club_today, get_club_timezone
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# --------------------------------------------------------------------------- #
# Suspicious activity log
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class SecurityEvent:
    timestamp: datetime
    ip: str
    type: str
    details: str


class SuspiciousActivityLog:
    """Bounded in-memory ring buffer; the oldest entries fall off past the cap."""

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._events: Deque[SecurityEvent] = deque(maxlen=max_entries or settings.audit_log_size)
        self._lock = threading.Lock()

    def record(self, ip: str, event_type: str, details: str) -> SecurityEvent:
        event = SecurityEvent(
            timestamp=datetime.now(timezone.utc), ip=ip, type=event_type, details=details
        )
        with self._lock:
            self._events.append(event)
        logger.warning(f"[SECURITY] Suspicious activity from {ip}: {event_type} - {details}")
        return event

    def recent(self, limit: int = 100) -> List[SecurityEvent]:
        """Most recent events, oldest first."""
        with self._lock:
            events = list(self._events)
        return events[-limit:] if limit > 0 else []

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


# --------------------------------------------------------------------------- #
# Daily counters
# --------------------------------------------------------------------------- #


class CounterStore(Protocol):
    async def hit(self, key: str, day: date, limit: int) -> Tuple[bool, int]:
        """Consume one unit of today's quota; returns (allowed, remaining)."""

    async def purge(self, today: date) -> int:
        """Drop counters from earlier days; returns how many were removed."""


class InMemoryCounterStore:
    """Process-local counters; state is lost on restart and not shared across workers."""

    def __init__(self) -> None:
        self._counts: Dict[str, Tuple[date, int]] = {}
        self._lock = threading.Lock()

    async def hit(self, key: str, day: date, limit: int) -> Tuple[bool, int]:
        with self._lock:
            record = self._counts.get(key)
            if record is None or record[0] != day:
                self._counts[key] = (day, 1)
                return True, max(limit - 1, 0)
            count = record[1]
            if count >= limit:
                return False, 0
            self._counts[key] = (day, count + 1)
            return True, limit - (count + 1)

    async def purge(self, today: date) -> int:
        with self._lock:
            stale = [key for key, (day, _count) in self._counts.items() if day != today]
            for key in stale:
                del self._counts[key]
        return len(stale)


class RedisCounterStore:
    """Counters shared across instances; keys expire after the club's midnight."""

    def __init__(self, redis: Redis, prefix: str = "abuse") -> None:
        self.redis = redis
        self.prefix = prefix

    async def hit(self, key: str, day: date, limit: int) -> Tuple[bool, int]:
        redis_key = f"{self.prefix}:{key}:{day.isoformat()}"
        pipe = self.redis.pipeline()
        pipe.incr(redis_key)
        pipe.expireat(redis_key, _next_midnight_epoch(day))
        count, _ = await pipe.execute()
        count = int(count)
        if count > limit:
            return False, 0
        return True, limit - count

    async def purge(self, today: date) -> int:
        # Keys expire on their own; this only sweeps ones that lost their TTL
        suffix = today.isoformat()
        stale = [
            key
            async for key in self.redis.scan_iter(match=f"{self.prefix}:*")
            if not str(key).endswith(suffix)
        ]
        if stale:
            await self.redis.delete(*stale)
        return len(stale)

    async def close(self) -> None:
        await self.redis.aclose()


def _next_midnight_epoch(day: date) -> int:
    tz = get_club_timezone()
    midnight = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    # One hour grace so clock skew between app and Redis can't reopen a spent quota
    return int(midnight.timestamp()) + 3600


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int


class RateLimiter:
    """Calendar-day quota per source address for one category of action."""

    def __init__(
        self,
        category: str,
        limit: int,
        store: CounterStore,
        activity_log: SuspiciousActivityLog,
        clock: Callable[[], date] = club_today,
    ) -> None:
        self.category = category
        self.limit = limit
        self.store = store
        self.activity_log = activity_log
        self.clock = clock

    async def check(self, ip: str) -> RateLimitDecision:
        allowed, remaining = await self.store.hit(f"{self.category}:{ip}", self.clock(), self.limit)
        if not allowed:
            self.activity_log.record(
                ip,
                f"{self.category.upper()}_RATE_LIMIT",
                f"Exceeded {self.limit} {self.category}s/day",
            )
            prometheus_metrics.record_rate_limit_trip(self.category)
        return RateLimitDecision(allowed=allowed, remaining=remaining)


# --------------------------------------------------------------------------- #
# CAPTCHA verification
# --------------------------------------------------------------------------- #


class CaptchaVerifier:
    """Verify challenge tokens against a siteverify endpoint (hCaptcha by default)."""

    def __init__(
        self,
        *,
        secret_key: Optional[str] = None,
        verify_url: Optional[str] = None,
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key if secret_key is not None else settings.captcha_secret_key
        self.verify_url = verify_url or settings.captcha_verify_url
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    async def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> bool:
        """
        True when the provider confirms the token.

        With no secret configured every request passes; this is the documented
        development bypass.
        """
        if not self.secret_key:
            prometheus_metrics.record_captcha("bypassed")
            return True

        if not token:
            prometheus_metrics.record_captcha("missing")
            return False

        data = {"secret": self.secret_key, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.verify_url, data=data)
                result = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("CAPTCHA verification failed: %s", exc)
            prometheus_metrics.record_captcha("failed")
            return False

        passed = result.get("success") is True
        prometheus_metrics.record_captcha("passed" if passed else "failed")
        return passed


# --------------------------------------------------------------------------- #
# Guard facade
# --------------------------------------------------------------------------- #


class AbuseGuard:
    """
    Rate limiters, captcha and audit log for sensitive endpoints.

    Built once per application and handed to routes through dependency
    injection; tests construct their own isolated instances.
    """

    def __init__(
        self,
        *,
        store: Optional[CounterStore] = None,
        captcha: Optional[CaptchaVerifier] = None,
        activity_log: Optional[SuspiciousActivityLog] = None,
        clock: Callable[[], date] = club_today,
    ) -> None:
        self.store = store or InMemoryCounterStore()
        self.captcha = captcha or CaptchaVerifier()
        self.activity_log = activity_log or SuspiciousActivityLog()
        self.clock = clock
        self.bookings = RateLimiter(
            "booking", settings.booking_rate_limit_per_day, self.store, self.activity_log, clock
        )
        self.signups = RateLimiter(
            "signup", settings.signup_rate_limit_per_day, self.store, self.activity_log, clock
        )
        self.contact = RateLimiter(
            "contact", settings.contact_rate_limit_per_day, self.store, self.activity_log, clock
        )

    async def verify_captcha(self, token: Optional[str], ip: str, action: str, subject: str) -> Optional[str]:
        """
        Check a challenge token for an action.

        Returns:
            None when verification passed, "missing" or "failed" otherwise
        """
        if not self.captcha.enabled:
            await self.captcha.verify(token, ip)
            return None
        if not token:
            self.activity_log.record(ip, f"MISSING_CAPTCHA_{action}", f"No captcha token for {subject}")
            prometheus_metrics.record_captcha("missing")
            return "missing"
        if not await self.captcha.verify(token, ip):
            self.activity_log.record(ip, f"FAILED_CAPTCHA_{action}", f"Failed captcha for {subject}")
            return "failed"
        return None

    async def purge_stale(self) -> int:
        removed = await self.store.purge(self.clock())
        if removed:
            logger.info("Purged %s stale abuse counters", removed)
        return removed


def build_abuse_guard() -> AbuseGuard:
    """Guard wired from settings; Redis-backed when ABUSE_STORE=redis."""
    store: CounterStore
    if settings.abuse_store == "redis" and settings.redis_url:
        store = RedisCounterStore(Redis.from_url(settings.redis_url, decode_responses=True))
        logger.info("Abuse guard using Redis counters")
    else:
        store = InMemoryCounterStore()
    return AbuseGuard(store=store)


__all__ = [
    "AbuseGuard",
    "CaptchaVerifier",
    "InMemoryCounterStore",
    "RateLimitDecision",
    "RateLimiter",
    "RedisCounterStore",
    "SecurityEvent",
    "SuspiciousActivityLog",
    "build_abuse_guard",
    "client_ip",
]
