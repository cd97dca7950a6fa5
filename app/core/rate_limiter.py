"""
=============================================================================
CARLORA - FORM RATE LIMITER MODULE
=============================================================================
Per-client throttling for the public lead-capture forms, with a Redis
backend and an in-memory fallback.

Features:
- Redis-backed counters (INCR + EXPIRE) for multi-instance consistency
- Automatic fallback to in-memory when Redis is unavailable
- Trusted-proxy validation for X-Forwarded-For
- Fixed window: N submissions per client IP per window, shared by all forms

Usage:
    from app.api.deps import get_rate_limiter

    limiter = get_rate_limiter()
    result = await limiter.hit(client_ip)
    if not result.success:
        ...
=============================================================================
"""

import asyncio
import ipaddress
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Dict, List, Optional, Tuple

import structlog
from fastapi import Request

from app.core.config import Settings

logger = structlog.get_logger(__name__)


# =============================================================================
# BACKEND ABSTRACTION
# =============================================================================


class _RateLimitBackend(ABC):
    """Abstract rate-limit storage backend."""

    name: str = "abstract"

    @abstractmethod
    def increment(self, key: str, ttl_seconds: int) -> int:
        """Increment counter and return new value. TTL applied on first create."""

    @abstractmethod
    def reset(self) -> None:
        """Clear all state (for tests)."""

    @abstractmethod
    def stats(self) -> dict:
        """Return debugging stats."""


class _InMemoryBackend(_RateLimitBackend):
    """Thread-safe in-memory backend (single-instance only)."""

    name = "in_memory"

    def __init__(self, clock=time.monotonic) -> None:
        self._lock = Lock()
        self._clock = clock
        self._counts: Dict[str, Tuple[int, float]] = {}

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._counts.items() if expires_at <= now]
        for key in expired:
            del self._counts[key]

    def increment(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            count, expires_at = self._counts.get(key, (0, now + ttl_seconds))
            count += 1
            self._counts[key] = (count, expires_at)
            return count

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                "backend": self.name,
                "tracked_keys": len(self._counts),
                "counts": {k: c for k, (c, _) in self._counts.items()},
            }


class _RedisBackend(_RateLimitBackend):
    """Redis-backed rate-limit storage for multi-instance deployments."""

    name = "redis"

    def __init__(self, redis_client) -> None:  # type: ignore[type-arg]
        self._redis = redis_client

    def increment(self, key: str, ttl_seconds: int) -> int:
        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, ttl_seconds, nx=True)  # set TTL only on first creation
        results = pipe.execute()
        return int(results[0])

    def reset(self) -> None:
        cursor = 0
        while True:
            cursor, keys = self._redis.scan(cursor, match="rl:*", count=500)
            if keys:
                self._redis.delete(*keys)
            if cursor == 0:
                break

    def stats(self) -> dict:
        counts = {}
        cursor = 0
        while True:
            cursor, keys = self._redis.scan(cursor, match="rl:*", count=500)
            for k in keys:
                key_str = k if isinstance(k, str) else k.decode()
                val = self._redis.get(k)
                counts[key_str] = int(val) if val else 0
            if cursor == 0:
                break
        return {"backend": self.name, "counts": counts}


def init_backend(redis_url: Optional[str]) -> _RateLimitBackend:
    """Use Redis when a URL is configured and reachable, in-memory otherwise."""
    if not redis_url:
        logger.info("rate_limiter_backend", backend=_InMemoryBackend.name)
        return _InMemoryBackend()

    try:
        import redis as _redis_lib

        client = _redis_lib.Redis.from_url(
            redis_url, decode_responses=True, socket_connect_timeout=2
        )
        client.ping()
        logger.info("rate_limiter_backend", backend=_RedisBackend.name)
        return _RedisBackend(client)
    except Exception as exc:
        logger.warning(
            "rate_limiter_redis_unavailable",
            fallback=_InMemoryBackend.name,
            error=str(exc),
        )
        return _InMemoryBackend()


# =============================================================================
# IP EXTRACTION
# =============================================================================


def parse_trusted_networks(
    entries: List[str],
) -> List[ipaddress.IPv4Network | ipaddress.IPv6Network]:
    """Parse TRUSTED_PROXIES entries into network objects."""
    nets = []
    for entry in entries:
        try:
            nets.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("invalid_trusted_proxy_ignored", entry=entry)
    return nets


def _is_trusted_proxy(
    ip_str: str, networks: List[ipaddress.IPv4Network | ipaddress.IPv6Network]
) -> bool:
    """Check if an IP belongs to the configured trusted proxy ranges."""
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(addr in net for net in networks)


def get_client_ip(
    request: Request, networks: List[ipaddress.IPv4Network | ipaddress.IPv6Network]
) -> str:
    """Extract client IP, trusting X-Forwarded-For only from trusted proxies."""
    direct_ip = request.client.host if request.client else "unknown"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and _is_trusted_proxy(direct_ip, networks):
        # Rightmost untrusted IP is the real client
        parts = [p.strip() for p in forwarded.split(",")]
        for ip in reversed(parts):
            if not _is_trusted_proxy(ip, networks):
                return ip
        # All IPs in chain are trusted, use leftmost
        return parts[0]

    return direct_ip


# =============================================================================
# FORM RATE LIMITER
# =============================================================================


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int


class FormRateLimiter:
    """Fixed-window limiter keyed by client identity."""

    def __init__(
        self,
        backend: _RateLimitBackend,
        limit: int,
        window_seconds: int,
        trusted_networks: Optional[List[ipaddress.IPv4Network | ipaddress.IPv6Network]] = None,
    ) -> None:
        self.backend = backend
        self.limit = limit
        self.window_seconds = window_seconds
        self.trusted_networks = trusted_networks or []

    @classmethod
    def from_settings(cls, settings: Settings) -> "FormRateLimiter":
        return cls(
            backend=init_backend(settings.REDIS_URL),
            limit=settings.FORM_RATE_LIMIT,
            window_seconds=settings.FORM_RATE_WINDOW_SECONDS,
            trusted_networks=parse_trusted_networks(settings.TRUSTED_PROXIES),
        )

    def identify(self, request: Request) -> str:
        return get_client_ip(request, self.trusted_networks)

    async def hit(self, identity: str) -> RateLimitResult:
        """Count one submission for ``identity`` and report whether it is allowed."""
        key = f"rl:form:{identity}"
        count = await asyncio.to_thread(self.backend.increment, key, self.window_seconds)
        return RateLimitResult(
            success=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
        )

    def reset(self) -> None:
        """Clear limiter state. Intended for tests."""
        self.backend.reset()

    def stats(self) -> dict:
        stats = self.backend.stats()
        stats.update(limit=self.limit, window_seconds=self.window_seconds)
        return stats
