"""Duplicate action suppression.

A fingerprint is derived from the logical action plus a coarse time bucket
and marked in a ``DedupStore`` before any state is touched. The entry is
cleared as soon as the action finishes (successfully or not); its TTL only
covers crashed or hung requests.
"""
import hashlib
import json
import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis.asyncio as redis
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class DedupResult(BaseModel):
    is_duplicate: bool
    time_remaining: Optional[int] = None  # seconds, rounded up


class DedupStore:
    """Key-value store with expiry semantics. Values are absolute expiry timestamps."""

    async def put(self, key: str, expiry: float) -> None:
        raise NotImplementedError

    async def get(self, key: str) -> Optional[float]:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def add(self, key: str, expiry: float, now: float) -> Optional[float]:
        """Store ``key`` unless an unexpired entry exists; return that entry's expiry if so."""
        existing = await self.get(key)
        if existing is not None and existing > now:
            return existing
        await self.put(key, expiry)
        return None


class InMemoryDedupStore(DedupStore):
    """Per-process store. Only suppresses duplicates that reach the same worker."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock

    async def put(self, key: str, expiry: float) -> None:
        with self._lock:
            self._entries[key] = expiry

    async def get(self, key: str) -> Optional[float]:
        with self._lock:
            return self._entries.get(key)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def add(self, key: str, expiry: float, now: float) -> Optional[float]:
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and existing > now:
                return existing
            self._entries[key] = expiry
            return None

    def purge_expired(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        with self._lock:
            expired = [key for key, expiry in self._entries.items() if expiry <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def pending_count(self) -> int:
        self.purge_expired()
        with self._lock:
            return len(self._entries)


class RedisDedupStore(DedupStore):
    """Shared store for multi-worker deployments, backed by ``redis.asyncio``."""

    def __init__(self, redis_url: str, prefix: str = "workflow:dedup:", clock: Callable[[], float] = time.time):
        self._redis = redis.from_url(redis_url, decode_responses=True)
        self._prefix = prefix
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _ttl_ms(self, expiry: float) -> int:
        return max(1, int((expiry - self._clock()) * 1000))

    async def put(self, key: str, expiry: float) -> None:
        await self._redis.set(self._key(key), repr(expiry), px=self._ttl_ms(expiry))

    async def get(self, key: str) -> Optional[float]:
        value = await self._redis.get(self._key(key))
        return float(value) if value is not None else None

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def add(self, key: str, expiry: float, now: float) -> Optional[float]:
        stored = await self._redis.set(self._key(key), repr(expiry), px=self._ttl_ms(expiry), nx=True)
        if stored:
            return None
        existing = await self.get(key)
        if existing is None:
            # Expired between SET NX and GET
            return await self.add(key, expiry, now)
        return existing

    async def close(self) -> None:
        await self._redis.aclose()


class Fingerprint(str):
    """Digest for the current time bucket.

    ``previous`` is the digest of the same action in the bucket before, so a
    retry that lands just after a bucket boundary still meets the original.
    """

    previous: Optional[str] = None


class DedupGuard:
    def __init__(self, store: DedupStore, ttl_seconds: float = 15, clock: Callable[[], float] = time.time):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def fingerprint(
        self,
        request_id: str,
        action: str,
        approver_role: str,
        approver_name: str,
        now: Optional[float] = None,
    ) -> Fingerprint:
        payload = {
            "request_id": request_id,
            "action": action,
            "approver_role": approver_role,
            "approver_name": approver_name,
        }
        return self._bucketed(payload, now)

    def submission_fingerprint(self, user_id: str, operation: str, data: Dict[str, Any],
                               now: Optional[float] = None) -> Fingerprint:
        """Fingerprint for a create/submit call, keyed by the submitter and the payload."""
        payload = {
            "user_id": user_id,
            "operation": operation,
            "data": data,
        }
        return self._bucketed(payload, now)

    def _bucketed(self, payload: Dict[str, Any], now: Optional[float]) -> Fingerprint:
        now = self._clock() if now is None else now
        bucket = int(now // self.ttl_seconds)
        fingerprint = Fingerprint(self._digest(dict(payload, bucket=bucket)))
        fingerprint.previous = self._digest(dict(payload, bucket=bucket - 1))
        return fingerprint

    @staticmethod
    def _digest(payload: Dict[str, Any]) -> str:
        encoded = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    async def check_and_mark(self, fingerprint: str, ttl_seconds: Optional[float] = None) -> DedupResult:
        now = self._clock()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        existing = await self.store.add(fingerprint, now + ttl, now)
        if existing is None:
            previous = getattr(fingerprint, "previous", None)
            if previous is not None:
                existing = await self.store.get(previous)
                if existing is not None and existing > now:
                    await self.store.delete(fingerprint)
                else:
                    existing = None
        if existing is not None:
            remaining = math.ceil(existing - now)
            logger.warning(f"Duplicate action detected for fingerprint {fingerprint[:12]}..., {remaining}s remaining")
            return DedupResult(is_duplicate=True, time_remaining=max(1, remaining))
        return DedupResult(is_duplicate=False)

    async def mark_completed(self, fingerprint: str) -> None:
        await self.store.delete(fingerprint)


def build_dedup_store(backend: str, redis_url: Optional[str] = None) -> DedupStore:
    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL must be set when DEDUP_BACKEND is 'redis'")
        logger.info("Using Redis dedup store")
        return RedisDedupStore(redis_url)
    return InMemoryDedupStore()
