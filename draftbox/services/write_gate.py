"""Mutual-exclusion gate serializing every write to the draft store.

There is exactly one gate per store. Callers either use `acquire`/`release`
directly or, preferably, the `hold` context manager which always releases.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError

logger = logging.getLogger(__name__)


class WriteGateBusy(Exception):
    """The gate could not be acquired before the timeout expired."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(f"Write gate {name!r} busy after {timeout:.1f}s")
        self.name = name
        self.timeout = timeout


class WriteGateError(Exception):
    """The lock service itself failed."""


@dataclass
class GateToken:
    """Proof of ownership returned by a successful acquire."""

    name: str
    value: str = field(default_factory=lambda: uuid.uuid4().hex)
    acquired_at: float = field(default_factory=time.monotonic)
    handle: Any = field(default=None, repr=False)


class WriteGate(ABC):
    """A single named lock with timeout-bounded acquisition."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def acquire(self, timeout: float) -> GateToken | None:
        """Wait up to `timeout` seconds for the lock. Returns None when busy."""
        ...

    @abstractmethod
    async def release(self, token: GateToken) -> None:
        """Release a token obtained from `acquire`."""
        ...

    @asynccontextmanager
    async def hold(self, timeout: float) -> AsyncIterator[GateToken]:
        """Hold the gate for the duration of the block.

        Raises:
            WriteGateBusy: if the gate was not acquired within `timeout`.
        """
        token = await self.acquire(timeout)
        if token is None:
            raise WriteGateBusy(self.name, timeout)
        try:
            yield token
        finally:
            await self.release(token)

    async def ping(self) -> bool:
        return True


class LocalWriteGate(WriteGate):
    """In-process gate backed by an asyncio.Lock.

    Only serializes writers that share one event loop, i.e. a single worker.
    Use `RedisWriteGate` when several workers write to the same store.
    """

    def __init__(self, name: str = "draftbox:drafts:write") -> None:
        super().__init__(name)
        self._lock = asyncio.Lock()
        self._owner: str | None = None

    async def acquire(self, timeout: float) -> GateToken | None:
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        token = GateToken(name=self.name)
        self._owner = token.value
        return token

    async def release(self, token: GateToken) -> None:
        if self._owner != token.value or not self._lock.locked():
            logger.warning("Ignoring release of gate %s by a token that does not hold it", self.name)
            return
        self._owner = None
        self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()


class RedisWriteGate(WriteGate):
    """Process-wide gate backed by a named Redis lock.

    The lease bounds how long a crashed holder can keep the store locked.
    """

    def __init__(self, client: aioredis.Redis, name: str, lease_seconds: float = 30.0) -> None:
        super().__init__(name)
        self._redis = client
        self._lease_seconds = lease_seconds

    async def acquire(self, timeout: float) -> GateToken | None:
        lock = self._redis.lock(
            self.name,
            timeout=self._lease_seconds,
            blocking=True,
            blocking_timeout=timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise WriteGateError(f"Could not reach lock service: {type(e).__name__}") from e
        if not acquired:
            return None
        return GateToken(name=self.name, handle=lock)

    async def release(self, token: GateToken) -> None:
        if token.handle is None:
            logger.warning("Ignoring release of gate %s by a token without a lock handle", self.name)
            return
        lock, token.handle = token.handle, None
        try:
            await lock.release()
        except LockError:
            # Lease expired or another holder took over; nothing left to release.
            logger.warning("Gate %s was no longer owned at release time", self.name)
        except RedisError as e:
            logger.error("Failed to release gate %s: %s", self.name, e)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False


def get_write_gate(settings) -> WriteGate:
    """Build the gate configured in settings."""
    if settings.write_gate_backend == "redis":
        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        return RedisWriteGate(client, settings.write_gate_name, settings.write_gate_lease_seconds)
    return LocalWriteGate(settings.write_gate_name)
