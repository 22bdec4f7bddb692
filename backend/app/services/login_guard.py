"""Login attempt guard.

Throttles brute-force password guessing per identity (email). After
``limit`` consecutive failed checks the identity is locked until
``cooldown`` has passed since the last failure. The lock is lifted lazily
on the next attempt, there is no background timer.

Attempts for the same identity are serialized with a per-identity lock that
is held across the credential check, so parallel guesses cannot overshoot
the limit. Different identities never wait on each other.

The attempt table is process-local. Every worker keeps its own counters and
a restart forgets them.
"""

import asyncio
import logging
import math
import time
from collections import OrderedDict
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from app.core.config import settings
from app.core.exceptions import InvalidCredentialsError, TooManyAttemptsError
from app.core.logging import mask_email

logger = logging.getLogger(__name__)

CredentialCheck = Callable[[str, str], Awaitable[Any]]
Clock = Callable[[], float]


def normalize_identity(identity: str) -> str:
    return identity.strip().lower()


@dataclass
class AttemptRecord:
    """Failure history for one identity."""

    failure_count: int = 0
    last_failure_at: float | None = None
    locked_until: float | None = None

    def reset(self) -> None:
        self.failure_count = 0
        self.last_failure_at = None
        self.locked_until = None

    def is_locked(self, now: float) -> bool:
        return self.locked_until is not None and now < self.locked_until


@dataclass(frozen=True)
class LockStatus:
    locked: bool
    failure_count: int
    retry_after: int | None = None


class AttemptStore:
    """In-memory attempt table with per-identity locks.

    Holds at most ``max_entries`` records. When a new identity would exceed
    the cap, the least recently used records are evicted, skipping records
    that somebody currently holds and records whose lockout is still
    running. If only such records remain the table grows past the cap until
    their lockouts expire.

    ``clock`` must be the same time source the guard uses, since
    ``locked_until`` is compared against it.
    """

    def __init__(self, max_entries: int = 10000, clock: Clock = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._records: OrderedDict[str, AttemptRecord] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def peek(self, key: str) -> AttemptRecord | None:
        """Return the record without locking or touching LRU order."""
        return self._records.get(key)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[AttemptRecord]:
        """Lock ``key`` and yield its record for read-modify-write."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                record = self._records.get(key)
                if record is None:
                    record = AttemptRecord()
                try:
                    yield record
                finally:
                    self._store(key, record)
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def _store(self, key: str, record: AttemptRecord) -> None:
        # Clear records carry no information
        if record.failure_count == 0:
            self._records.pop(key, None)
            return
        self._records[key] = record
        self._records.move_to_end(key)
        self._evict()

    def _evict(self) -> None:
        overflow = len(self._records) - self.max_entries
        if overflow <= 0:
            return
        now = self._clock()
        for key, record in list(self._records.items()):
            if overflow <= 0:
                break
            if key in self._waiters or record.is_locked(now):
                continue
            del self._records[key]
            overflow -= 1
            logger.debug("Evicted login attempt record for %s", mask_email(key))
        if overflow > 0:
            logger.warning(
                "Login attempt table over capacity by %d, remaining records are locked or held",
                overflow,
            )


class LoginAttemptGuard:
    """Decides whether a login may reach the credential check."""

    def __init__(
        self,
        store: AttemptStore | None = None,
        limit: int = 5,
        cooldown: float = 30 * 60,
        clock: Clock = time.monotonic,
    ):
        """Initialize the guard.

        Args:
            store: Attempt table sharing ``clock``, a private one is created
                when omitted
            limit: Consecutive failures that lock the identity
            cooldown: Seconds after the last failure before a lock expires
            clock: Monotonic time source in seconds
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.store = store if store is not None else AttemptStore(clock=clock)
        self.limit = limit
        self.cooldown = cooldown
        self._clock = clock

    async def attempt_login(
        self,
        identity: str,
        password: str,
        credential_check: CredentialCheck,
    ) -> Any:
        """Run ``credential_check`` unless the identity is locked out.

        Returns:
            The payload returned by ``credential_check``

        Raises:
            TooManyAttemptsError: Identity is locked and the cooldown is running
            InvalidCredentialsError: The check returned a falsy result
            Exception: Anything raised by ``credential_check``, uncounted
        """
        key = normalize_identity(identity)
        if not key:
            raise ValueError("identity must be a non-empty string")

        async with self.store.hold(key) as record:
            if record.failure_count >= self.limit:
                remaining = self._remaining_cooldown(record)
                if remaining > 0:
                    logger.warning(
                        "Rejected login for locked identity %s (%d failures)",
                        mask_email(key),
                        record.failure_count,
                    )
                    raise TooManyAttemptsError(identity, math.ceil(remaining))
                logger.info("Login lockout expired for %s", mask_email(key))
                record.reset()

            result = await credential_check(identity, password)

            if not result:
                record.failure_count += 1
                record.last_failure_at = self._clock()
                if record.failure_count >= self.limit:
                    record.locked_until = record.last_failure_at + self.cooldown
                    logger.warning(
                        "Locking %s after %d failed login attempts",
                        mask_email(key),
                        record.failure_count,
                    )
                raise InvalidCredentialsError(identity, record.failure_count)

            record.reset()
            return result

    def status(self, identity: str) -> LockStatus:
        """Report the lock state of ``identity`` without changing it."""
        record = self.store.peek(normalize_identity(identity))
        if record is None:
            return LockStatus(locked=False, failure_count=0)
        if record.failure_count >= self.limit:
            remaining = self._remaining_cooldown(record)
            if remaining > 0:
                return LockStatus(
                    locked=True,
                    failure_count=record.failure_count,
                    retry_after=math.ceil(remaining),
                )
            return LockStatus(locked=False, failure_count=0)
        return LockStatus(locked=False, failure_count=record.failure_count)

    async def reset(self, identity: str) -> None:
        """Clear the failure history of ``identity``."""
        key = normalize_identity(identity)
        async with self.store.hold(key) as record:
            record.reset()
        logger.info("Login attempts reset for %s", mask_email(key))

    def _remaining_cooldown(self, record: AttemptRecord) -> float:
        if record.last_failure_at is None:
            return 0.0
        return self.cooldown - (self._clock() - record.last_failure_at)


_login_guard: LoginAttemptGuard | None = None


def get_login_guard() -> LoginAttemptGuard:
    """Return the process-wide guard, built from settings on first use."""
    global _login_guard
    if _login_guard is None:
        _login_guard = LoginAttemptGuard(
            store=AttemptStore(max_entries=settings.LOGIN_ATTEMPT_MAX_ENTRIES),
            limit=settings.LOGIN_ATTEMPT_LIMIT,
            cooldown=settings.LOGIN_COOLDOWN_MINUTES * 60,
        )
    return _login_guard
