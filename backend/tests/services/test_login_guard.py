"""Tests for the login attempt guard."""

import asyncio

import pytest

from app.core.exceptions import InvalidCredentialsError, TooManyAttemptsError
from app.services.login_guard import AttemptStore, LockStatus, LoginAttemptGuard

PAYLOAD = {"email": "a@x.com", "name": "A", "user_id": "1"}


class CredentialCheckStub:
    """Scripted credential check that records every call."""

    def __init__(self, default=None, delay: float = 0):
        self.default = default
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, identity: str, password: str):
        self.calls.append((identity, password))
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.default
        if isinstance(result, Exception):
            raise result
        return result


async def fail_times(guard: LoginAttemptGuard, identity: str, times: int) -> None:
    check = CredentialCheckStub(default=None)
    for _ in range(times):
        with pytest.raises(InvalidCredentialsError):
            await guard.attempt_login(identity, "wrong", check)


class TestAttemptLogin:
    @pytest.mark.asyncio
    async def test_success_returns_payload(self, login_guard):
        check = CredentialCheckStub(default=PAYLOAD)

        result = await login_guard.attempt_login("a@x.com", "right", check)

        assert result == PAYLOAD
        assert check.calls == [("a@x.com", "right")]

    @pytest.mark.asyncio
    async def test_failure_counts_and_raises(self, login_guard):
        check = CredentialCheckStub(default=None)

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await login_guard.attempt_login("a@x.com", "wrong", check)

        assert exc_info.value.failure_count == 1
        assert login_guard.store.peek("a@x.com").failure_count == 1

    @pytest.mark.asyncio
    async def test_locks_after_limit(self, login_guard):
        """5 failures within a minute, 6th attempt is rejected without a check."""
        await fail_times(login_guard, "a@x.com", 5)
        check = CredentialCheckStub(default=PAYLOAD)

        with pytest.raises(TooManyAttemptsError) as exc_info:
            await login_guard.attempt_login("a@x.com", "right", check)

        assert check.calls == []
        assert exc_info.value.retry_after == 30 * 60
        assert login_guard.store.peek("a@x.com").failure_count == 5

    @pytest.mark.asyncio
    async def test_rejection_does_not_mutate_record(self, login_guard, clock):
        await fail_times(login_guard, "a@x.com", 5)
        record = login_guard.store.peek("a@x.com")
        last_failure_at = record.last_failure_at

        clock.advance(60)
        for _ in range(3):
            with pytest.raises(TooManyAttemptsError):
                await login_guard.attempt_login("a@x.com", "x", CredentialCheckStub())

        assert record.failure_count == 5
        assert record.last_failure_at == last_failure_at

    @pytest.mark.asyncio
    async def test_retry_after_shrinks_with_time(self, login_guard, clock):
        await fail_times(login_guard, "a@x.com", 5)
        clock.advance(10 * 60 + 0.5)

        with pytest.raises(TooManyAttemptsError) as exc_info:
            await login_guard.attempt_login("a@x.com", "x", CredentialCheckStub())

        assert exc_info.value.retry_after == 20 * 60

    @pytest.mark.asyncio
    async def test_cooldown_elapsed_reaches_check(self, login_guard, clock):
        """Locked, then 31 minutes later the check runs again."""
        await fail_times(login_guard, "a@x.com", 5)
        clock.advance(31 * 60)
        check = CredentialCheckStub(default=PAYLOAD)

        result = await login_guard.attempt_login("a@x.com", "right", check)

        assert result == PAYLOAD
        assert len(check.calls) == 1
        assert "a@x.com" not in login_guard.store

    @pytest.mark.asyncio
    async def test_failure_after_cooldown_restarts_at_one(self, login_guard, clock):
        await fail_times(login_guard, "a@x.com", 5)
        clock.advance(30 * 60)

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await login_guard.attempt_login("a@x.com", "wrong", CredentialCheckStub())

        assert exc_info.value.failure_count == 1

    @pytest.mark.asyncio
    async def test_success_resets_count(self, login_guard):
        """3 failures then a success: the next failure is number 1, not 4."""
        await fail_times(login_guard, "a@x.com", 3)
        await login_guard.attempt_login("a@x.com", "right", CredentialCheckStub(default=PAYLOAD))

        assert "a@x.com" not in login_guard.store

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await login_guard.attempt_login("a@x.com", "wrong", CredentialCheckStub())
        assert exc_info.value.failure_count == 1

    @pytest.mark.asyncio
    async def test_success_just_below_limit_resets(self, login_guard):
        await fail_times(login_guard, "a@x.com", 4)

        await login_guard.attempt_login("a@x.com", "right", CredentialCheckStub(default=PAYLOAD))
        await fail_times(login_guard, "a@x.com", 4)

        assert login_guard.status("a@x.com").locked is False

    @pytest.mark.asyncio
    async def test_check_errors_pass_through_uncounted(self, login_guard):
        await fail_times(login_guard, "a@x.com", 2)
        check = CredentialCheckStub(default=ConnectionError("db down"))

        with pytest.raises(ConnectionError, match="db down"):
            await login_guard.attempt_login("a@x.com", "pw", check)

        assert login_guard.store.peek("a@x.com").failure_count == 2

    @pytest.mark.asyncio
    async def test_check_error_on_clear_identity_leaves_no_record(self, login_guard):
        with pytest.raises(RuntimeError):
            await login_guard.attempt_login(
                "a@x.com", "pw", CredentialCheckStub(default=RuntimeError("boom"))
            )

        assert len(login_guard.store) == 0

    @pytest.mark.asyncio
    async def test_identity_is_case_insensitive(self, login_guard):
        await fail_times(login_guard, "A@X.com", 3)
        await fail_times(login_guard, " a@x.COM ", 2)

        with pytest.raises(TooManyAttemptsError):
            await login_guard.attempt_login("a@x.com", "pw", CredentialCheckStub())

    @pytest.mark.asyncio
    async def test_check_receives_identity_as_given(self, login_guard):
        check = CredentialCheckStub(default=PAYLOAD)

        await login_guard.attempt_login("A@x.com", "pw", check)

        assert check.calls == [("A@x.com", "pw")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", ["", "   "])
    async def test_blank_identity_rejected(self, login_guard, identity):
        check = CredentialCheckStub(default=PAYLOAD)

        with pytest.raises(ValueError):
            await login_guard.attempt_login(identity, "pw", check)

        assert check.calls == []

    @pytest.mark.asyncio
    async def test_identities_are_independent(self, login_guard):
        await fail_times(login_guard, "a@x.com", 5)

        result = await login_guard.attempt_login(
            "b@x.com", "pw", CredentialCheckStub(default=PAYLOAD)
        )

        assert result == PAYLOAD

    @pytest.mark.asyncio
    async def test_custom_limit_and_cooldown(self, clock):
        guard = LoginAttemptGuard(limit=2, cooldown=60, clock=clock)
        await fail_times(guard, "a@x.com", 2)

        with pytest.raises(TooManyAttemptsError) as exc_info:
            await guard.attempt_login("a@x.com", "pw", CredentialCheckStub())
        assert exc_info.value.retry_after == 60

        clock.advance(60)
        result = await guard.attempt_login("a@x.com", "pw", CredentialCheckStub(default=PAYLOAD))
        assert result == PAYLOAD

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            LoginAttemptGuard(limit=0)


class TestStatusAndReset:
    @pytest.mark.asyncio
    async def test_status_unknown_identity(self, login_guard):
        status = login_guard.status("nobody@x.com")

        assert status.locked is False
        assert status.failure_count == 0
        assert status.retry_after is None

    @pytest.mark.asyncio
    async def test_status_accumulating(self, login_guard):
        await fail_times(login_guard, "a@x.com", 3)

        status = login_guard.status("a@x.com")

        assert status.locked is False
        assert status.failure_count == 3

    @pytest.mark.asyncio
    async def test_status_locked_then_expired(self, login_guard, clock):
        await fail_times(login_guard, "a@x.com", 5)

        status = login_guard.status("a@x.com")
        assert status.locked is True
        assert status.retry_after == 30 * 60

        clock.advance(30 * 60)
        status = login_guard.status("a@x.com")
        assert status.locked is False
        assert status.failure_count == 0
        # Expiry is lazy, the record is only cleared by the next attempt
        assert login_guard.store.peek("a@x.com").failure_count == 5

    @pytest.mark.asyncio
    async def test_reset_unlocks(self, login_guard):
        await fail_times(login_guard, "a@x.com", 5)

        await login_guard.reset("A@x.com")

        assert "a@x.com" not in login_guard.store
        result = await login_guard.attempt_login(
            "a@x.com", "pw", CredentialCheckStub(default=PAYLOAD)
        )
        assert result == PAYLOAD


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_parallel_failures_are_all_counted(self, clock):
        guard = LoginAttemptGuard(limit=100, clock=clock)
        check = CredentialCheckStub(default=None, delay=0.001)

        results = await asyncio.gather(
            *(guard.attempt_login("a@x.com", "wrong", check) for _ in range(20)),
            return_exceptions=True,
        )

        assert all(isinstance(r, InvalidCredentialsError) for r in results)
        assert sorted(r.failure_count for r in results) == list(range(1, 21))
        assert guard.store.peek("a@x.com").failure_count == 20

    @pytest.mark.asyncio
    async def test_parallel_guesses_cannot_pass_limit(self, login_guard):
        """Only LIMIT checks run no matter how many guesses race."""
        check = CredentialCheckStub(default=None, delay=0.001)

        results = await asyncio.gather(
            *(login_guard.attempt_login("a@x.com", "guess", check) for _ in range(12)),
            return_exceptions=True,
        )

        assert len(check.calls) == 5
        assert sum(isinstance(r, InvalidCredentialsError) for r in results) == 5
        assert sum(isinstance(r, TooManyAttemptsError) for r in results) == 7
        assert login_guard.store.peek("a@x.com").failure_count == 5

    @pytest.mark.asyncio
    async def test_same_identity_checks_never_overlap(self, login_guard):
        in_flight = 0
        max_in_flight = 0

        async def check(identity, password):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1
            return PAYLOAD

        await asyncio.gather(*(login_guard.attempt_login("a@x.com", "pw", check) for _ in range(5)))

        assert max_in_flight == 1

    @pytest.mark.asyncio
    async def test_different_identities_run_in_parallel(self, login_guard):
        """A slow check for one identity must not hold up another."""
        release = asyncio.Event()
        fast_done = asyncio.Event()

        async def slow_check(identity, password):
            await release.wait()
            return PAYLOAD

        async def fast_check(identity, password):
            fast_done.set()
            return None

        slow = asyncio.create_task(login_guard.attempt_login("a@x.com", "pw", slow_check))
        await asyncio.sleep(0)

        with pytest.raises(InvalidCredentialsError):
            await asyncio.wait_for(
                login_guard.attempt_login("b@x.com", "pw", fast_check), timeout=1
            )
        assert fast_done.is_set()
        assert not slow.done()

        release.set()
        assert await slow == PAYLOAD
        assert login_guard.store.peek("b@x.com").failure_count == 1

    @pytest.mark.asyncio
    async def test_locks_are_released(self, login_guard):
        await asyncio.gather(
            *(
                login_guard.attempt_login(f"user{i}@x.com", "pw", CredentialCheckStub(default=PAYLOAD))
                for i in range(10)
            )
        )

        assert login_guard.store._locks == {}
        assert login_guard.store._waiters == {}


class TestAttemptStore:
    @pytest.mark.asyncio
    async def test_evicts_least_recently_used(self, clock):
        guard = LoginAttemptGuard(store=AttemptStore(max_entries=3, clock=clock), clock=clock)

        for identity in ["a@x.com", "b@x.com", "c@x.com"]:
            await fail_times(guard, identity, 1)
        # Touch a@x.com so b@x.com becomes the oldest
        await fail_times(guard, "a@x.com", 1)
        await fail_times(guard, "d@x.com", 1)

        assert len(guard.store) == 3
        assert "b@x.com" not in guard.store
        assert guard.store.peek("a@x.com").failure_count == 2

    @pytest.mark.asyncio
    async def test_held_records_are_not_evicted(self):
        store = AttemptStore(max_entries=1)
        async with store.hold("a@x.com") as record:
            record.failure_count = 1

        async with store.hold("a@x.com"):
            async with store.hold("b@x.com") as other:
                other.failure_count = 1
            # Both were held when b@x.com was stored
            assert len(store) == 2

        assert len(store) == 1
        assert store.peek("a@x.com").failure_count == 1

    @pytest.mark.asyncio
    async def test_flood_of_identities_keeps_active_lock(self, clock):
        guard = LoginAttemptGuard(store=AttemptStore(max_entries=3, clock=clock), clock=clock)
        await fail_times(guard, "victim@x.com", 5)

        for i in range(3):
            await fail_times(guard, f"junk{i}@x.com", 1)

        assert len(guard.store) == 3
        assert "junk0@x.com" not in guard.store
        assert guard.status("victim@x.com") == LockStatus(
            locked=True, failure_count=5, retry_after=1800
        )
        check = CredentialCheckStub(default=PAYLOAD)
        with pytest.raises(TooManyAttemptsError):
            await guard.attempt_login("victim@x.com", "right", check)
        assert check.calls == []

    @pytest.mark.asyncio
    async def test_table_grows_past_cap_when_all_records_locked(self, clock):
        guard = LoginAttemptGuard(
            store=AttemptStore(max_entries=1, clock=clock), limit=2, clock=clock
        )

        await fail_times(guard, "a@x.com", 2)
        await fail_times(guard, "b@x.com", 2)

        assert len(guard.store) == 2
        assert guard.status("a@x.com").locked
        assert guard.status("b@x.com").locked

    @pytest.mark.asyncio
    async def test_expired_locks_are_evictable(self, clock):
        guard = LoginAttemptGuard(store=AttemptStore(max_entries=1, clock=clock), clock=clock)
        await fail_times(guard, "a@x.com", 5)
        clock.advance(30 * 60)

        await fail_times(guard, "b@x.com", 1)

        assert "a@x.com" not in guard.store
        assert guard.store.peek("b@x.com").failure_count == 1

    @pytest.mark.asyncio
    async def test_clear_records_are_dropped(self):
        store = AttemptStore()

        async with store.hold("a@x.com") as record:
            assert record.failure_count == 0

        assert len(store) == 0

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError):
            AttemptStore(max_entries=0)


def test_get_login_guard_is_built_from_settings(monkeypatch):
    from app.services import login_guard as module

    monkeypatch.setattr(module, "_login_guard", None)
    monkeypatch.setattr(module.settings, "LOGIN_ATTEMPT_LIMIT", 3)
    monkeypatch.setattr(module.settings, "LOGIN_COOLDOWN_MINUTES", 10)
    monkeypatch.setattr(module.settings, "LOGIN_ATTEMPT_MAX_ENTRIES", 50)

    guard = module.get_login_guard()

    assert guard.limit == 3
    assert guard.cooldown == 600
    assert guard.store.max_entries == 50
    assert module.get_login_guard() is guard
