"""Tests for the OTP rate limiter and lock state machine."""

import pytest

from auth_service.services.otp_limiter import (
    OtpError,
    OtpRateLimiter,
    OtpResult,
    cooldown_key,
    failed_attempts_key,
    mask_email,
    otp_key,
    request_count_key,
    spam_lock_key,
    verify_lock_key,
)
from tests.mocks.services import FailingStore

EMAIL = "ada@example.com"


async def _seed_otp(store, code="4321"):
    await store.set(otp_key(EMAIL), code, 300)


# ── check_restrictions ─────────────────────────────────────────────────────


class TestCheckRestrictions:
    async def test_fresh_email_is_not_blocked(self, limiter):
        result = await limiter.check_restrictions("nobody@example.com")
        assert result == OtpResult.clear()
        assert result.ok

    async def test_cooldown_blocks(self, limiter, store):
        await store.set(cooldown_key(EMAIL), "true", 60)
        result = await limiter.check_restrictions(EMAIL)
        assert result.blocked
        assert result.error is OtpError.COOLDOWN
        assert result.message == "Please wait 1 minute before requesting another OTP"

    async def test_spam_lock_wins_over_cooldown(self, limiter, store):
        await store.set(cooldown_key(EMAIL), "true", 60)
        await store.set(spam_lock_key(EMAIL), "locked", 3600)
        result = await limiter.check_restrictions(EMAIL)
        assert result.error is OtpError.SPAM_LOCKED
        assert "1 hour" in result.message

    async def test_verify_lock_wins_over_everything(self, limiter, store):
        await store.set(cooldown_key(EMAIL), "true", 60)
        await store.set(spam_lock_key(EMAIL), "locked", 3600)
        await store.set(verify_lock_key(EMAIL), "locked", 1800)
        result = await limiter.check_restrictions(EMAIL)
        assert result.error is OtpError.VERIFY_LOCKED
        assert "30 minutes" in result.message

    async def test_cooldown_expires(self, limiter, store, clock):
        await store.set(cooldown_key(EMAIL), "true", 60)
        clock.advance(60)
        assert (await limiter.check_restrictions(EMAIL)).ok

    async def test_read_only(self, limiter, store):
        await limiter.check_restrictions(EMAIL)
        assert store.ttl(request_count_key(EMAIL)) is None
        assert store.ttl(spam_lock_key(EMAIL)) is None

    async def test_store_failure_fails_open(self):
        limiter = OtpRateLimiter(FailingStore())
        result = await limiter.check_restrictions(EMAIL)
        assert result.ok
        assert result.error is None


# ── track_requests ─────────────────────────────────────────────────────────


class TestTrackRequests:
    async def test_first_two_requests_pass(self, limiter, store):
        assert (await limiter.track_requests(EMAIL)).ok
        assert await store.get(request_count_key(EMAIL)) == "1"
        assert (await limiter.track_requests(EMAIL)).ok
        assert await store.get(request_count_key(EMAIL)) == "2"

    async def test_third_request_sets_spam_lock(self, limiter, store):
        await limiter.track_requests(EMAIL)
        await limiter.track_requests(EMAIL)

        result = await limiter.track_requests(EMAIL)

        assert result.blocked
        assert result.error is OtpError.SPAM_LOCKED
        assert await store.get(spam_lock_key(EMAIL)) == "locked"
        assert store.ttl(spam_lock_key(EMAIL)) == pytest.approx(3600)
        # The counter is left as it was
        assert await store.get(request_count_key(EMAIL)) == "2"

    async def test_counter_ttl_refreshes_each_request(self, limiter, store, clock):
        await limiter.track_requests(EMAIL)
        clock.advance(3000)
        await limiter.track_requests(EMAIL)
        assert store.ttl(request_count_key(EMAIL)) == pytest.approx(3600)

    async def test_window_expiry_resets_count(self, limiter, store, clock):
        await limiter.track_requests(EMAIL)
        await limiter.track_requests(EMAIL)
        clock.advance(3600)
        assert (await limiter.track_requests(EMAIL)).ok
        assert await store.get(request_count_key(EMAIL)) == "1"

    async def test_spam_lock_then_blocks_check(self, limiter):
        for _ in range(3):
            await limiter.track_requests(EMAIL)
        result = await limiter.check_restrictions(EMAIL)
        assert result.error is OtpError.SPAM_LOCKED

    async def test_emails_are_independent(self, limiter):
        for _ in range(3):
            await limiter.track_requests(EMAIL)
        assert (await limiter.track_requests("other@example.com")).ok

    @pytest.mark.parametrize("fail_on", [{"get"}, {"set"}])
    async def test_store_failure_fails_closed(self, fail_on):
        limiter = OtpRateLimiter(FailingStore(fail_on=fail_on))
        result = await limiter.track_requests(EMAIL)
        assert result.blocked
        assert result.error is OtpError.TRACKING_FAILED
        assert result.message == "Error tracking OTP requests"


# ── verify_otp ─────────────────────────────────────────────────────────────


class TestVerifyOtp:
    async def test_missing_code_is_invalid_or_expired(self, limiter, store):
        result = await limiter.verify_otp(EMAIL, "1234")
        assert result.error is OtpError.INVALID_OR_EXPIRED
        assert result.message == "Invalid or expired OTP"
        assert store.ttl(failed_attempts_key(EMAIL)) is None

    async def test_expired_code_is_invalid_or_expired(self, limiter, store, clock):
        await _seed_otp(store)
        clock.advance(300)
        result = await limiter.verify_otp(EMAIL, "4321")
        assert result.error is OtpError.INVALID_OR_EXPIRED

    async def test_correct_code_succeeds_and_is_consumed(self, limiter, store):
        await _seed_otp(store)
        await store.set(failed_attempts_key(EMAIL), "1", 300)

        assert (await limiter.verify_otp(EMAIL, "4321")).ok

        assert await store.get(otp_key(EMAIL)) is None
        assert await store.get(failed_attempts_key(EMAIL)) is None
        again = await limiter.verify_otp(EMAIL, "4321")
        assert again.error is OtpError.INVALID_OR_EXPIRED

    async def test_wrong_codes_count_down_then_lock(self, limiter, store):
        await _seed_otp(store)

        first = await limiter.verify_otp(EMAIL, "0000")
        assert first.error is OtpError.INCORRECT
        assert first.message == "Incorrect OTP, you have 2 attempt(s) left"
        assert await store.get(failed_attempts_key(EMAIL)) == "1"

        second = await limiter.verify_otp(EMAIL, "0000")
        assert second.error is OtpError.INCORRECT
        assert second.message == "Incorrect OTP, you have 1 attempt(s) left"
        assert await store.get(failed_attempts_key(EMAIL)) == "2"

        third = await limiter.verify_otp(EMAIL, "0000")
        assert third.error is OtpError.ATTEMPTS_EXCEEDED
        assert third.message == "Too many failed attempts. Account locked for 30 minutes"
        assert await store.get(verify_lock_key(EMAIL)) == "locked"
        assert store.ttl(verify_lock_key(EMAIL)) == pytest.approx(1800)
        assert await store.get(failed_attempts_key(EMAIL)) is None

        # The lock is enforced by check_restrictions, ahead of verify_otp
        gate = await limiter.check_restrictions(EMAIL)
        assert gate.error is OtpError.VERIFY_LOCKED

    async def test_failed_attempts_ttl_refreshes(self, limiter, store, clock):
        await store.set(otp_key(EMAIL), "4321", 3600)
        await limiter.verify_otp(EMAIL, "0000")
        clock.advance(250)
        await limiter.verify_otp(EMAIL, "0000")
        assert store.ttl(failed_attempts_key(EMAIL)) == pytest.approx(300)

    async def test_failures_do_not_touch_request_counter(self, limiter, store):
        await _seed_otp(store)
        await limiter.verify_otp(EMAIL, "0000")
        assert await store.get(request_count_key(EMAIL)) is None

    async def test_store_failure_fails_closed(self):
        limiter = OtpRateLimiter(FailingStore())
        result = await limiter.verify_otp(EMAIL, "4321")
        assert result.blocked
        assert result.error is OtpError.VERIFY_FAILED
        assert result.message == "Error verifying OTP"

    async def test_delete_failure_on_success_fails_closed(self):
        store = FailingStore(fail_on={"delete"})
        await store.set(otp_key(EMAIL), "4321", 300)
        result = await OtpRateLimiter(store).verify_otp(EMAIL, "4321")
        assert result.error is OtpError.VERIFY_FAILED


def test_mask_email():
    assert mask_email("alice@example.com") == "a***@example.com"
    assert mask_email("not-an-email") == "***"
