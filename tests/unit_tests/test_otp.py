"""Tests for OTP generation and issuance."""

import re

import pytest

from auth_service.errors import ValidationError
from auth_service.services import otp as otp_mod
from auth_service.services.otp import OtpSender, generate_otp
from auth_service.services.otp_limiter import cooldown_key, otp_key
from tests.mocks.services import FailingStore, RecordingMailer

EMAIL = "ada@example.com"


class TestGenerateOtp:
    def test_always_four_digits(self):
        for _ in range(500):
            code = generate_otp()
            assert re.fullmatch(r"\d{4}", code)
            assert 1000 <= int(code) <= 9999

    @pytest.mark.parametrize("draw, expected", [(0, "1000"), (8999, "9999")])
    def test_range_bounds(self, monkeypatch, draw, expected):
        monkeypatch.setattr(otp_mod.secrets, "randbelow", lambda n: draw)
        assert generate_otp() == expected

    def test_draws_from_nine_thousand_values(self, monkeypatch):
        seen = []

        def fake_randbelow(n):
            seen.append(n)
            return 0

        monkeypatch.setattr(otp_mod.secrets, "randbelow", fake_randbelow)
        generate_otp()
        assert seen == [9000]


class TestSendOtp:
    async def test_success_mails_then_stores(self, sender, mailer, store):
        await sender.send_otp("Ada", EMAIL)

        mail = mailer.last
        assert mail.to == EMAIL
        assert mail.subject == "Verify your email"
        assert mail.template == "user-activation-mail"
        assert mail.data["name"] == "Ada"
        assert re.fullmatch(r"\d{4}", mail.data["otp"])

        assert await store.get(otp_key(EMAIL)) == mail.data["otp"]
        assert store.ttl(otp_key(EMAIL)) == pytest.approx(300)
        assert await store.get(cooldown_key(EMAIL)) == "true"
        assert store.ttl(cooldown_key(EMAIL)) == pytest.approx(60)

    async def test_template_is_passed_through(self, sender, mailer):
        await sender.send_otp("Ada", EMAIL, "forgot-password-user-mail")
        assert mailer.last.template == "forgot-password-user-mail"

    async def test_reissue_overwrites_code(self, sender, mailer, store, clock):
        await sender.send_otp("Ada", EMAIL)
        clock.advance(200)
        await sender.send_otp("Ada", EMAIL)

        assert await store.get(otp_key(EMAIL)) == mailer.last_otp()
        assert store.ttl(otp_key(EMAIL)) == pytest.approx(300)

    async def test_delivery_failure_stores_nothing(self, store):
        sender = OtpSender(store, RecordingMailer(succeed=False))

        with pytest.raises(ValidationError, match="Error sending OTP"):
            await sender.send_otp("Ada", EMAIL)

        assert await store.get(otp_key(EMAIL)) is None
        assert await store.get(cooldown_key(EMAIL)) is None

    async def test_storage_failure_after_delivery_still_fails(self):
        mailer = RecordingMailer()
        sender = OtpSender(FailingStore(fail_on={"set"}), mailer)

        with pytest.raises(ValidationError, match="Error sending OTP"):
            await sender.send_otp("Ada", EMAIL)

        # The email went out regardless
        assert len(mailer.sent) == 1
