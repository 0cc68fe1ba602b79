"""Email providers and service logging/propagation."""

import json

import httpx
import pytest

from buddy.email.service import EmailDeliveryError, EmailService, ResendProvider, SMTPProvider, _create_provider


def _resend(handler):
    return ResendProvider(
        api_key="re_test",
        from_address="digest@example.com",
        from_name="Buddy",
        transport=httpx.MockTransport(handler),
    )


class TestResendProvider:
    @pytest.mark.asyncio
    async def test_posts_expected_payload(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_123"})

        await _resend(handler).send("ada@example.com", "Subject", "<p>hi</p>", "hi")

        assert captured["auth"] == "Bearer re_test"
        assert captured["body"] == {
            "from": "Buddy <digest@example.com>",
            "to": ["ada@example.com"],
            "subject": "Subject",
            "html": "<p>hi</p>",
            "text": "hi",
        }

    @pytest.mark.asyncio
    async def test_api_error_raises_delivery_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, text="invalid to address")

        with pytest.raises(EmailDeliveryError, match="Resend API error 422: invalid to address"):
            await _resend(handler).send("bad", "s", "<p/>", "t")

    @pytest.mark.asyncio
    async def test_network_error_raises_delivery_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(EmailDeliveryError, match="Resend request failed"):
            await _resend(handler).send("ada@example.com", "s", "<p/>", "t")


class TestEmailService:
    @pytest.mark.asyncio
    async def test_send_delegates_to_provider(self, make_provider):
        provider = make_provider()
        await EmailService(provider=provider).send_email("ada@example.com", "Hello", "<p>x</p>", "x")
        assert provider.sent == [{"to": "ada@example.com", "subject": "Hello", "html": "<p>x</p>", "text": "x"}]

    @pytest.mark.asyncio
    async def test_failure_propagates(self, make_provider):
        provider = make_provider(fail_for=("ada@example.com",))
        with pytest.raises(EmailDeliveryError, match="mailbox unavailable"):
            await EmailService(provider=provider).send_email("ada@example.com", "Hello", "<p>x</p>", "x")
        assert provider.attempts == ["ada@example.com"]


class TestProviderFactory:
    def test_resend_is_default(self):
        assert isinstance(_create_provider(), ResendProvider)

    def test_smtp_selected_by_setting(self, monkeypatch):
        from buddy.config import get_settings

        monkeypatch.setenv("BUDDY_EMAIL_PROVIDER", "smtp")
        monkeypatch.setenv("BUDDY_SMTP_HOST", "mail.example.com")
        get_settings.cache_clear()
        provider = _create_provider()
        assert isinstance(provider, SMTPProvider)
        assert provider.host == "mail.example.com"

    def test_unknown_provider_rejected(self, monkeypatch):
        from buddy.config import get_settings

        monkeypatch.setenv("BUDDY_EMAIL_PROVIDER", "pigeon")
        get_settings.cache_clear()
        with pytest.raises(ValueError, match="Unsupported email provider"):
            _create_provider()
