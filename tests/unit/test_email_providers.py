import json
import smtplib

import httpx
import pytest

from app.services.email import ResendEmailProvider, SmtpEmailProvider, get_email_provider
from app.services.email.base import OutboundEmail


def _message(**overrides) -> OutboundEmail:
    values = {
        "to": "fan@example.com",
        "subject": "Out now",
        "html": "<p>Listen</p>",
        "unsubscribe_url": "https://app.example.com/api/unsubscribe?token=abc",
        "tags": {"campaign_id": "c-1"},
    }
    values.update(overrides)
    return OutboundEmail(**values)


def _resend(handler) -> ResendEmailProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResendEmailProvider(
        api_key="re_test",
        base_url="https://api.resend.test",
        default_from="Artist <artist@example.com>",
        client=client,
    )


@pytest.mark.asyncio
async def test_resend_success_builds_expected_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "re-123"})

    result = await _resend(handler).send(_message())

    assert result.success is True
    assert result.message_id == "re-123"
    assert seen["url"] == "https://api.resend.test/emails"
    assert seen["auth"] == "Bearer re_test"
    body = seen["body"]
    assert body["to"] == ["fan@example.com"]
    assert body["from"] == "Artist <artist@example.com>"
    assert body["headers"]["List-Unsubscribe"] == "<https://app.example.com/api/unsubscribe?token=abc>"
    assert body["headers"]["List-Unsubscribe-Post"] == "List-Unsubscribe=One-Click"
    assert body["tags"] == [{"name": "campaign_id", "value": "c-1"}]


@pytest.mark.asyncio
async def test_resend_error_is_reported_not_raised():
    def handler(request):
        return httpx.Response(422, json={"statusCode": 422, "message": "Invalid `to` field"})

    result = await _resend(handler).send(_message())

    assert result.success is False
    assert result.error == "Invalid `to` field"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="OK"),
        httpx.Response(202, content=b""),
        httpx.Response(200, json=["re-123"]),
    ],
)
async def test_resend_accepted_without_json_id_is_still_success(response):
    result = await _resend(lambda request: response).send(_message())

    assert result.success is True
    assert result.message_id is None


@pytest.mark.asyncio
async def test_resend_error_with_non_json_body():
    def handler(request):
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    result = await _resend(handler).send(_message())

    assert result.success is False
    assert result.error.startswith("Resend error 502")


@pytest.mark.asyncio
async def test_resend_network_error_is_reported():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    result = await _resend(handler).send(_message())

    assert result.success is False
    assert "connection refused" in result.error


@pytest.mark.asyncio
async def test_resend_without_api_key_fails_fast():
    provider = ResendEmailProvider(api_key=None)
    provider.api_key = None

    result = await provider.send(_message())

    assert result.success is False


def test_smtp_message_has_unsubscribe_headers_and_message_id():
    provider = SmtpEmailProvider(host="smtp.test", default_from="Artist <artist@example.com>")

    msg = provider.build_message(_message(reply_to="manager@example.com"))

    assert msg["To"] == "fan@example.com"
    assert msg["Reply-To"] == "manager@example.com"
    assert msg["List-Unsubscribe-Post"] == "List-Unsubscribe=One-Click"
    assert msg["Message-ID"].endswith("@example.com>")


@pytest.mark.asyncio
async def test_smtp_failure_is_reported(monkeypatch):
    provider = SmtpEmailProvider(host="smtp.test", default_from="artist@example.com")

    def _fail(msg):
        raise smtplib.SMTPRecipientsRefused({"fan@example.com": (550, b"no such user")})

    monkeypatch.setattr(provider, "_deliver", _fail)

    result = await provider.send(_message())

    assert result.success is False
    assert "SMTP delivery failed" in result.error


def test_factory_selects_provider(monkeypatch):
    monkeypatch.setattr("app.services.email.settings.EMAIL_PROVIDER", "smtp")
    assert isinstance(get_email_provider(), SmtpEmailProvider)

    monkeypatch.setattr("app.services.email.settings.EMAIL_PROVIDER", "resend")
    assert isinstance(get_email_provider(), ResendEmailProvider)

    monkeypatch.setattr("app.services.email.settings.EMAIL_PROVIDER", "carrier-pigeon")
    with pytest.raises(ValueError):
        get_email_provider()
