"""
Resend REST API email provider.
"""

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.email.base import EmailResult, OutboundEmail, unsubscribe_headers

logger = get_logger(__name__)

REQUEST_TIMEOUT = 15  # seconds


class ResendEmailProvider:
    """
    Sends one email per request through POST /emails.

    No retries here: a timeout may still have delivered the message, and the
    caller rolls back quota on any failure.
    """

    name = "resend"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_from: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key or settings.RESEND_API_KEY
        self.base_url = (base_url or settings.RESEND_API_URL).rstrip("/")
        self.default_from = default_from or settings.default_from_address()
        self._client = client

    def _build_payload(self, message: OutboundEmail) -> dict:
        headers = {**message.headers, **unsubscribe_headers(message.unsubscribe_url)}

        payload = {
            "from": message.from_address or self.default_from,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        if headers:
            payload["headers"] = headers
        if message.tags:
            payload["tags"] = [{"name": k, "value": v} for k, v in message.tags.items()]
        return payload

    async def send(self, message: OutboundEmail) -> EmailResult:
        if not self.api_key:
            return EmailResult(success=False, error="Resend API key not configured")

        payload = self._build_payload(message)
        request_headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client:
                response = await self._client.post(
                    f"{self.base_url}/emails", json=payload, headers=request_headers
                )
            else:
                async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
                    response = await client.post(
                        f"{self.base_url}/emails", json=payload, headers=request_headers
                    )
        except httpx.HTTPError as e:
            logger.error("Resend request failed", error=str(e), error_type=type(e).__name__)
            return EmailResult(success=False, error=f"Resend request failed: {e}")

        if response.status_code >= 400:
            error = _error_message(response)
            logger.warning("Resend rejected email", status_code=response.status_code, error=error)
            return EmailResult(success=False, error=error)

        message_id = _message_id(response)
        if message_id is None:
            # The email was accepted; only the id used to match webhooks is missing
            logger.warning(
                "Resend accepted email without a readable id",
                status_code=response.status_code,
                body=response.text[:200],
            )
        else:
            logger.debug("Resend accepted email", message_id=message_id)
        return EmailResult(success=True, message_id=message_id)


def _message_id(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return data.get("id")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Resend error {response.status_code}: {response.text[:200]}"
    if not isinstance(data, dict):
        return f"Resend error {response.status_code}"
    return data.get("message") or data.get("error") or f"Resend error {response.status_code}"
