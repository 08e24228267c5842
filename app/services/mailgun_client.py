"""
Mailgun domains API client.

Only used to register artist sending domains and check their DNS; email
delivery itself goes through app.services.email.
"""

from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REQUEST_TIMEOUT = 15  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 1


class MailgunError(Exception):
    """Custom exception for Mailgun API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MailgunClient:
    """Synchronous client; call from async code through asyncio.to_thread."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key or settings.MAILGUN_API_KEY
        self.base_url = (base_url or settings.MAILGUN_BASE_URL).rstrip("/")
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()

        retry_strategy = Retry(
            total=MAX_RETRIES,
            backoff_factor=BACKOFF_FACTOR,
            status_forcelist=[429, 500, 502, 503, 504],
            # Domain creation is not idempotent on Mailgun's side
            allowed_methods=["GET", "PUT", "DELETE"],
        )
        session.mount("https://", HTTPAdapter(max_retries=retry_strategy))
        return session

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        if not self.api_key:
            raise MailgunError("Mailgun API key not configured")

        try:
            response = self._session.request(
                method,
                f"{self.base_url}{path}",
                auth=("api", self.api_key),
                timeout=REQUEST_TIMEOUT,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error("Mailgun request failed", method=method, path=path, error=str(e))
            raise MailgunError(f"Mailgun request failed: {e}") from e

        if not response.ok:
            try:
                message = response.json().get("message") or response.text[:200]
            except ValueError:
                message = response.text[:200]
            logger.error(
                "Mailgun API error", method=method, path=path, status_code=response.status_code
            )
            raise MailgunError(f"Mailgun error: {message}", status_code=response.status_code)

        return response.json() if response.text else {}

    def create_domain(self, name: str) -> dict[str, Any]:
        """Register the domain and return the DNS records the artist must add."""
        data = self._request("POST", "/domains", data={"name": name})
        return build_dns_records(name, data.get("sending_dns_records") or [])

    def verify_domain(self, name: str) -> dict[str, bool]:
        data = self._request("PUT", f"/domains/{name}/verify")
        return summarize_verification(name, data.get("sending_dns_records") or [])

    def delete_domain(self, name: str) -> None:
        self._request("DELETE", f"/domains/{name}")


def _classify(record: dict[str, Any]) -> str | None:
    value = record.get("value") or ""
    record_type = (record.get("record_type") or "").upper()
    if record_type == "TXT" and value.startswith("v=spf1"):
        return "spf"
    if record_type == "TXT" and "domainkey" in (record.get("name") or ""):
        return "dkim"
    if record_type == "TXT" and value.startswith("v=DMARC1"):
        return "dmarc"
    if record_type == "CNAME":
        return "tracking"
    return None


def build_dns_records(domain: str, records: list[dict[str, Any]]) -> dict[str, Any]:
    dns: dict[str, Any] = {}
    for record in records:
        kind = _classify(record)
        if kind and kind not in dns:
            dns[kind] = {
                "type": record.get("record_type"),
                "name": record.get("name"),
                "value": record.get("value"),
            }

    # Mailgun does not manage DMARC; recommend a monitoring-only policy
    dns.setdefault(
        "dmarc",
        {"type": "TXT", "name": f"_dmarc.{domain}", "value": "v=DMARC1; p=none;"},
    )
    return dns


def summarize_verification(domain: str, records: list[dict[str, Any]]) -> dict[str, bool]:
    valid = {"spf": False, "dkim": False, "dmarc": False}
    for record in records:
        kind = _classify(record)
        if kind in valid and record.get("valid") == "valid":
            valid[kind] = True

    return {"verified": valid["spf"] and valid["dkim"], **valid}
