"""
HMAC-SHA256 helpers for webhook signature verification.

Resend signs webhooks with Svix. Each delivery carries three headers:

    svix-id:         msg_<id>
    svix-timestamp:  <unix seconds>
    svix-signature:  v1,<base64 hmac> [v1,<base64 hmac> ...]

The signed content is "<svix-id>.<svix-timestamp>.<raw request body>", keyed
with the base64-decoded part of the secret after its "whsec_" prefix.
Several space separated signatures may be present while secrets rotate;
any match is accepted.
"""

import base64
import binascii
import hashlib
import hmac
import time

DEFAULT_TOLERANCE_SECONDS = 300
SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"

__all__ = [
    "SignatureVerificationError",
    "decode_secret",
    "sign_webhook",
    "verify_webhook_signature",
]


class SignatureVerificationError(RuntimeError):
    """Raised when a webhook signature is missing, malformed, stale or wrong."""


def decode_secret(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX) :]
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureVerificationError("Webhook secret is not valid base64") from e


def _signature(key: bytes, msg_id: str, timestamp: str, payload: bytes) -> str:
    signed = f"{msg_id}.{timestamp}.".encode() + payload
    return base64.b64encode(hmac.new(key, signed, hashlib.sha256).digest()).decode()


def sign_webhook(secret: str, msg_id: str, timestamp: int | str, payload: bytes) -> str:
    """Produce a svix-signature header value. Used by tests and local tooling."""
    key = decode_secret(secret)
    return f"{SIGNATURE_VERSION},{_signature(key, msg_id, str(timestamp), payload)}"


def _candidate_signatures(signature_header: str) -> list[str]:
    candidates = []
    for entry in signature_header.split():
        version, sep, value = entry.partition(",")
        if sep and version == SIGNATURE_VERSION and value:
            candidates.append(value)
    return candidates


def verify_webhook_signature(
    secret: str | None,
    payload: bytes,
    msg_id: str | None,
    timestamp: str | None,
    signature_header: str | None,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: float | None = None,
) -> None:
    """
    Verify a Svix-signed webhook body. Raises SignatureVerificationError on failure.

    Args:
        secret: Webhook signing secret ("whsec_<base64>")
        payload: Raw request body, exactly as received
        msg_id: Value of the svix-id header
        timestamp: Value of the svix-timestamp header
        signature_header: Value of the svix-signature header
        tolerance: Maximum age (seconds) of the signed timestamp, either direction
        now: Current unix time, for tests
    """
    if not secret:
        raise SignatureVerificationError("Webhook secret is not configured")
    if not msg_id or not timestamp or not signature_header:
        raise SignatureVerificationError("Missing signature headers")

    try:
        sent_at = int(timestamp)
    except ValueError as e:
        raise SignatureVerificationError("Invalid signature timestamp") from e

    now = time.time() if now is None else now
    if abs(now - sent_at) > tolerance:
        raise SignatureVerificationError("Signature timestamp outside tolerance window")

    candidates = _candidate_signatures(signature_header)
    if not candidates:
        raise SignatureVerificationError("Malformed signature header")

    expected = _signature(decode_secret(secret), msg_id, timestamp, payload)
    if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
        raise SignatureVerificationError("Invalid signature")
