import base64
import hashlib
import hmac
import json

import pytest

from app.security import hashing

KEY = b"artist-command-center-test-key!!"
SECRET = "whsec_" + base64.b64encode(KEY).decode()
MSG_ID = "msg_2mPzXkq1"
BODY = json.dumps({"type": "email.opened", "data": {"email_id": "e-1"}}).encode()
NOW = 1_760_000_000


def _verify(signature, *, body=BODY, msg_id=MSG_ID, timestamp=str(NOW), now=NOW, secret=SECRET):
    hashing.verify_webhook_signature(secret, body, msg_id, timestamp, signature, now=now)


def test_signature_matches_svix_construction():
    digest = hmac.new(KEY, f"{MSG_ID}.{NOW}.".encode() + BODY, hashlib.sha256).digest()
    expected = "v1," + base64.b64encode(digest).decode()

    assert hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY) == expected


def test_valid_signature_passes():
    _verify(hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY), now=NOW + 10)


def test_secret_without_prefix_is_accepted():
    bare = base64.b64encode(KEY).decode()
    _verify(hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY), secret=bare)


def test_any_of_multiple_signatures_is_accepted():
    good = hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY)
    _verify(f"v1,bm90LXRoZS1zaWduYXR1cmU= {good}")


def test_unknown_versions_are_ignored():
    good = hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY)
    with pytest.raises(hashing.SignatureVerificationError, match="Malformed"):
        _verify("v2," + good.split(",", 1)[1])


def test_tampered_body_fails():
    signature = hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY)
    with pytest.raises(hashing.SignatureVerificationError, match="Invalid signature"):
        _verify(signature, body=BODY + b" ")


def test_signature_is_bound_to_message_id():
    signature = hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY)
    with pytest.raises(hashing.SignatureVerificationError, match="Invalid signature"):
        _verify(signature, msg_id="msg_other")


def test_wrong_secret_fails():
    other = "whsec_" + base64.b64encode(b"some-other-key").decode()
    signature = hashing.sign_webhook(other, MSG_ID, NOW, BODY)
    with pytest.raises(hashing.SignatureVerificationError):
        _verify(signature)


@pytest.mark.parametrize("now", [NOW + 301, NOW - 301])
def test_timestamp_outside_tolerance_fails(now):
    signature = hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY)
    with pytest.raises(hashing.SignatureVerificationError, match="tolerance"):
        _verify(signature, now=now)


@pytest.mark.parametrize(
    "msg_id, timestamp, signature",
    [
        (None, str(NOW), "v1,abc"),
        (MSG_ID, None, "v1,abc"),
        (MSG_ID, str(NOW), None),
        (MSG_ID, str(NOW), ""),
        (MSG_ID, "notanumber", "v1,abc"),
        (MSG_ID, str(NOW), "garbage"),
    ],
)
def test_missing_or_malformed_headers_fail(msg_id, timestamp, signature):
    with pytest.raises(hashing.SignatureVerificationError):
        _verify(signature, msg_id=msg_id, timestamp=timestamp)


def test_missing_secret_fails():
    signature = hashing.sign_webhook(SECRET, MSG_ID, NOW, BODY)
    with pytest.raises(hashing.SignatureVerificationError, match="not configured"):
        _verify(signature, secret=None)


def test_non_base64_secret_fails():
    with pytest.raises(hashing.SignatureVerificationError, match="base64"):
        _verify("v1,abc", secret="whsec_not base64!")
