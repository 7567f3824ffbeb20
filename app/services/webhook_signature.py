import base64
import hashlib
import hmac
import time
from typing import Optional
from app.core.errors import AuthenticationError
from app.schemas.envelopes import HttpEvent


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        return base64.b64decode(secret[len("whsec_"):])
    return secret.encode()


def _check_timestamp(timestamp: str, tolerance_s: int, now: Optional[float]):
    try:
        ts = int(timestamp)
    except ValueError:
        raise AuthenticationError("Invalid webhook timestamp")
    if abs((now if now is not None else time.time()) - ts) > tolerance_s:
        raise AuthenticationError("Webhook timestamp outside tolerance")


def sign(secret: str, msg_id: str, timestamp: str, body: str) -> str:
    to_sign = f"{msg_id}.{timestamp}.{body}".encode()
    digest = hmac.new(_secret_bytes(secret), to_sign, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode()


def verify_webhook_signature(event: HttpEvent, secret: str, tolerance_s: int = 300,
                             now: Optional[float] = None):
    """Check svix-style headers; raises AuthenticationError on any mismatch."""
    msg_id = event.header("svix-id")
    timestamp = event.header("svix-timestamp")
    signatures = event.header("svix-signature")
    if not secret or not msg_id or not timestamp or not signatures:
        raise AuthenticationError("Missing webhook signature")

    _check_timestamp(timestamp, tolerance_s, now)

    expected = sign(secret, msg_id, timestamp, event.body or "")
    # header may carry several space-separated signatures
    for candidate in signatures.split():
        if hmac.compare_digest(candidate, expected):
            return
    raise AuthenticationError("Invalid webhook signature")


def sign_payment_event(secret: str, timestamp: str, body: str) -> str:
    return hmac.new(secret.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256).hexdigest()


def verify_payment_signature(event: HttpEvent, secret: str, tolerance_s: int = 300,
                             now: Optional[float] = None):
    """Check a Stripe-style `t=<ts>,v1=<hex>` header over "{ts}.{body}"."""
    header = event.header("stripe-signature")
    if not secret or not header:
        raise AuthenticationError("Missing webhook signature")

    pairs = [part.split("=", 1) for part in header.split(",") if "=" in part]
    timestamp = next((v for k, v in pairs if k.strip() == "t"), None)
    candidates = [v for k, v in pairs if k.strip() == "v1"]
    if not timestamp or not candidates:
        raise AuthenticationError("Malformed webhook signature")
    _check_timestamp(timestamp, tolerance_s, now)

    expected = sign_payment_event(secret, timestamp, event.body or "")
    for candidate in candidates:
        if hmac.compare_digest(candidate, expected):
            return
    raise AuthenticationError("Invalid webhook signature")
