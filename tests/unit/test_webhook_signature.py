import pytest

from app.core.errors import AuthenticationError
from app.schemas.envelopes import HttpEvent
from app.services.webhook_signature import (
    sign,
    sign_payment_event,
    verify_payment_signature,
    verify_webhook_signature,
)

SECRET = "whsec_dGVzdC13ZWJob29rLXNlY3JldA=="
NOW = 1_700_000_000


def signed_event(body='{"type":"user.created"}', secret=SECRET, timestamp=NOW, signature=None):
    ts = str(timestamp)
    return HttpEvent(method="POST", body=body, headers={
        "svix-id": "msg_1",
        "svix-timestamp": ts,
        "svix-signature": signature or sign(secret, "msg_1", ts, body),
    })


def test_valid_signature_passes():
    verify_webhook_signature(signed_event(), SECRET, now=NOW)


def test_any_of_several_signatures_may_match():
    event = signed_event()
    event.headers["svix-signature"] = "v1,bogus " + event.headers["svix-signature"]
    verify_webhook_signature(event, SECRET, now=NOW)


def test_plain_secrets_are_supported():
    verify_webhook_signature(signed_event(secret="plain"), "plain", now=NOW)


@pytest.mark.parametrize("event, message", [
    (signed_event(secret="whsec_b3RoZXI="), "Invalid webhook signature"),
    (signed_event(timestamp=NOW - 3600), "outside tolerance"),
    (signed_event(signature="v1,abc", timestamp="soon"), "Invalid webhook timestamp"),
    (HttpEvent(method="POST", body="{}"), "Missing webhook signature"),
])
def test_rejections(event, message):
    with pytest.raises(AuthenticationError, match=message):
        verify_webhook_signature(event, SECRET, now=NOW)


def test_tampered_body_is_rejected():
    event = signed_event()
    event.body = '{"type":"user.deleted"}'
    with pytest.raises(AuthenticationError):
        verify_webhook_signature(event, SECRET, now=NOW)


def test_missing_secret_rejects_everything():
    with pytest.raises(AuthenticationError):
        verify_webhook_signature(signed_event(), "", now=NOW)


PAYMENT_SECRET = "whsec_payment"


def payment_event(body='{"type":"checkout.session.completed"}', header=None, timestamp=NOW):
    if header is None:
        header = f"t={timestamp},v1={sign_payment_event(PAYMENT_SECRET, str(timestamp), body)}"
    return HttpEvent(method="POST", body=body, headers={"Stripe-Signature": header})


def test_payment_signature_passes():
    verify_payment_signature(payment_event(), PAYMENT_SECRET, now=NOW)


def test_payment_signature_accepts_any_v1_candidate():
    good = payment_event().headers["stripe-signature"]
    verify_payment_signature(payment_event(header=f"{good},v1=deadbeef,v0=ignored"), PAYMENT_SECRET, now=NOW)


@pytest.mark.parametrize("event, message", [
    (payment_event(header=f"t={NOW},v1=deadbeef"), "Invalid webhook signature"),
    (payment_event(header="v1=deadbeef"), "Malformed webhook signature"),
    (payment_event(timestamp=NOW - 3600), "outside tolerance"),
    (HttpEvent(method="POST", body="{}"), "Missing webhook signature"),
])
def test_payment_signature_rejections(event, message):
    with pytest.raises(AuthenticationError, match=message):
        verify_payment_signature(event, PAYMENT_SECRET, now=NOW)
