from fastapi import APIRouter, Depends, Request

from app.config import BILLING_WEBHOOK_SECRET, WEBHOOK_SIGNING_SECRET, WEBHOOK_TOLERANCE_SECONDS
from app.core.http import from_request, ok, to_starlette
from app.core.request_adapter import RequestAdapter, RequestAdapterOptions, parse_json_body
from app.dependencies import get_billing_service, get_registration_service
from app.schemas.credits import BillingWebhookEvent
from app.schemas.users import AuthWebhookEvent
from app.services.billing_service import BillingService
from app.services.registration_service import RegistrationService
from app.services.webhook_signature import verify_payment_signature, verify_webhook_signature

router = APIRouter()


def get_webhook_secret() -> str:
    return WEBHOOK_SIGNING_SECRET


def get_billing_webhook_secret() -> str:
    return BILLING_WEBHOOK_SECRET


@router.post("/webhooks/auth")
async def auth_webhook(request: Request, service: RegistrationService = Depends(get_registration_service),
                       secret: str = Depends(get_webhook_secret)):
    def parse(event, _identity):
        verify_webhook_signature(event, secret, WEBHOOK_TOLERANCE_SECONDS)
        return parse_json_body(event)

    adapter = RequestAdapter(
        AuthWebhookEvent,
        service.process_webhook,
        parse,
        ok,
        RequestAdapterOptions(require_auth=False),
        name="auth_webhook",
    )
    return to_starlette(await adapter(await from_request(request)))


@router.post("/webhooks/billing")
async def billing_webhook(request: Request, service: BillingService = Depends(get_billing_service),
                          secret: str = Depends(get_billing_webhook_secret)):
    def parse(event, _identity):
        verify_payment_signature(event, secret, WEBHOOK_TOLERANCE_SECONDS)
        return parse_json_body(event)

    adapter = RequestAdapter(
        BillingWebhookEvent,
        service.process_payment_webhook,
        parse,
        lambda result: ok({"received": True, "result": result}),
        RequestAdapterOptions(require_auth=False),
        name="billing_webhook",
    )
    return to_starlette(await adapter(await from_request(request)))
