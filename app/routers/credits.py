from fastapi import APIRouter, Depends, Request

from app.core.http import created, from_request, ok, to_starlette
from app.core.identity import IdentityResolver
from app.core.request_adapter import RequestAdapter, RequestAdapterOptions, parse_json_body
from app.dependencies import get_billing_service, get_identity_resolver
from app.schemas.credits import CreateApiKeyInput, GetUserCreditsInput
from app.services.billing_service import BillingService

router = APIRouter()


@router.get("/credits")
async def get_credits(request: Request, service: BillingService = Depends(get_billing_service),
                      resolver: IdentityResolver = Depends(get_identity_resolver)):
    adapter = RequestAdapter(
        GetUserCreditsInput,
        service.get_user_credits,
        lambda event, identity: {"user_id": identity.principal_id, "key_id": identity.credential_id},
        ok,
        RequestAdapterOptions(require_body=False),
        identity_resolver=resolver,
        name="get_user_credits",
    )
    return to_starlette(await adapter(await from_request(request)))


def parse_create_key(event, identity):
    body = parse_json_body(event) or {}
    return {"name": body.get("name"), "expires": body.get("expires"), "user_id": identity.principal_id}


@router.post("/api-keys")
async def create_api_key(request: Request, service: BillingService = Depends(get_billing_service),
                         resolver: IdentityResolver = Depends(get_identity_resolver)):
    adapter = RequestAdapter(
        CreateApiKeyInput,
        service.create_api_key,
        parse_create_key,
        created,
        RequestAdapterOptions(require_body=False),
        identity_resolver=resolver,
        name="create_api_key",
    )
    return to_starlette(await adapter(await from_request(request)))
