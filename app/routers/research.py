from fastapi import APIRouter, Depends, Request

from app.core.http import accepted, from_request, ok, to_starlette
from app.core.identity import IdentityResolver
from app.core.request_adapter import RequestAdapter, RequestAdapterOptions, parse_json_body
from app.dependencies import get_identity_resolver, get_research_service
from app.schemas.research import GetAllUserResearchInput, GetResearchInput, RequestResearchInput
from app.services.research_service import ResearchService

router = APIRouter()


def parse_research_request(event, identity):
    body = parse_json_body(event) or {}
    # research ids are always generated server-side
    body.pop("id", None)
    return {**body, "user_id": identity.principal_id, "key_id": identity.credential_id}


@router.post("/research")
async def request_research(request: Request, service: ResearchService = Depends(get_research_service),
                           resolver: IdentityResolver = Depends(get_identity_resolver)):
    adapter = RequestAdapter(
        RequestResearchInput,
        service.request_research,
        parse_research_request,
        accepted,
        RequestAdapterOptions(required_fields=["prompt"]),
        identity_resolver=resolver,
        name="request_research",
    )
    return to_starlette(await adapter(await from_request(request)))


@router.get("/research")
async def list_research(request: Request, service: ResearchService = Depends(get_research_service),
                        resolver: IdentityResolver = Depends(get_identity_resolver)):
    adapter = RequestAdapter(
        GetAllUserResearchInput,
        service.list_research,
        lambda event, identity: {"user_id": identity.principal_id},
        ok,
        RequestAdapterOptions(require_body=False),
        identity_resolver=resolver,
        name="get_all_user_research",
    )
    return to_starlette(await adapter(await from_request(request)))


@router.get("/research/{research_id}")
async def get_research(research_id: str, request: Request, service: ResearchService = Depends(get_research_service),
                       resolver: IdentityResolver = Depends(get_identity_resolver)):
    adapter = RequestAdapter(
        GetResearchInput,
        service.get_research,
        lambda event, identity: {"user_id": identity.principal_id,
                                 "research_id": event.path_parameters.get("research_id")},
        ok,
        RequestAdapterOptions(require_body=False),
        identity_resolver=resolver,
        name="get_research",
    )
    return to_starlette(await adapter(await from_request(request)))
