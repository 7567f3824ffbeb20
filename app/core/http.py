import json
from enum import IntEnum
from typing import Any, Dict, Optional

from fastapi import Request, Response
from pydantic import BaseModel

from app.schemas.envelopes import HttpEvent, HttpResponse


class HttpStatus(IntEnum):
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


def _dump(body: Any) -> str:
    if isinstance(body, BaseModel):
        return body.model_dump_json()
    return json.dumps(body, default=_json_default)


def _json_default(value: Any):
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


def http_response(status: int, body: Any, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
    return HttpResponse(
        status_code=int(status),
        headers={"Content-Type": "application/json", **(headers or {})},
        body=_dump(body),
        is_base64_encoded=False,
    )


def ok(body: Any) -> HttpResponse:
    return http_response(HttpStatus.OK, body)


def created(body: Any) -> HttpResponse:
    return http_response(HttpStatus.CREATED, body)


def accepted(body: Any) -> HttpResponse:
    return http_response(HttpStatus.ACCEPTED, body)


async def from_request(request: Request) -> HttpEvent:
    raw = await request.body()
    return HttpEvent(
        method=request.method,
        path=request.url.path,
        headers=dict(request.headers),
        body=raw.decode("utf-8") if raw else None,
        path_parameters=dict(request.path_params),
        query_parameters=dict(request.query_params),
    )


def to_starlette(response: HttpResponse) -> Response:
    return Response(content=response.body, status_code=response.status_code, headers=response.headers)
