"""Per-invocation HTTP pipeline.

Order is fixed: auth -> body presence -> required fields -> event parser ->
schema validation -> use case -> response formatter. Every exception raised on
the way is turned into a response by the error classifier.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel

from app.core import error_classifier
from app.core.errors import AuthenticationError, ValidationError
from app.core.identity import IdentityResolver
from app.logging_config import get_logger, reset_correlation_id, set_correlation_id
from app.schemas.envelopes import CallerIdentity, HttpEvent, HttpResponse

logger = get_logger(__name__)

TInput = TypeVar("TInput", bound=BaseModel)

EventParser = Callable[[HttpEvent, Optional[CallerIdentity]], Any]
UseCase = Callable[[Any], Awaitable[Any]]
ResponseFormatter = Callable[[Any], HttpResponse]


@dataclass
class RequestAdapterOptions:
    require_auth: bool = True
    require_body: bool = True
    required_fields: List[str] = field(default_factory=list)


def parse_json_body(event: HttpEvent) -> Any:
    if not event.body:
        return None
    return json.loads(event.body)


class RequestAdapter(Generic[TInput]):
    def __init__(self, input_schema: Type[TInput], use_case: UseCase, event_parser: EventParser,
                 response_formatter: ResponseFormatter, options: Optional[RequestAdapterOptions] = None,
                 identity_resolver: Optional[IdentityResolver] = None, name: str = "http"):
        self.input_schema = input_schema
        self.use_case = use_case
        self.event_parser = event_parser
        self.response_formatter = response_formatter
        self.options = options or RequestAdapterOptions()
        self.identity_resolver = identity_resolver
        self.name = name
        if self.options.require_auth and identity_resolver is None:
            raise ValueError(f"Adapter {name} requires auth but has no identity resolver")

    async def _authenticate(self, event: HttpEvent) -> Optional[CallerIdentity]:
        if not self.options.require_auth:
            return None
        identity = await self.identity_resolver.resolve(event)
        if not identity.principal_id:
            raise AuthenticationError("Missing user id")
        return identity

    def _check_body(self, event: HttpEvent):
        if self.options.require_body and not event.body:
            raise ValidationError("Missing request body")

        if self.options.required_fields:
            fields = parse_json_body(event)
            if fields is None:
                fields = {}
            if not isinstance(fields, dict):
                raise ValidationError("Request body must be a JSON object")
            missing = [f for f in self.options.required_fields if f not in fields]
            if missing:
                raise ValidationError(
                    f"Missing required field: {missing[0]}",
                    errors=[{"field": f, "message": "field required"} for f in missing],
                )

    def _validate(self, candidate: Any) -> TInput:
        if isinstance(candidate, self.input_schema):
            candidate = candidate.model_dump()
        try:
            return self.input_schema.model_validate(candidate)
        except pydantic.ValidationError as e:
            raise ValidationError("Validation failed", errors=error_classifier.pydantic_violations(e)) from e

    async def handle(self, event: HttpEvent) -> HttpResponse:
        token = set_correlation_id(event.header("x-correlation-id"))
        try:
            identity = await self._authenticate(event)
            self._check_body(event)
            candidate = self.event_parser(event, identity)
            validated = self._validate(candidate)
            result = await self.use_case(validated)
            response = self.response_formatter(result)
            logger.info("request_handled", extra={
                "adapter": self.name, "method": event.method, "status_code": response.status_code})
            return response
        except Exception as e:
            return error_classifier.to_response(e)
        finally:
            reset_correlation_id(token)

    __call__ = handle
