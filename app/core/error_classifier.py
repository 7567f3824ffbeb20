import json
from typing import Any, Dict, List

import pydantic
from pydantic import BaseModel

from app.core.errors import AppError, ErrorCode, ValidationError
from app.core.http import HttpStatus, http_response
from app.logging_config import get_logger
from app.schemas.envelopes import HttpResponse

logger = get_logger(__name__)


class ClassifiedError(BaseModel):
    status_code: int
    code: str
    body: Dict[str, Any]


def pydantic_violations(error: pydantic.ValidationError) -> List[Dict[str, str]]:
    out = []
    for err in error.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "__root__"
        out.append({"field": field, "message": err.get("msg", "invalid value")})
    return out


def classify(error: BaseException) -> ClassifiedError:
    """Map any raised error to a stable status code and `{message, errors?}` body."""
    if isinstance(error, ValidationError):
        body: Dict[str, Any] = {"message": error.message}
        if error.errors:
            body["errors"] = error.errors
        return ClassifiedError(status_code=error.status_code, code=error.code, body=body)

    if isinstance(error, AppError):
        return ClassifiedError(status_code=error.status_code, code=error.code, body={"message": error.message})

    if isinstance(error, pydantic.ValidationError):
        return ClassifiedError(
            status_code=HttpStatus.BAD_REQUEST,
            code=ErrorCode.VALIDATION_ERROR.value,
            body={"message": "Validation failed", "errors": pydantic_violations(error)},
        )

    if isinstance(error, json.JSONDecodeError):
        return ClassifiedError(
            status_code=HttpStatus.BAD_REQUEST,
            code=ErrorCode.INVALID_JSON.value,
            body={"message": "Invalid JSON in request body"},
        )

    # unexpected: details go to the log only
    return ClassifiedError(
        status_code=HttpStatus.INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR.value,
        body={"message": "Internal Server Error"},
    )


def to_response(error: BaseException) -> HttpResponse:
    classified = classify(error)
    if classified.status_code >= 500:
        logger.error("request_failed", exc_info=error,
                     extra={"error_code": classified.code, "error_type": type(error).__name__})
    else:
        logger.warning("request_rejected",
                       extra={"error_code": classified.code, "status_code": classified.status_code})
    return http_response(classified.status_code, classified.body)
