from typing import Any, Dict, Optional, Protocol

import pydantic
from pydantic import BaseModel

from app.core.errors import AuthenticationError
from app.logging_config import get_logger
from app.schemas.envelopes import CallerIdentity, HttpEvent

logger = get_logger(__name__)


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Dict[str, Any]:
        """Return the verified claims or raise."""
        ...


class VerifiedClaims(BaseModel):
    sub: str
    metadata: Optional[Dict[str, Any]] = None


class IdentityResolver:
    """Resolves the caller of one HTTP invocation from its bearer credential.

    Holds no per-request state, so one instance may serve concurrent invocations.
    """

    def __init__(self, verifier: TokenVerifier, header_name: str = "authorization",
                 credential_claim: str = "key_id"):
        self.verifier = verifier
        self.header_name = header_name
        self.credential_claim = credential_claim

    def extract_token(self, event: HttpEvent) -> str:
        raw = event.header(self.header_name)
        if not raw:
            raise AuthenticationError("Missing credentials")
        parts = raw.strip().split()
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
            raise AuthenticationError("Malformed credentials")
        return parts[1]

    async def resolve(self, event: HttpEvent) -> CallerIdentity:
        token = self.extract_token(event)
        try:
            raw_claims = await self.verifier.verify(token)
        except AuthenticationError:
            raise
        except Exception as e:
            logger.info("credential_rejected", extra={"error_type": type(e).__name__})
            raise AuthenticationError("Unauthorized") from e

        sub = raw_claims.get("sub") if isinstance(raw_claims, dict) else None
        if not sub:
            raise AuthenticationError("Missing principal id")

        try:
            claims = VerifiedClaims(sub=str(sub), metadata=raw_claims.get("metadata"))
        except pydantic.ValidationError as e:
            raise AuthenticationError("Malformed claims") from e
        credential_id = None
        if claims.metadata:
            credential_id = claims.metadata.get(self.credential_claim) or claims.metadata.get("keyId")
        return CallerIdentity(principal_id=claims.sub, credential_id=credential_id)
