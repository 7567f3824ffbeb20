import asyncio
from typing import Any, Dict, List, Optional

import jwt

from app.core.errors import AuthenticationError


class JwtTokenVerifier:
    """Verifies bearer JWTs issued by the identity provider.

    Uses a shared secret for HS* algorithms or the provider's JWKS endpoint for
    asymmetric ones. Key lookups are cached by PyJWKClient itself.
    """

    def __init__(self, secret: str = "", jwks_url: str = "", algorithms: Optional[List[str]] = None,
                 audience: Optional[str] = None, issuer: Optional[str] = None):
        if not secret and not jwks_url:
            raise ValueError("JwtTokenVerifier needs a secret or a JWKS url")
        self.secret = secret
        self.algorithms = algorithms or ["HS256"]
        self.audience = audience
        self.issuer = issuer
        self._jwks = jwt.PyJWKClient(jwks_url) if jwks_url else None

    def _decode(self, token: str) -> Dict[str, Any]:
        key: Any = self.secret
        if self._jwks is not None:
            key = self._jwks.get_signing_key_from_jwt(token).key
        options = {"require": ["sub", "exp"], "verify_aud": self.audience is not None}
        return jwt.decode(
            token,
            key,
            algorithms=self.algorithms,
            audience=self.audience,
            issuer=self.issuer,
            options=options,
        )

    async def verify(self, token: str) -> Dict[str, Any]:
        try:
            # JWKS lookups may hit the network
            return await asyncio.to_thread(self._decode, token)
        except jwt.PyJWTError as e:
            raise AuthenticationError("Unauthorized") from e
