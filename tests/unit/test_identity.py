import pytest
from unittest.mock import AsyncMock

from app.core.errors import AuthenticationError
from app.core.identity import IdentityResolver
from app.schemas.envelopes import HttpEvent
from app.services.token_verifier import JwtTokenVerifier

SECRET = "unit-test-secret-that-is-long-enough-for-hs256"


def event_with(auth=None):
    headers = {"Authorization": auth} if auth is not None else {}
    return HttpEvent(method="GET", path="/", headers=headers)


@pytest.mark.asyncio
async def test_resolves_principal_and_credential(token_factory):
    resolver = IdentityResolver(JwtTokenVerifier(secret=SECRET))
    token = token_factory(sub="u1", key_id="k1", secret=SECRET)

    identity = await resolver.resolve(event_with(f"Bearer {token}"))

    assert identity.principal_id == "u1"
    assert identity.credential_id == "k1"


@pytest.mark.asyncio
async def test_credential_is_optional(token_factory):
    resolver = IdentityResolver(JwtTokenVerifier(secret=SECRET))
    identity = await resolver.resolve(event_with(f"Bearer {token_factory(key_id=None, secret=SECRET)}"))
    assert identity.credential_id is None


@pytest.mark.asyncio
async def test_legacy_key_id_claim_is_accepted():
    verifier = AsyncMock()
    verifier.verify.return_value = {"sub": "u1", "metadata": {"keyId": "legacy"}}
    identity = await IdentityResolver(verifier).resolve(event_with("Bearer abc"))
    assert identity.credential_id == "legacy"


@pytest.mark.asyncio
@pytest.mark.parametrize("header, message", [
    (None, "Missing credentials"),
    ("Basic abc", "Malformed credentials"),
    ("Bearer", "Malformed credentials"),
])
async def test_rejects_missing_or_malformed_header(header, message):
    verifier = AsyncMock()
    with pytest.raises(AuthenticationError, match=message):
        await IdentityResolver(verifier).resolve(event_with(header))
    verifier.verify.assert_not_called()


@pytest.mark.asyncio
async def test_rejects_token_signed_with_another_key(token_factory):
    resolver = IdentityResolver(JwtTokenVerifier(secret=SECRET))
    token = token_factory(secret="a-completely-different-secret-of-decent-size")
    with pytest.raises(AuthenticationError):
        await resolver.resolve(event_with(f"Bearer {token}"))


@pytest.mark.asyncio
async def test_rejects_expired_token(token_factory):
    resolver = IdentityResolver(JwtTokenVerifier(secret=SECRET))
    with pytest.raises(AuthenticationError):
        await resolver.resolve(event_with(f"Bearer {token_factory(secret=SECRET, expires_in=-60)}"))


@pytest.mark.asyncio
async def test_verifier_failures_become_authentication_errors():
    verifier = AsyncMock()
    verifier.verify.side_effect = ConnectionError("authority down")
    with pytest.raises(AuthenticationError, match="Unauthorized"):
        await IdentityResolver(verifier).resolve(event_with("Bearer abc"))


@pytest.mark.asyncio
async def test_missing_principal_is_rejected():
    verifier = AsyncMock()
    verifier.verify.return_value = {"metadata": {"key_id": "k1"}}
    with pytest.raises(AuthenticationError, match="Missing principal id"):
        await IdentityResolver(verifier).resolve(event_with("Bearer abc"))


def test_verifier_needs_a_key_source():
    with pytest.raises(ValueError):
        JwtTokenVerifier()


@pytest.mark.asyncio
async def test_non_object_metadata_claim_is_an_auth_error():
    verifier = AsyncMock()
    verifier.verify.return_value = {"sub": "u1", "metadata": "not-an-object"}
    with pytest.raises(AuthenticationError, match="Malformed claims"):
        await IdentityResolver(verifier).resolve(event_with("Bearer abc"))
