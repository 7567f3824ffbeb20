import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from app.config import (
    AUTH_HEADER,
    DATABASE_URL,
    JWT_ALGORITHMS,
    JWT_AUDIENCE,
    JWT_ISSUER,
    JWT_JWKS_URL,
    JWT_SECRET,
    QUEUE_CONSUMER_NAME,
    REDIS_URL,
    RESEARCH_GROUP,
    RESEARCH_RETRY_ATTEMPTS,
    RESEARCH_RETRY_DELAY_MS,
    RESEARCH_STREAM,
)
from app.core.identity import IdentityResolver
from app.core.retry import RetryPolicy
from app.repositories.api_key_repository import ApiKeyRepository
from app.repositories.research_repository import ResearchRepository
from app.repositories.user_repository import UserRepository
from app.services.billing_service import BillingService
from app.services.http_service_client import HTTPServiceClient
from app.services.identity_provider import IdentityProviderClient
from app.services.key_service import CreditService, KeyService
from app.services.registration_saga import UserRegistrationSagaBuilder
from app.services.registration_service import RegistrationService
from app.services.research_agent import ResearchAgent
from app.services.research_queue import ResearchQueue
from app.services.research_service import ResearchService
from app.services.token_verifier import JwtTokenVerifier

engine = create_engine(DATABASE_URL)
redis_client = aioredis.from_url(REDIS_URL, decode_responses=True)


def get_engine() -> Engine:
    return engine


def get_redis() -> aioredis.Redis:
    return redis_client


def get_http_client() -> HTTPServiceClient:
    return HTTPServiceClient()


def get_identity_resolver() -> IdentityResolver:
    verifier = JwtTokenVerifier(secret=JWT_SECRET, jwks_url=JWT_JWKS_URL, algorithms=JWT_ALGORITHMS,
                                audience=JWT_AUDIENCE, issuer=JWT_ISSUER)
    return IdentityResolver(verifier, header_name=AUTH_HEADER)


def build_research_queue(redis: aioredis.Redis) -> ResearchQueue:
    return ResearchQueue(redis, RESEARCH_STREAM, RESEARCH_GROUP, QUEUE_CONSUMER_NAME)


def build_retry_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=RESEARCH_RETRY_ATTEMPTS, delay_ms=RESEARCH_RETRY_DELAY_MS)


def build_research_service(engine: Engine, redis: aioredis.Redis, client: HTTPServiceClient) -> ResearchService:
    keys = KeyService(client)
    return ResearchService(
        repo=ResearchRepository(engine),
        credits=CreditService(keys, ApiKeyRepository(engine)),
        queue=build_research_queue(redis),
        agent=ResearchAgent(client),
        retry=build_retry_policy(),
    )


def get_research_service(engine: Engine = Depends(get_engine), redis: aioredis.Redis = Depends(get_redis),
                         client: HTTPServiceClient = Depends(get_http_client)) -> ResearchService:
    return build_research_service(engine, redis, client)


def get_billing_service(engine: Engine = Depends(get_engine),
                        client: HTTPServiceClient = Depends(get_http_client)) -> BillingService:
    keys = KeyService(client)
    api_keys = ApiKeyRepository(engine)
    return BillingService(keys, api_keys, CreditService(keys, api_keys))


def get_registration_service(engine: Engine = Depends(get_engine),
                             client: HTTPServiceClient = Depends(get_http_client)) -> RegistrationService:
    def saga_builder() -> UserRegistrationSagaBuilder:
        return UserRegistrationSagaBuilder(
            users=UserRepository(engine),
            api_keys=ApiKeyRepository(engine),
            keys=KeyService(client),
            identity=IdentityProviderClient(client),
        )
    return RegistrationService(saga_builder)
