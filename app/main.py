from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import SQLModel

from app.config import LOG_LEVEL, SERVICE_NAME
from app.dependencies import engine
from app.logging_config import configure_logging
from app.models import api_key, research, user  # noqa: F401  registers tables
from app.routers import credits, health, webhooks
from app.routers import research as research_router

configure_logging(LOG_LEVEL, SERVICE_NAME)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    SQLModel.metadata.create_all(engine)
    yield


app = FastAPI(title="Research Gateway", lifespan=lifespan)

app.include_router(research_router.router, prefix="/api/v1")
app.include_router(credits.router, prefix="/api/v1")
app.include_router(webhooks.router, prefix="/api/v1")
app.include_router(health.router, prefix="/api/v1")
