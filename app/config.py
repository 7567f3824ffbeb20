import os
from dotenv import load_dotenv

load_dotenv()

SERVICE_NAME = os.getenv("SERVICE_NAME", "saas-orchestrator")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://user:pass@db:5432/orchestrator")

HTTP_CONNECT_TIMEOUT_S = float(os.getenv("HTTP_CONNECT_TIMEOUT_S", "3.0"))
HTTP_READ_TIMEOUT_S = float(os.getenv("HTTP_READ_TIMEOUT_S", "30.0"))

# Caller authentication
AUTH_HEADER = os.getenv("AUTH_HEADER", "authorization")
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_JWKS_URL = os.getenv("JWT_JWKS_URL", "")
JWT_ALGORITHMS = [a.strip() for a in os.getenv("JWT_ALGORITHMS", "HS256").split(",") if a.strip()]
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE") or None
JWT_ISSUER = os.getenv("JWT_ISSUER") or None

# Identity provider webhooks (svix-style signatures)
WEBHOOK_SIGNING_SECRET = os.getenv("WEBHOOK_SIGNING_SECRET", "")
WEBHOOK_TOLERANCE_SECONDS = int(os.getenv("WEBHOOK_TOLERANCE_SECONDS", "300"))

# Payment provider webhooks (Stripe-style signatures)
BILLING_WEBHOOK_SECRET = os.getenv("BILLING_WEBHOOK_SECRET", "")
TOPUP_DEFAULT_CREDITS = int(os.getenv("TOPUP_DEFAULT_CREDITS", "5"))

# Research job stream
RESEARCH_STREAM = os.getenv("RESEARCH_STREAM", "research:jobs")
RESEARCH_GROUP = os.getenv("RESEARCH_GROUP", "research-workers")
QUEUE_CONSUMER_NAME = os.getenv("QUEUE_CONSUMER_NAME", "worker-1")
QUEUE_BATCH_SIZE = int(os.getenv("QUEUE_BATCH_SIZE", "10"))
QUEUE_BLOCK_MS = int(os.getenv("QUEUE_BLOCK_MS", "1000"))
QUEUE_POLL_INTERVAL_SECONDS = float(os.getenv("QUEUE_POLL_INTERVAL_SECONDS", "5"))
QUEUE_MIN_IDLE_MS = int(os.getenv("QUEUE_MIN_IDLE_MS", "300000"))
QUEUE_MAX_DELIVERIES = int(os.getenv("QUEUE_MAX_DELIVERIES", "5"))

# Research agent retry (fixed delay)
RESEARCH_RETRY_ATTEMPTS = int(os.getenv("RESEARCH_RETRY_ATTEMPTS", "3"))
RESEARCH_RETRY_DELAY_MS = int(os.getenv("RESEARCH_RETRY_DELAY_MS", "1000"))

# Credits granted to every newly created key
DEFAULT_KEY_CREDITS = int(os.getenv("DEFAULT_KEY_CREDITS", "100"))

KEY_SERVICE_ROOT_KEY = os.getenv("KEY_SERVICE_ROOT_KEY", "")
KEY_SERVICE_API_ID = os.getenv("KEY_SERVICE_API_ID", "")
IDENTITY_PROVIDER_SECRET_KEY = os.getenv("IDENTITY_PROVIDER_SECRET_KEY", "")
RESEARCH_AGENT_API_KEY = os.getenv("RESEARCH_AGENT_API_KEY", "")

# External HTTP collaborators
SERVICES = {
    "research_agent": {
        "timeout": 120,
        "base_url": os.getenv("RESEARCH_AGENT_URL", "http://research-agent:9000"),
        "health_path": "/health",
        "auth": {"type": "bearer", "secret": RESEARCH_AGENT_API_KEY},
    },
    "key_service": {
        "timeout": 10,
        "base_url": os.getenv("KEY_SERVICE_URL", "http://key-service:9000"),
        "health_path": "/health",
        "auth": {"type": "bearer", "secret": KEY_SERVICE_ROOT_KEY},
    },
    "identity_provider": {
        "timeout": 10,
        "base_url": os.getenv("IDENTITY_PROVIDER_URL", "http://identity-provider:9000"),
        "health_path": "/health",
        "auth": {"type": "bearer", "secret": IDENTITY_PROVIDER_SECRET_KEY},
    },
}
