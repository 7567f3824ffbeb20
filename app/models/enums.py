from enum import Enum

class SagaState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    COMPENSATING = "COMPENSATING"
    COMPENSATED = "COMPENSATED"

class ResearchStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

class CreditOperation(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"

class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"

class WebhookEventType(str, Enum):
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
