from celery import Celery
from app.config import QUEUE_POLL_INTERVAL_SECONDS, REDIS_URL

celery_app = Celery("research", broker=REDIS_URL, backend=REDIS_URL, include=["worker.tasks"])

celery_app.conf.beat_schedule = {
    "consume-research-queue": {
        "task": "worker.tasks.consume_research_queue",
        "schedule": QUEUE_POLL_INTERVAL_SECONDS,
    },
    "reclaim-stale-messages": {
        "task": "worker.tasks.reclaim_stale_messages",
        "schedule": 60.0,
    },
}

# one poll in flight per worker process; stream entries carry their own acks
celery_app.conf.task_acks_late = True
celery_app.conf.worker_prefetch_multiplier = 1
