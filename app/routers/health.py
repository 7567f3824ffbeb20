from fastapi import APIRouter, Depends
import requests
import redis.asyncio as aioredis
from redis.exceptions import RedisError
from app.dependencies import get_http_client, get_redis
from app.services.http_service_client import HTTPServiceClient

router = APIRouter()

@router.get("/health")
def health():
    return {"ok": True}

@router.get("/health/services")
def health_services(client: HTTPServiceClient = Depends(get_http_client)):
    report = {}
    for name, conf in client.services.items():
        probe = client.url_for(name, conf.get("health_path", "/health"))
        try:
            resp = requests.get(probe, timeout=(2, 2))
        except requests.RequestException as e:
            report[name] = {"ok": False, "error": str(e)}
            continue
        report[name] = {"ok": resp.status_code == 200, "status_code": resp.status_code}
    return report

@router.get("/health/queue")
async def health_queue(redis: aioredis.Redis = Depends(get_redis)):
    try:
        await redis.ping()
    except RedisError as e:
        return {"ok": False, "error": str(e)}
    return {"ok": True}
