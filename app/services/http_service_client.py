import asyncio
import requests
from typing import Dict, Any, Optional
from app.config import SERVICES, HTTP_CONNECT_TIMEOUT_S, HTTP_READ_TIMEOUT_S
from app.core.errors import TransientUpstreamError, UpstreamServiceError

class HTTPServiceClient:
    def __init__(self, services: Optional[Dict[str, dict]] = None):
        self.services = services if services is not None else SERVICES

    def _headers(self, service_conf: dict, idempotency_key: Optional[str]) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        if idempotency_key:
            h["Idempotency-Key"] = idempotency_key
        auth = service_conf.get("auth", {"type": "none"})
        secret = auth.get("secret")
        if auth.get("type") == "api_key_header":
            if secret:
                h[auth.get("header", "X-Internal-Key")] = secret
        elif auth.get("type") == "bearer":
            if secret:
                h["Authorization"] = f"Bearer {secret}"
        return h

    def _parse_error(self, resp: requests.Response) -> dict:
        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            err = body["error"]
            return {
                "code": err.get("code", "SERVICE_ERROR"),
                "message": err.get("message", f"HTTP {resp.status_code}"),
                "retryable": bool(err.get("retryable", resp.status_code >= 500)),
                "details": err,
            }

        return {
            "code": "SERVICE_HTTP_ERROR",
            "message": f"Service returned HTTP {resp.status_code}",
            "retryable": resp.status_code >= 500,
            "details": body if isinstance(body, dict) else None,
        }

    def url_for(self, service_name: str, path: str) -> str:
        conf = self.services.get(service_name)
        if not conf:
            raise UpstreamServiceError(f"No config for {service_name}", "UNKNOWN_SERVICE")
        return conf["base_url"].rstrip("/") + path

    def call(self, service_name: str, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
             idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        url = self.url_for(service_name, path)
        conf = self.services[service_name]

        read_t = min(float(conf.get("timeout", HTTP_READ_TIMEOUT_S)), float(HTTP_READ_TIMEOUT_S))
        timeout = (HTTP_CONNECT_TIMEOUT_S, read_t)

        try:
            resp = requests.request(method, url, json=payload, headers=self._headers(conf, idempotency_key),
                                    timeout=timeout)
        except requests.Timeout as e:
            raise UpstreamServiceError(str(e), "SERVICE_TIMEOUT", retryable=True)
        except requests.RequestException as e:
            raise UpstreamServiceError(str(e), "SERVICE_UNREACHABLE", retryable=True)

        if resp.status_code < 200 or resp.status_code >= 300:
            err = self._parse_error(resp)

            # map common "busy" scenarios
            if resp.status_code in (429, 503):
                err["code"] = "RESOURCE_EXHAUSTED"
                err["retryable"] = True

            raise UpstreamServiceError(err["message"], err["code"], err["retryable"], err.get("details"))

        if resp.status_code == 204 or not resp.content:
            return {}

        try:
            out = resp.json()
        except ValueError:
            raise TransientUpstreamError(f"{service_name} returned non-JSON", "BAD_RESPONSE")

        if not isinstance(out, dict):
            raise TransientUpstreamError(f"{service_name} returned a non-object body", "BAD_RESPONSE")
        return out

    async def acall(self, service_name: str, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                    idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        return await asyncio.to_thread(self.call, service_name, method, path, payload, idempotency_key)
