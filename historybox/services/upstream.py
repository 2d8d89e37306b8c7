"""
Base for outbound provider clients (payment gateway, geocoder).
Sync httpx client with a bounded timeout, guarded by a pybreaker circuit breaker.
Every failure mode surfaces as UpstreamUnavailable with the raw payload attached.
"""
import logging
import time
from typing import Any

import httpx
import pybreaker

from historybox.core.errors import UpstreamUnavailable
from historybox.services.circuit_breaker import build_circuit_breaker
from historybox.utils.metrics import upstream_request_duration_seconds, upstream_requests_total

logger = logging.getLogger(__name__)


class ProviderHTTPError(Exception):
    """Non-2xx answer. 5xx counts against the breaker."""

    def __init__(self, status_code: int, payload: Any):
        super().__init__(f"provider answered {status_code}")
        self.status_code = status_code
        self.payload = payload


class ProviderClientError(ProviderHTTPError):
    """4xx answer: the request was wrong, the provider is healthy. Excluded from the breaker."""


class UpstreamClient:
    provider = "upstream"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        http_client: httpx.Client | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._client = http_client or httpx.Client(timeout=timeout)
        self._breaker = breaker or build_circuit_breaker(self.provider, exclude=[ProviderClientError])

    def close(self) -> None:
        self._client.close()

    def _record_request(self, status: str, duration: float) -> None:
        upstream_requests_total.labels(provider=self.provider, status=status).inc()
        upstream_request_duration_seconds.labels(provider=self.provider).observe(duration)

    def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        resp = self._client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        try:
            payload = resp.json()
        except ValueError:
            payload = {"raw": resp.text[:2000]}
        if resp.status_code >= 500:
            raise ProviderHTTPError(resp.status_code, payload)
        if resp.status_code >= 400:
            raise ProviderClientError(resp.status_code, payload)
        return payload

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Call the provider; returns decoded JSON or raises UpstreamUnavailable."""
        start = time.time()
        try:
            payload = self._breaker.call(self._send, method, path, **kwargs)
        except pybreaker.CircuitBreakerError:
            self._record_request("circuit_open", time.time() - start)
            raise UpstreamUnavailable(f"{self.provider} temporarily unavailable", {"reason": "circuit_open"})
        except ProviderHTTPError as e:
            self._record_request(str(e.status_code), time.time() - start)
            logger.warning(
                f"{self.provider}_http_error",
                extra={"status_code": e.status_code, "path": path, "payload": e.payload},
            )
            message = e.payload.get("error") if isinstance(e.payload, dict) else None
            raise UpstreamUnavailable(
                message or f"{self.provider} request failed ({e.status_code})",
                {"status_code": e.status_code, "payload": e.payload},
            )
        except httpx.TimeoutException:
            self._record_request("timeout", time.time() - start)
            logger.warning(f"{self.provider}_timeout", extra={"path": path})
            raise UpstreamUnavailable(f"{self.provider} timed out", {"reason": "timeout"})
        except httpx.HTTPError as e:
            self._record_request("transport_error", time.time() - start)
            logger.warning(f"{self.provider}_transport_error", extra={"path": path, "error": str(e)})
            raise UpstreamUnavailable(f"{self.provider} unreachable", {"reason": type(e).__name__})
        self._record_request("success", time.time() - start)
        return payload
