"""
Requests-based Transport

Talks to the finance API over HTTP with a shared `requests.Session`.

- The blocking call runs in a worker thread (asyncio.to_thread), one
  thread per request, so concurrent dashboard queries overlap.
- The bearer token is read from an injected provider on every request,
  so a refreshed session token is picked up without rebuilding the client.
- Idempotent GETs are retried on connection errors with exponential
  backoff. Writes are never retried.
- Raw `requests` exceptions never leave this module.
"""

import asyncio
from typing import Any, Callable, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config.log import get_logger
from src.config.settings import ApiSettings, get_settings
from src.services.transport.interface import (
    Expect,
    HttpStatusError,
    RequestFailedError,
    RequestTimeoutError,
    Transport,
)


logger = get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]


class RequestsTransport(Transport):
    """
    HTTP transport backed by requests.

    Usage:
        transport = RequestsTransport(token_provider=lambda: session.token)
        data = await transport.request("GET", "/api/financas/metas", timeout=15)
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().api
        self._token_provider = token_provider
        self._session = session or requests.Session()
        self._retry_policy = Retrying(
            stop=stop_after_attempt(self._settings.retry_attempts),
            wait=wait_exponential(
                multiplier=self._settings.retry_backoff_seconds,
                max=10,
            ),
            retry=retry_if_exception_type(requests.ConnectionError),
            reraise=True,
        )

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    def close(self) -> None:
        self._session.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Optional[Any] = None,
        files: Optional[dict[str, Any]] = None,
        timeout: float,
        expect: Expect = "json",
    ) -> Any:
        return await asyncio.to_thread(
            self._send, method, path, params, json, files, timeout, expect
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]],
        json: Optional[Any],
        files: Optional[dict[str, Any]],
        timeout: float,
        expect: Expect,
    ) -> Any:
        method = method.upper()
        url = f"{self.base_url}{path}"
        kwargs = {
            "params": params,
            "json": json,
            "files": files,
            "headers": self._headers(),
            "timeout": timeout,
        }

        try:
            if method == "GET":
                response = self._retry_policy.copy()(
                    self._session.request, method, url, **kwargs
                )
            else:
                response = self._session.request(method, url, **kwargs)
        except requests.Timeout as e:
            logger.warning("request_timeout", method=method, path=path, timeout=timeout)
            raise RequestTimeoutError(path, timeout) from e
        except requests.RequestException as e:
            logger.warning("request_failed", method=method, path=path, error=str(e))
            raise RequestFailedError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            payload = self._decode_json(response, path)
            logger.warning(
                "request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise HttpStatusError(response.status_code, payload, path=path)

        if expect == "bytes":
            return response.content
        return self._decode_json(response, path)

    def _decode_json(self, response: requests.Response, path: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning(
                "malformed_response",
                entity="body",
                path=path,
                content_type=response.headers.get("Content-Type"),
            )
            return None
