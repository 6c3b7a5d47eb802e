"""http.call executor: one outbound request per invocation, no retries."""

import asyncio
import json
import time
from typing import Any
from urllib.parse import urlparse

import httpx
from loguru import logger

from sqlapigate.config.schema import HttpToolConfig
from sqlapigate.tools.guard import check_host, effective_timeout
from sqlapigate.tools.models import HttpCallParams, HttpCallResult
from sqlapigate.utils.exceptions import (
    ExecutionError,
    HostNotAllowedError,
    InvalidUrlError,
    OperationTimeoutError,
    sanitize_error_message,
)

_BODYLESS_METHODS = {"GET", "HEAD"}


def build_http_client(config: HttpToolConfig, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Process-wide client; created once at startup and shared by all calls."""
    return httpx.AsyncClient(
        headers={"User-Agent": config.user_agent},
        timeout=float(config.default_timeout_seconds),
        # Redirect targets would bypass the host allowlist.
        follow_redirects=False,
        transport=transport,
    )


def _validate_url(url: str) -> tuple[bool, str]:
    """Validate URL: must be absolute http(s) with a host."""
    if not url or not url.strip():
        return False, "URL is required"
    try:
        p = urlparse(url.strip())
    except ValueError as e:
        return False, f"Invalid URL format: {sanitize_error_message(str(e))}"
    if p.scheme.lower() not in ("http", "https"):
        return False, f"URL must be an absolute http or https URL, got scheme '{p.scheme or 'none'}'"
    if not p.netloc or not p.hostname:
        return False, "URL must be an absolute http or https URL with a host"
    return True, ""


def _query_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


def _flatten_headers(response: httpx.Response) -> dict[str, str]:
    flattened: dict[str, str] = {}
    for key, value in response.headers.multi_items():
        flattened[key] = value
    return flattened


class HttpCallExecutor:
    """Validates an http.call request against policy, then performs it."""

    def __init__(self, config: HttpToolConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or build_http_client(config)

    async def call(self, params: HttpCallParams) -> HttpCallResult:
        ok, reason = _validate_url(params.url)
        if not ok:
            raise InvalidUrlError(reason)
        url = params.url.strip()

        allowed, _ = check_host(url, self.config.allowed_hosts, self.config.allow_all_hosts)
        if not allowed:
            host = urlparse(url).hostname or ""
            logger.warning("http.call blocked: host {} not in allowlist", host)
            raise HostNotAllowedError(host, self.config.allowed_hosts)

        try:
            target = httpx.URL(url)
            if params.query:
                target = target.copy_merge_params({k: _query_value(v) for k, v in params.query.items()})
        except httpx.InvalidURL as e:
            raise InvalidUrlError(f"Invalid URL format: {sanitize_error_message(str(e))}") from e

        timeout = effective_timeout(
            params.timeout_seconds,
            self.config.default_timeout_seconds,
            self.config.max_timeout_seconds,
        )
        request_kwargs: dict[str, Any] = {"headers": dict(params.headers or {})}
        if params.method not in _BODYLESS_METHODS and params.body is not None:
            request_kwargs["json"] = params.body

        logger.info("http.call {} {} (timeout={}s)", params.method, target.host, timeout)
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.request(params.method, target, timeout=float(timeout), **request_kwargs),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("http.call {} {} timed out after {}s", params.method, target.host, timeout)
            raise OperationTimeoutError(
                "http.call", timeout, f"HTTP request timed out after {timeout} seconds"
            ) from e
        except httpx.InvalidURL as e:
            raise InvalidUrlError(f"Invalid URL format: {sanitize_error_message(str(e))}") from e
        except (httpx.HTTPError, httpx.StreamError) as e:
            message = sanitize_error_message(str(e) or type(e).__name__)
            logger.warning("http.call {} {} failed: {}", params.method, target.host, message)
            raise ExecutionError("http.call", f"HTTP request failed: {message}") from e

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info("http.call {} {} -> {} in {}ms", params.method, target.host, response.status_code, elapsed_ms)
        return HttpCallResult(
            status_code=response.status_code,
            headers=_flatten_headers(response),
            body_text=response.text,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
