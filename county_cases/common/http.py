"""HTTP client with timeouts, optional retries and structured error bodies."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from county_cases.common.constants import USER_AGENT
from county_cases.common.errors import StageError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    # One attempt: a failed step waits for the next scheduled run.
    max_attempts: int = 1
    multiplier: float = 1.0
    max_wait: float = 30.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.details = details
        self.hint = hint
        self.message = message


class RetryableHttpError(HttpRequestError):
    pass


def _error_body(response: requests.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        return {}
    return body


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        error_class: type[HttpRequestError] = HttpRequestError,
        retryable_class: type[RetryableHttpError] = RetryableHttpError,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.error_class = error_class
        self.retryable_class = retryable_class
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None, accept: str) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": accept}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        body = _error_body(response)
        message = str(body.get("message") or f"HTTP status: {status}")
        fields = {
            "status": status,
            "code": str(body["code"]) if body.get("code") is not None else None,
            "details": str(body["details"]) if body.get("details") is not None else None,
            "hint": str(body["hint"]) if body.get("hint") is not None else None,
        }
        if status in RETRYABLE_STATUS_CODES:
            raise self.retryable_class(message, **fields)
        raise self.error_class(message, **fields)

    def _send(
        self,
        method: str,
        url: str,
        *,
        accept: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> requests.Response:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=self._headers(headers, accept),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.RequestException as exc:
            raise self.retryable_class(f"{method} {url} failed: {exc.__class__.__name__}") from exc
        self._raise_for_status_or_retry(response)
        return response

    def request(
        self,
        method: str,
        url: str,
        *,
        accept: str = "application/json",
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> requests.Response:
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped() -> requests.Response:
            return self._send(
                method,
                url,
                accept=accept,
                params=params,
                json_body=json_body,
                headers=headers,
                timeout=timeout,
            )

        return _wrapped()

    def get_text(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> str:
        response = self.request("GET", url, accept="text/csv, text/plain, */*", headers=headers, timeout=timeout)
        return response.text

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        response = self.request("GET", url, params=params, headers=headers, timeout=timeout)
        try:
            return response.json()
        except ValueError as exc:
            raise self.error_class(f"Invalid JSON payload from {url}") from exc

    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> requests.Response:
        merged = {"Content-Type": "application/json"}
        if headers:
            merged.update(headers)
        return self.request("POST", url, params=params, json_body=payload, headers=merged, timeout=timeout)
