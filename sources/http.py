"""Retrying HTTP fetch shared by every source adapter.

Adapters never retry on their own: timeouts, 5xx, 429 + Retry-After and the
exponential backoff all live here.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
)

from config import FetchSettings
from utils.exceptions import FetchError, ProviderResponseError


logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

RETRYABLE_EXCEPTIONS = (asyncio.TimeoutError, httpx.TransportError)
TIMEOUT_EXCEPTIONS = (asyncio.TimeoutError, httpx.TimeoutException)


@dataclass(frozen=True)
class RetryPolicy:
    """Per-call retry budget."""

    max_tries: int = 3
    base_delay_ms: int = 500
    timeout_ms: int = 10000

    @classmethod
    def from_settings(cls, settings: FetchSettings) -> "RetryPolicy":
        return cls(
            max_tries=max(1, int(settings.max_tries)),
            base_delay_ms=max(0, int(settings.base_delay_ms)),
            timeout_ms=max(1, int(settings.timeout_ms)),
        )


def parse_retry_after(value: Any, *, now: Optional[datetime] = None) -> Optional[float]:
    """Retry-After header in seconds; accepts delta-seconds or an HTTP date."""
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return max(0.0, float(text))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    return max(0.0, (when - current).total_seconds())


def _is_retryable_response(response: httpx.Response) -> bool:
    return not response.is_success


class BackoffWait:
    """tenacity wait strategy: base * 2^attempt, widened by Retry-After on 429.

    Delays never shrink between consecutive attempts of the same call.
    """

    def __init__(self, base_delay_ms: int) -> None:
        self.base_delay = max(0.0, float(base_delay_ms) / 1000.0)
        self.delays: List[float] = []

    def __call__(self, retry_state: RetryCallState) -> float:
        attempt = max(0, retry_state.attempt_number - 1)
        delay = self.base_delay * (2 ** attempt)

        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            response = outcome.result()
            if isinstance(response, httpx.Response) and response.status_code == 429:
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                if retry_after is not None:
                    delay = max(delay, retry_after)

        if self.delays:
            delay = max(delay, self.delays[-1])
        self.delays.append(delay)
        return delay


def _describe_outcome(retry_state: RetryCallState) -> str:
    outcome = retry_state.outcome
    if outcome is None:
        return "no outcome"
    if outcome.failed:
        exc = outcome.exception()
        if isinstance(exc, TIMEOUT_EXCEPTIONS):
            return "timeout"
        return f"{type(exc).__name__}: {exc}"
    response = outcome.result()
    return f"HTTP {response.status_code}"


def _log_before_sleep(source: str) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        sleep_for = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"[{source}] attempt {retry_state.attempt_number} failed ({_describe_outcome(retry_state)}), "
            f"retrying in {sleep_for * 1000:.0f}ms"
        )

    return _log


def _exhausted(source: str, timeout_ms: int) -> Callable[[RetryCallState], httpx.Response]:
    def _give_up(retry_state: RetryCallState) -> httpx.Response:
        outcome = retry_state.outcome
        if outcome is None:
            raise FetchError(f"{source} request produced no outcome", source=source)
        if outcome.failed:
            exc = outcome.exception()
            if isinstance(exc, TIMEOUT_EXCEPTIONS):
                raise FetchError(
                    f"{source} timed out after {retry_state.attempt_number} attempts ({timeout_ms}ms each)",
                    source=source,
                ) from exc
            raise FetchError(
                f"{source} request failed after {retry_state.attempt_number} attempts: {exc}",
                source=source,
            ) from exc
        return outcome.result()

    return _give_up


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    max_tries: int = 3,
    base_delay_ms: int = 500,
    timeout_ms: int = 10000,
    source: str = "http",
    sleep: SleepFn = asyncio.sleep,
) -> httpx.Response:
    """
    Issue one HTTP request with per-attempt timeout, retry and backoff.

    Returns the last response once ``max_tries`` is exhausted, even when it is
    not 2xx. Timeouts and transport errors that survive every attempt are raised
    as ``FetchError``.
    """
    timeout_s = max(1, int(timeout_ms)) / 1000.0

    async def _attempt() -> httpx.Response:
        return await asyncio.wait_for(
            client.request(method, url, params=params, headers=headers),
            timeout=timeout_s,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, int(max_tries))),
        wait=BackoffWait(base_delay_ms),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS) | retry_if_result(_is_retryable_response),
        before_sleep=_log_before_sleep(source),
        retry_error_callback=_exhausted(source, timeout_ms),
        sleep=sleep,
    )
    return await retrying(_attempt)


class SourceHttp:
    """httpx client bound to a retry policy, handed to adapters."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def get(
        self,
        url: str,
        *,
        source: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        return await fetch_with_retry(
            self.client,
            url,
            params=params,
            headers=headers,
            max_tries=self.policy.max_tries,
            base_delay_ms=self.policy.base_delay_ms,
            timeout_ms=self.policy.timeout_ms,
            source=source,
            sleep=self._sleep,
        )

    async def get_json(
        self,
        url: str,
        *,
        source: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        response = await self.get(url, source=source, params=params, headers=headers)
        if not response.is_success:
            raise FetchError(
                f"{source} failed: {response.status_code} {response.reason_phrase}",
                source=source,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderResponseError(f"{source} returned invalid JSON", source=source) from exc
