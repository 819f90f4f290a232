"""
Paced, retrying HTTP transport for the external ERP API.

All outbound traffic for one credential must go through a single
``PacingGate``: the provider enforces its limits per credential, not per
caller, so the gate is shared by every transport built for the process.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from ..exceptions import (
    ClientRequestError,
    RateLimitedError,
    ServerError,
    TransportError,
    UnreachableError,
)
from ..utils.logger import get_logger
from ..utils.retry_utils import calculate_exponential_backoff


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class PacingGate:
    """
    Mutex-guarded "next allowed request time" plus a per-day request budget.

    ``acquire()`` blocks until the caller may issue one request and returns the
    clock reading the request is issued at. Callers are served one at a time,
    so N concurrent callers are spaced at least ``min_interval_seconds`` apart.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        daily_limit: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], date] = _utc_today,
    ):
        self.min_interval_seconds = min_interval_seconds
        self.daily_limit = daily_limit
        self._clock = clock
        self._sleep = sleep
        self._today = today
        self._lock = threading.Lock()
        self._next_allowed: Optional[float] = None
        self._budget_day: Optional[date] = None
        self._requests_today = 0

    @property
    def requests_today(self) -> int:
        with self._lock:
            if self._budget_day != self._today():
                return 0
            return self._requests_today

    def acquire(self) -> float:
        """
        Wait for this caller's turn.

        Returns:
            Clock value at which the request may be issued

        Raises:
            RateLimitedError: If the daily budget is spent (not retryable)
        """
        with self._lock:
            self._consume_daily_budget()

            now = self._clock()
            if self._next_allowed is not None and now < self._next_allowed:
                self._sleep(self._next_allowed - now)
                now = max(self._clock(), self._next_allowed)

            self._next_allowed = now + self.min_interval_seconds
            return now

    def _consume_daily_budget(self) -> None:
        today = self._today()
        if self._budget_day != today:
            self._budget_day = today
            self._requests_today = 0

        if self.daily_limit is not None and self._requests_today >= self.daily_limit:
            raise RateLimitedError(
                f"Daily request budget of {self.daily_limit} exhausted",
                retryable=False,
                http_status=None,
                daily_limit=self.daily_limit,
                budget_day=today.isoformat(),
            )

        self._requests_today += 1


@dataclass
class ApiRequest:
    """One outbound HTTP request, independent of any session."""

    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    data: Optional[Dict[str, Any]] = None
    auth: Optional[Tuple[str, str]] = None
    operation: str = "api_call"


class RateLimitedTransport:
    """
    Executes ``ApiRequest`` objects through the shared pacing gate.

    Retries 429, 5xx and network failures with bounded exponential backoff;
    any other 4xx fails on the first attempt. When retries run out the last
    error is raised.
    """

    def __init__(
        self,
        pacing_gate: PacingGate,
        session: Optional[requests.Session] = None,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_delay_seconds: float = 1.0,
        max_delay_seconds: float = 10.0,
        backoff_multiplier: float = 2.0,
        jitter: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pacing_gate = pacing_gate
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.backoff_multiplier = backoff_multiplier
        self.jitter = jitter
        self._sleep = sleep
        self.logger = get_logger()

    @classmethod
    def from_config(cls, config, pacing_gate: PacingGate, **kwargs) -> "RateLimitedTransport":
        """Build a transport from an ``AppConfig``."""
        return cls(
            pacing_gate=pacing_gate,
            timeout_seconds=config.api.timeout_seconds,
            max_retries=config.rate_limit.max_retries,
            base_delay_seconds=config.rate_limit.base_delay_seconds,
            max_delay_seconds=config.rate_limit.max_delay_seconds,
            backoff_multiplier=config.rate_limit.backoff_multiplier,
            jitter=config.rate_limit.jitter,
            **kwargs,
        )

    def execute(self, request: ApiRequest, retry: bool = True) -> requests.Response:
        """
        Send a request, retrying transient failures.

        Args:
            request: Request to send
            retry: When False the request is attempted exactly once

        Returns:
            The successful (2xx/3xx) response

        Raises:
            RateLimitedError, UnreachableError, ServerError: After retries run out
            ClientRequestError: On a non-retryable 4xx
        """
        attempts = self.max_retries + 1 if retry else 1
        last_error: Optional[TransportError] = None

        for attempt in range(attempts):
            if attempt > 0:
                delay = calculate_exponential_backoff(
                    retry_count=attempt - 1,
                    base_delay=self.base_delay_seconds,
                    max_delay=self.max_delay_seconds,
                    multiplier=self.backoff_multiplier,
                    jitter=self.jitter,
                )
                self.logger.warning(
                    f"Retrying {request.operation} in {delay:.2f}s",
                    extra={
                        "operation": request.operation,
                        "attempt": attempt + 1,
                        "max_attempts": attempts,
                        "delay_seconds": delay,
                        "last_error": last_error.error_code.value if last_error else None,
                    },
                )
                self._sleep(delay)

            try:
                return self._send_once(request)
            except TransportError as e:
                last_error = e
                if not e.retryable:
                    raise

        assert last_error is not None
        self.logger.error(
            f"Giving up on {request.operation} after {attempts} attempts",
            extra={"operation": request.operation, "error_code": last_error.error_code.value},
        )
        raise last_error

    def _send_once(self, request: ApiRequest) -> requests.Response:
        self.pacing_gate.acquire()

        try:
            response = self.session.request(
                request.method,
                request.url,
                params=request.params,
                data=request.data,
                headers=request.headers,
                auth=request.auth,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as e:
            raise UnreachableError(
                f"Timed out after {self.timeout_seconds}s calling {request.operation}",
                cause=e,
                operation=request.operation,
            )
        except requests.ConnectionError as e:
            raise UnreachableError(
                f"Connection error calling {request.operation}: {e}",
                cause=e,
                operation=request.operation,
            )
        except requests.RequestException as e:
            raise TransportError(
                f"Request for {request.operation} could not be sent: {e}",
                retryable=False,
                cause=e,
                operation=request.operation,
            )

        return self._classify(request, response)

    def _classify(self, request: ApiRequest, response: requests.Response) -> requests.Response:
        status = response.status_code
        if status < 400:
            return response

        body = (response.text or "")[:500]
        if status == 429:
            raise RateLimitedError(
                f"Rate limit exceeded calling {request.operation}",
                operation=request.operation,
                response_body=body,
            )
        if status >= 500:
            raise ServerError(
                status,
                f"External API {status} calling {request.operation}",
                operation=request.operation,
                response_body=body,
            )
        raise ClientRequestError(
            status,
            f"External API {status} calling {request.operation}: {body}",
            operation=request.operation,
            response_body=body,
        )
