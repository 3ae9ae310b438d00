"""Fitbit Web API client."""

from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .circuit_breaker import CircuitBreaker
from .config import FitbitSettings
from .entities import ActivityResponse, FoodResponse, SleepResponse, WeightResponse
from .metrics import FITBIT_REQUESTS

logger = structlog.get_logger(__name__)

# Responses worth another attempt
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
# Upper bound on the backoff between attempts, in seconds
MAX_RETRY_DELAY = 30.0


class FitbitAPIError(Exception):
    """Raised when the Fitbit API cannot return a usable response."""

    def __init__(self, resource: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"Fitbit {resource} request failed: {message}")
        self.resource = resource
        self.status_code = status_code


class RetryableStatusError(Exception):
    """A transient HTTP status that warrants another attempt."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class FitbitClient:
    """Async Fitbit client with bounded retries behind a circuit breaker."""

    def __init__(
        self,
        settings: FitbitSettings,
        client: httpx.AsyncClient | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Fitbit API settings.
            client: HTTP client to use; one is created from settings otherwise.
            breaker: Circuit breaker shared across calls.
        """
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )
        self._breaker = breaker or CircuitBreaker(
            "fitbit",
            failure_threshold=settings.failure_threshold,
            recovery_timeout=settings.recovery_timeout,
        )
        self._max_retries = settings.max_retries
        self._retry_delay = 1.0  # seconds, doubled after each failed attempt

    async def __aenter__(self) -> "FitbitClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _attempt(self, resource: str, path: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._settings.access_token}"}
        try:
            response = await self._client.get(path, headers=headers)
        except httpx.TransportError:
            FITBIT_REQUESTS.labels(resource=resource, status="transport_error").inc()
            raise

        FITBIT_REQUESTS.labels(resource=resource, status=str(response.status_code)).inc()

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableStatusError(response.status_code)
        if response.is_error:
            raise FitbitAPIError(
                resource,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FitbitAPIError(resource, "response is not valid JSON") from e

    async def _request(self, resource: str, path: str) -> dict[str, Any]:
        """GET ``path`` with tenacity-managed retries on transient failures."""

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "fitbit_request_retrying",
                resource=resource,
                attempt=retry_state.attempt_number,
                max_retries=self._max_retries,
                error=str(error),
                error_type=type(error).__name__,
            )

        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(
                    multiplier=self._retry_delay,
                    min=self._retry_delay,
                    max=MAX_RETRY_DELAY,
                ),
                retry=retry_if_exception_type((httpx.TransportError, RetryableStatusError)),
                before_sleep=log_retry,
                reraise=True,
            ):
                with attempt_state:
                    return await self._attempt(resource, path)
        except httpx.TransportError as e:
            raise FitbitAPIError(resource, str(e)) from e
        except RetryableStatusError as e:
            raise FitbitAPIError(resource, str(e), status_code=e.status_code) from e

        # Unreachable: the last attempt either returns or raises
        raise FitbitAPIError(resource, "retries exhausted")

    async def _get(self, resource: str, path: str) -> dict[str, Any]:
        logger.debug("fitbit_request", resource=resource, path=path)
        return await self._breaker.call(lambda: self._request(resource, path))

    async def get_activity(self, date: str) -> ActivityResponse:
        """Get the daily activity summary for ``date``."""
        data = await self._get("activity", f"/1/user/-/activities/date/{date}.json")
        return ActivityResponse.model_validate(data)

    async def get_sleep(self, date: str) -> SleepResponse:
        """Get the sleep logs for ``date``."""
        data = await self._get("sleep", f"/1.2/user/-/sleep/date/{date}.json")
        return SleepResponse.model_validate(data)

    async def get_weight_logs(self, start_date: str, end_date: str) -> WeightResponse:
        """Get the weight logs between two dates, inclusive."""
        data = await self._get(
            "weight", f"/1/user/-/body/log/weight/date/{start_date}/{end_date}.json"
        )
        return WeightResponse.model_validate(data)

    async def get_food(self, date: str) -> FoodResponse:
        """Get the food log for ``date``."""
        data = await self._get("food", f"/1/user/-/foods/log/date/{date}.json")
        return FoodResponse.model_validate(data)
