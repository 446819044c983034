"""HTTP client utilities with retry and connection pooling.

Purpose: Centralize HTTP configuration for the booking backend.

Pattern: requests.Session with tenacity retry strategy and connection pooling.

- Tenacity exponential backoff for idempotent reads (GET) only, on
  connection errors, timeouts and 429/5xx answers; other 4xx are final
- Appointment creation (POST) is sent exactly once; a failed create is
  reported to the user and retried manually
- Circuit breaker shared by every call to the booking service
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log
)

from booking_workflow import config
from booking_workflow.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

# Global circuit breaker for the booking service
api_circuit_breaker = CircuitBreaker(
    failure_threshold=config.CIRCUIT_FAILURE_THRESHOLD,
    timeout=config.CIRCUIT_RESET_TIMEOUT_SECONDS,
)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_transient_error(error: BaseException) -> bool:
    """True for failures worth repeating a GET for."""
    if isinstance(error, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    if isinstance(error, requests.exceptions.HTTPError):
        response = error.response
        return response is not None and response.status_code in RETRYABLE_STATUS_CODES
    return False


def create_http_session(
    max_retries: int = config.HTTP_MAX_RETRIES,
    backoff_factor: float = 1.0,
    timeout: int = config.HTTP_TIMEOUT_SECONDS
) -> requests.Session:
    """
    Create HTTP session with read retries and connection pooling.

    Args:
        max_retries: Maximum number of retry attempts for GET (default: 3)
        backoff_factor: Backoff multiplier (default: 1.0 for exponential)
                       Retry delays: 1s, 2s, 4s
        timeout: Request timeout in seconds (default: 15)

    Returns:
        Configured requests.Session
    """
    session = requests.Session()

    # Retries are handled by tenacity below, one layer only
    adapter = HTTPAdapter(
        max_retries=0,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    original_get = session.get
    original_post = session.post

    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(
            multiplier=backoff_factor,
            min=backoff_factor,
            max=8 * backoff_factor
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def get_with_retry(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        response = original_get(*args, **kwargs)
        response.raise_for_status()
        return response

    def post_once(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        response = original_post(*args, **kwargs)
        response.raise_for_status()
        return response

    session.get = get_with_retry
    session.post = post_once

    return session


def api_call_with_protection(
    method: str,
    url: str,
    session: requests.Session,
    breaker: CircuitBreaker = api_circuit_breaker,
    **kwargs
):
    """
    Make API call with circuit breaker protection.

    Args:
        method: HTTP method (GET, POST)
        url: Request URL
        session: Session created by create_http_session
        breaker: Circuit breaker guarding the service
        **kwargs: Additional arguments for requests

    Returns:
        Response object

    Raises:
        CircuitBreakerOpen: If circuit is open
        requests.exceptions.*: If request fails
    """
    def make_request():
        if method.upper() == "GET":
            return session.get(url, **kwargs)
        elif method.upper() == "POST":
            return session.post(url, **kwargs)
        else:
            raise ValueError(f"Unsupported HTTP method: {method}")

    return breaker.call(make_request)
