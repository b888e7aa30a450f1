"""
HTTP transport with rate limit handling and retry logic.

Shared by the wallet provider and the chain data service clients so every
outbound request gets the same timeout and backoff behavior.
"""

import random
import time
from typing import Callable, Optional

import requests

from .errors import NetworkUnreachable

# Retry configuration
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_DELAY = 32.0  # seconds
DEFAULT_JITTER = 0.1  # ±10%
DEFAULT_TIMEOUT = 10.0  # seconds


class RetryingHttpClient:
    """
    Base class for HTTP clients with automatic 429/5xx retry handling.

    Subclasses build requests against self.session and pass them through
    _execute_with_retry, passing self.timeout to every call.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: float = DEFAULT_JITTER,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            timeout: Per-request timeout in seconds
            initial_delay: Initial delay in seconds for retry backoff
            backoff_multiplier: Multiplier for exponential backoff
            max_retries: Maximum number of retry attempts
            max_delay: Maximum delay cap in seconds
            jitter: Jitter factor (±percentage) to randomize delays
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_retries = max_retries
        self.max_delay = max_delay
        self.jitter = jitter
        self.session = session or requests.Session()

    def _sanitize_error_message(self, message: str) -> str:
        """Hook for subclasses holding credentials that must not leak into errors."""
        return message

    def _apply_jitter(self, delay: float) -> float:
        """Apply random jitter to a delay value."""
        jitter_range = delay * self.jitter
        return delay + random.uniform(-jitter_range, jitter_range)

    def _execute_with_retry(
        self,
        request_func: Callable[[], requests.Response],
        max_retries: Optional[int] = None,
    ) -> requests.Response:
        """
        Execute a request function with retry logic for rate limits and server errors.

        4xx responses other than 429 are returned to the caller unchanged,
        since their meaning is endpoint specific.

        Args:
            request_func: A callable that returns a requests.Response
            max_retries: Override of the client retry count for this call

        Returns:
            The final response

        Raises:
            NetworkUnreachable: When retries are exhausted. status_code is
                None for transport failures (connection refused, timeout).
        """
        delay = self.initial_delay
        if max_retries is None:
            max_retries = self.max_retries

        for attempt in range(max_retries + 1):
            try:
                response = request_func()

                if response.status_code == 429 or response.status_code >= 500:
                    if attempt < max_retries:
                        time.sleep(self._apply_jitter(min(delay, self.max_delay)))
                        delay *= self.backoff_multiplier
                        continue
                    if response.status_code == 429:
                        raise NetworkUnreachable(
                            "Rate limit exceeded and max retries reached",
                            status_code=429,
                        )
                    raise NetworkUnreachable(
                        f"Server error: {response.status_code}",
                        status_code=response.status_code,
                    )

                return response

            except requests.RequestException as e:
                if attempt < max_retries:
                    time.sleep(self._apply_jitter(min(delay, self.max_delay)))
                    delay *= self.backoff_multiplier
                    continue
                sanitized_msg = self._sanitize_error_message(str(e))
                raise NetworkUnreachable(f"Request failed: {sanitized_msg}") from e

        raise NetworkUnreachable("Max retries exceeded")
