# lectern/utils/http_retry.py
"""
HTTP GET with retry for rate limits and transient errors.

Used to download scripture sources. Local files never go through here.

Usage:
    from lectern.utils.http_retry import get_with_retry

    response = get_with_retry(url, timeout=60)
    raw = response.content
"""

import logging
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class HTTPRetryError(RuntimeError):
    """Raised when a request fails for good (timeout, 4xx, exhausted retries)."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


def _backoff(attempt: int, response: Optional[requests.Response] = None) -> int:
    """Seconds to wait before the next attempt; honours Retry-After."""
    if response is not None:
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return int(retry_after)
            except ValueError:
                pass
    return min(2 ** attempt * 2, 30)


def get_with_retry(
    url: str,
    timeout: int = 60,
    max_retries: int = 3,
    headers: dict = None,
    session: requests.Session = None,
) -> requests.Response:
    """
    GET with automatic retry for rate limits and transient server errors.

    Retry behavior:
    - 429 (rate limit): Respects Retry-After header, falls back to exponential backoff
    - 5xx (server error): Exponential backoff
    - Connection errors: Exponential backoff
    - 4xx (client error): No retry
    - Timeout: No retry (raises immediately)

    Args:
        url: Resource URL
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts
        headers: Optional HTTP headers
        session: Optional requests.Session to reuse

    Returns:
        requests.Response on success

    Raises:
        HTTPRetryError: On timeout, client errors, or exhausted retries
    """
    http = session or requests
    last_response = None

    for attempt in range(max_retries):
        try:
            response = http.get(url, headers=headers, timeout=timeout)

            if response.status_code == 429 or response.status_code >= 500:
                last_response = response
                if attempt < max_retries - 1:
                    wait = _backoff(attempt, response)
                    logger.warning(
                        f"HTTP {response.status_code} from {url}, retrying in {wait}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(wait)
                continue

            response.raise_for_status()
            return response

        except requests.ConnectionError as e:
            if attempt < max_retries - 1:
                wait = 2 ** attempt
                logger.warning(f"Connection error to {url}, retrying in {wait}s: {e}")
                time.sleep(wait)
                continue
            raise HTTPRetryError(
                f"Connection to {url} failed after {max_retries} attempts: {e}"
            ) from e

        except requests.Timeout as e:
            raise HTTPRetryError(f"Request to {url} timed out after {timeout}s") from e

        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise HTTPRetryError(f"Download from {url} failed: {e}", status=status) from e

    status = last_response.status_code if last_response is not None else None
    raise HTTPRetryError(
        f"Request to {url} failed after {max_retries} attempts "
        f"(last status: {status or 'unknown'})",
        status=status,
    )
