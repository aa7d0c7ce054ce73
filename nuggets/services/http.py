from contextlib import asynccontextmanager
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from nuggets.core.logging import get_logger
from nuggets.core.settings import get_settings
from nuggets.utils.error_logger import log_http_error

logger = get_logger(__name__)
settings = get_settings()

# HTTP status codes that should never be retried
NON_RETRYABLE_STATUS_CODES: set[int] = {
    400, 401, 403, 404, 405, 406, 407, 408, 409, 410, 411, 412, 413, 414, 415, 416, 417, 418,
    421, 422, 423, 424, 425, 426, 428, 429, 431, 451  # Client errors
}


class EnrichmentError(Exception):
    """Metadata for a URL could not be fetched."""


class NonRetryableError(EnrichmentError):
    """Exception for errors that should not be retried."""


def categorize_http_error(error: httpx.HTTPStatusError) -> EnrichmentError:
    """Categorize HTTP errors into retryable vs non-retryable."""
    status_code = error.response.status_code

    if status_code in NON_RETRYABLE_STATUS_CODES:
        return NonRetryableError(f"Non-retryable HTTP {status_code}: {error}")

    # 5xx errors are generally retryable
    if 500 <= status_code < 600:
        return EnrichmentError(f"Server error HTTP {status_code}: {error}")

    return NonRetryableError(f"Unknown status code {status_code}: {error}")


class HttpService:
    """Async JSON client for metadata endpoints with retry on transient failures."""

    def __init__(self, timeout: float | None = None):
        self.timeout = httpx.Timeout(
            timeout=timeout or settings.http_timeout_seconds,
            connect=5.0,
        )
        self.headers = {
            "User-Agent": f"{settings.app_name}/1.0 (+metadata)",
            "Accept": "application/json",
        }

    @asynccontextmanager
    async def get_client(self):
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=self.headers,
        ) as client:
            yield client

    @retry(
        stop=stop_after_attempt(settings.http_max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_not_exception_type(NonRetryableError),
        reraise=True,
    )
    async def fetch_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        GET ``url`` and decode the JSON body.

        Raises:
            NonRetryableError: client errors and undecodable bodies.
            EnrichmentError: transport or server errors after retries.
        """
        async with self.get_client() as client:
            logger.debug("Fetching metadata: %s", url)
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                log_http_error("http_service", url, response=e.response, error=e, operation="fetch_json")
                raise categorize_http_error(e) from e
            except httpx.HTTPError as e:
                log_http_error("http_service", url, error=e, operation="fetch_json")
                raise EnrichmentError(f"Request to {url} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise NonRetryableError(f"Invalid JSON from {url}") from e
        if not isinstance(payload, dict):
            raise NonRetryableError(f"Unexpected JSON payload from {url}")
        return payload


# Global instance
_http_service: HttpService | None = None


def get_http_service() -> HttpService:
    """Get the global HTTP service instance."""
    global _http_service
    if _http_service is None:
        _http_service = HttpService(timeout=settings.enrichment_timeout_seconds)
    return _http_service
