"""
PageSpeed Insights client for WebPage Reporter.

Issues the runPagespeed call, forwards upstream status codes and error
envelopes untouched, and hands successful payloads to the normalizer.
"""

import logging
from typing import Any, Optional, Tuple

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from analyzer.errors import AuditError, UpstreamError, ValidationError
from analyzer.normalizer import normalize_telemetry
from config import get_psi_api_key, settings
from models import TelemetryRecord

logger = logging.getLogger(__name__)

PSI_CATEGORIES = ["PERFORMANCE", "ACCESSIBILITY", "BEST_PRACTICES", "SEO"]
STRATEGIES = ("mobile", "desktop")


def upstream_error_message(body: Any) -> Optional[str]:
    """Pull ``error.message`` out of a Google API error envelope."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return None


class TelemetryClient:
    """
    Client for the Google PageSpeed Insights v5 API.

    Usage::

        client = TelemetryClient()
        status, body = await client.fetch_raw("https://example.com")
        telemetry = await client.fetch_telemetry("https://example.com")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key if api_key is not None else get_psi_api_key()
        self._api_url = api_url or settings.PSI_API_URL
        self._timeout = timeout or settings.PSI_TIMEOUT
        self._max_attempts = max_attempts or settings.UPSTREAM_MAX_ATTEMPTS
        self._http_client = http_client
        self.wait = wait_exponential(multiplier=1, min=2, max=10)

    async def _get(self, params: list) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(self._api_url, params=params)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(self._api_url, params=params)

    async def fetch_raw(self, url: str, strategy: str = "mobile") -> Tuple[int, Any]:
        """
        Run PageSpeed Insights for a URL and return the upstream answer as-is.

        Args:
            url: The page to measure
            strategy: 'mobile' or 'desktop'

        Returns:
            (status_code, decoded JSON body) exactly as Google sent them

        Raises:
            ValidationError: If url is empty or strategy is unknown
            UpstreamError: If Google could not be reached
        """
        if not url:
            raise ValidationError("URL parameter is required")
        if strategy not in STRATEGIES:
            raise ValidationError(f"Unknown strategy '{strategy}', expected mobile or desktop")
        if not self._api_key:
            logger.error("Server missing PageSpeed API Key")
            raise AuditError("Server configuration error: API Key missing", status_code=500)

        params = [("url", url), ("strategy", strategy), ("key", self._api_key)]
        params += [("category", category) for category in PSI_CATEGORIES]

        logger.info(f"📊 Requesting PageSpeed Insights for {url} ({strategy})")
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=self.wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._get(params)
        except httpx.TransportError as e:
            logger.error(f"PageSpeed transport error for {url}: {e!r}")
            raise UpstreamError(
                "Internal Server Error while contacting Google PSI", status_code=500
            ) from e

        logger.info(f"✅ PageSpeed response received for {url} (status: {response.status_code})")
        try:
            body = response.json()
        except ValueError:
            body = {
                "error": {
                    "message": f"PageSpeed Insights returned a non-JSON response (HTTP {response.status_code})"
                }
            }
        return response.status_code, body

    async def fetch_telemetry(self, url: str, strategy: str = "mobile") -> TelemetryRecord:
        """
        Fetch and normalize telemetry for a URL.

        Raises:
            UpstreamError: On any non-2xx answer, carrying Google's own message and status
            MalformedTelemetry: If a 2xx answer has no Lighthouse report
        """
        status, body = await self.fetch_raw(url, strategy)
        if not 200 <= status < 300:
            message = upstream_error_message(body) or f"PageSpeed Insights request failed (HTTP {status})"
            logger.error(f"PageSpeed API error for {url}: {message}")
            raise UpstreamError(message, status_code=status)
        return normalize_telemetry(body)
