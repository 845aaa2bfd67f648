"""
Anthropic API client for WebPage Reporter.

Sends the composed analysis request to Claude, parses the returned text as
JSON and validates it against the analysis contract. Transport problems and
contract problems surface as different errors so callers can tell
"provider unavailable" from "provider returned invalid data".
"""

import logging
from typing import Optional

import anthropic
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from analyzer.errors import AuditError, UpstreamError, ValidationError
from analyzer.prompts import build_analysis_content, get_system_prompt
from analyzer.schema import validate_analysis
from config import get_anthropic_api_key, get_anthropic_model, settings
from models import AnalysisResult, TelemetryRecord
from utils.parsing.json import parse_json_payload

logger = logging.getLogger(__name__)

# Transient failures worth another attempt when retries are enabled
RETRYABLE_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

# Lazy initialization of Anthropic client
_anthropic_client = None


def get_anthropic_client() -> anthropic.AsyncAnthropic:
    """Get or create the Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        api_key = get_anthropic_api_key()
        if not api_key:
            logger.error("Server missing Anthropic API Key")
            raise AuditError(
                "Server configuration error: Analysis API Key missing", status_code=500
            )
        _anthropic_client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=settings.ANALYSIS_TIMEOUT
        )
    return _anthropic_client


class AnalysisClient:
    """
    Runs the generative analysis for one normalized telemetry record.

    Usage::

        client = AnalysisClient()
        result = await client.analyze(telemetry, "Get more demo bookings", "https://example.com")
    """

    def __init__(
        self,
        client: Optional[anthropic.AsyncAnthropic] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self._client = client
        self._model = model or get_anthropic_model()
        self._max_tokens = max_tokens or settings.MAX_TOKENS
        self._max_attempts = max_attempts or settings.UPSTREAM_MAX_ATTEMPTS
        self.wait = wait_exponential(multiplier=1, min=2, max=10)

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = get_anthropic_client()
        return self._client

    async def _create_message(self, telemetry: TelemetryRecord, goal: Optional[str], url: str) -> str:
        """Call the Messages API and return the concatenated text output."""
        content = build_analysis_content(telemetry, goal, url)
        client = self.client

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=self.wait,
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await client.messages.create(
                        model=self._model,
                        max_tokens=self._max_tokens,
                        system=get_system_prompt(),
                        messages=[{"role": "user", "content": content}],
                    )
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API failure for {url}: HTTP {e.status_code} {e.message}")
            raise UpstreamError(
                f"Analysis provider unavailable: {e.message}", status_code=e.status_code
            ) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"Anthropic API unreachable for {url}: {str(e)}")
            raise UpstreamError(f"Analysis provider unavailable: {str(e)}") from e

        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning(f"Analysis for {url} hit the max_tokens limit, output may be truncated")

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def analyze(
        self, telemetry: Optional[TelemetryRecord], goal: Optional[str], url: Optional[str]
    ) -> AnalysisResult:
        """
        Analyze a page from its telemetry and screenshot.

        Args:
            telemetry: Normalized PageSpeed data (screenshot included)
            goal: The user's stated goal; blank means general improvement
            url: Website URL being analyzed

        Returns:
            AnalysisResult that satisfies the response contract

        Raises:
            ValidationError: If telemetry or url is missing
            UpstreamError: If the provider failed or could not be reached
            ParseError: If the provider's text is not JSON
            SchemaViolation: If the JSON breaks the contract
        """
        if telemetry is None or not url:
            raise ValidationError("psiData and url are required")

        logger.info(f"🤖 Starting AI analysis for {url} (model: {self._model})")
        text = await self._create_message(telemetry, goal, url)
        logger.info(f"✅ Response received from analysis provider ({len(text)} chars)")

        payload = parse_json_payload(text)
        result = validate_analysis(payload)
        logger.info(f"Analysis complete for {url}: {len(result.action_items)} action items")
        return result
