"""
Audit orchestration.

AuditOrchestrator runs the two network stages in order (PageSpeed telemetry,
then generative analysis) and exposes where it is as an AuditState. Each
state is its own immutable class carrying only the data valid in that
state, so a Complete without an analysis cannot be built. Transitions
replace the state object wholesale; observers never see a half-updated one.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, ClassVar, List, Optional, Protocol, Union

from analyzer.errors import AuditError, AuditInProgressError, ValidationError
from models import AnalysisResult, TelemetryRecord

logger = logging.getLogger(__name__)


# ======================
# Audit states
# ======================

@dataclass(frozen=True)
class Idle:
    stage: ClassVar[str] = "IDLE"


@dataclass(frozen=True)
class FetchingTelemetry:
    stage: ClassVar[str] = "FETCHING_TELEMETRY"

    url: str


@dataclass(frozen=True)
class AnalyzingContent:
    stage: ClassVar[str] = "ANALYZING_CONTENT"

    telemetry: TelemetryRecord


@dataclass(frozen=True)
class Complete:
    stage: ClassVar[str] = "COMPLETE"

    telemetry: TelemetryRecord
    analysis: AnalysisResult


@dataclass(frozen=True)
class Failed:
    stage: ClassVar[str] = "FAILED"

    error: str
    status_code: int = 500
    # Only set when the telemetry stage had already succeeded
    telemetry: Optional[TelemetryRecord] = None


AuditState = Union[Idle, FetchingTelemetry, AnalyzingContent, Complete, Failed]

IDLE = Idle()
BUSY_STATES = (FetchingTelemetry, AnalyzingContent)


class TelemetrySource(Protocol):
    async def fetch_telemetry(self, url: str, strategy: str = "mobile") -> TelemetryRecord: ...


class AnalysisSource(Protocol):
    async def analyze(
        self, telemetry: TelemetryRecord, goal: Optional[str], url: str
    ) -> AnalysisResult: ...


def normalize_target_url(raw_url: Optional[str]) -> str:
    """Trim the URL and prepend https:// when no scheme was given."""
    url = (raw_url or "").strip()
    if not url:
        raise ValidationError("URL parameter is required")
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    return url


class AuditOrchestrator:
    """
    Sequences one audit at a time: Idle -> FetchingTelemetry ->
    AnalyzingContent -> Complete, with Failed reachable from either
    network stage. Complete and Failed stay put until reset() or a new
    start_audit().
    """

    def __init__(
        self,
        telemetry_client: TelemetrySource,
        analysis_client: AnalysisSource,
        strategy: str = "mobile",
    ):
        self._telemetry_client = telemetry_client
        self._analysis_client = analysis_client
        self._strategy = strategy
        self._state: AuditState = IDLE
        self._listeners: List[Callable[[AuditState], None]] = []

    @property
    def state(self) -> AuditState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return isinstance(self._state, BUSY_STATES)

    def subscribe(self, listener: Callable[[AuditState], None]) -> Callable[[], None]:
        """Register a listener called with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, new_state: AuditState) -> AuditState:
        previous = self._state
        self._state = new_state
        if previous is not new_state:
            logger.info(f"Audit stage {previous.stage} -> {new_state.stage}")
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception(f"Audit state listener failed on {new_state.stage}")
        return new_state

    def _fail(self, error: Exception, telemetry: Optional[TelemetryRecord] = None) -> Failed:
        if isinstance(error, AuditError):
            logger.error(f"❌ Audit failed ({type(error).__name__}): {error.message}")
            return self._transition(
                Failed(error=error.message, status_code=error.status_code, telemetry=telemetry)
            )
        logger.exception(f"❌ Audit failed unexpectedly: {error}", exc_info=error)
        return self._transition(
            Failed(error=str(error) or "An unexpected error occurred.", telemetry=telemetry)
        )

    def reset(self) -> AuditState:
        """Return to Idle and drop any held telemetry or analysis."""
        if isinstance(self._state, Idle):
            return self._state
        return self._transition(IDLE)

    async def start_audit(
        self, url: Optional[str], goal: Optional[str] = "", strategy: Optional[str] = None
    ) -> AuditState:
        """
        Run a full audit and return the terminal state (Complete or Failed).

        Raises:
            AuditInProgressError: If another audit on this orchestrator is running
            ValidationError: If url is empty; nothing is fetched and the state is unchanged
        """
        if self.is_busy:
            raise AuditInProgressError(
                f"An audit is already running (stage {self._state.stage})"
            )
        target_url = normalize_target_url(url)
        strategy = strategy or self._strategy

        self._transition(FetchingTelemetry(url=target_url))
        telemetry = None
        try:
            telemetry = await self._telemetry_client.fetch_telemetry(target_url, strategy)
            self._transition(AnalyzingContent(telemetry=telemetry))

            analysis = await self._analysis_client.analyze(telemetry, goal, target_url)
        except asyncio.CancelledError:
            self._fail(AuditError("Audit was cancelled"), telemetry)
            raise
        except Exception as e:
            return self._fail(e, telemetry)

        logger.info(f"✅ Audit complete for {target_url}")
        return self._transition(Complete(telemetry=telemetry, analysis=analysis))
