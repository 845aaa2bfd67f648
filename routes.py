from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from analyzer.errors import AuditError
from analyzer.orchestrator import AuditOrchestrator, Complete, normalize_target_url
from analyzer.report import compose_report
from config import get_anthropic_api_key, get_psi_api_key, settings
from models import (
    AnalysisResult,
    AnalyzeRequest,
    AuditReport,
    AuditRequest,
    ErrorDetail,
    ErrorEnvelope,
)
from utils.clients.anthropic_client import AnalysisClient
from utils.clients.pagespeed_client import TelemetryClient
import logging

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the {"error": {"message": ...}} envelope used by every endpoint."""
    envelope = ErrorEnvelope(error=ErrorDetail(message=message))
    return JSONResponse(status_code=status_code, content=envelope.model_dump())


def get_telemetry_client() -> TelemetryClient:
    return TelemetryClient()


def get_analysis_client() -> AnalysisClient:
    return AnalysisClient()


@router.get("/")
async def root():
    return {
        "service": "WebPage Reporter",
        "status": "running",
        "endpoints": {
            "pagespeed": "/api/psi?url=... (GET)",
            "analyze": "/api/analyze (POST)",
            "audit": "/api/audit (POST)",
        },
    }


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "pagespeed_key_configured": bool(get_psi_api_key()),
        "analysis_key_configured": bool(get_anthropic_api_key()),
    }


@router.get("/api/psi")
async def pagespeed_proxy(
    url: Optional[str] = None,
    strategy: Optional[str] = None,
    client: TelemetryClient = Depends(get_telemetry_client),
):
    """
    Proxies a PageSpeed Insights run so the API key stays on the server.

    Google's status code and JSON body are forwarded verbatim, errors included.
    """
    if not url:
        return error_response(400, "URL parameter is required")

    try:
        status, body = await client.fetch_raw(url, strategy or settings.PSI_DEFAULT_STRATEGY)
    except AuditError as e:
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Proxy error for {url}: {str(e)}")
        return error_response(500, "Internal Server Error while contacting Google PSI")

    return JSONResponse(status_code=status, content=body)


@router.post("/api/analyze", response_model=AnalysisResult)
async def analyze_telemetry(
    request: AnalyzeRequest,
    client: AnalysisClient = Depends(get_analysis_client),
):
    """
    Runs the generative analysis for telemetry the caller already fetched.

    Returns the schema-validated analysis object. A provider that returns
    invalid data is reported with a message starting "Analysis provider
    returned invalid data"; an unreachable provider with "Analysis provider
    unavailable".
    """
    if request.telemetry is None or not request.url:
        return error_response(400, "psiData and url are required")

    try:
        return await client.analyze(request.telemetry, request.goal, request.url)
    except AuditError as e:
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Analysis error for {request.url}: {str(e)}")
        return error_response(500, str(e) or "Internal Server Error during analysis")


@router.post("/api/audit", response_model=AuditReport)
async def run_audit(
    request: AuditRequest,
    telemetry_client: TelemetryClient = Depends(get_telemetry_client),
    analysis_client: AnalysisClient = Depends(get_analysis_client),
):
    """
    Runs both stages (PageSpeed, then analysis) and returns the composed report.

    Action items in the report are ordered High, Medium, Low.
    """
    try:
        target_url = normalize_target_url(request.url)
    except AuditError as e:
        return error_response(e.status_code, e.message)

    orchestrator = AuditOrchestrator(
        telemetry_client, analysis_client, strategy=request.strategy
    )
    state = await orchestrator.start_audit(target_url, request.goal)

    if not isinstance(state, Complete):
        return error_response(state.status_code, state.error)
    return compose_report(target_url, request.goal, state.telemetry, state.analysis)
