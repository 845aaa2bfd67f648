# Analyzer package - audit pipeline core
from .errors import (
    AuditError,
    AuditInProgressError,
    MalformedTelemetry,
    ParseError,
    SchemaViolation,
    UpstreamError,
    ValidationError,
)
from .normalizer import normalize_telemetry
from .orchestrator import (
    AnalyzingContent,
    AuditOrchestrator,
    AuditState,
    Complete,
    Failed,
    FetchingTelemetry,
    Idle,
)
from .report import compose_report, sort_action_items
from .schema import ANALYSIS_SCHEMA, validate_analysis

__all__ = [
    # Errors
    "AuditError",
    "AuditInProgressError",
    "MalformedTelemetry",
    "ParseError",
    "SchemaViolation",
    "UpstreamError",
    "ValidationError",
    # Pipeline
    "normalize_telemetry",
    "validate_analysis",
    "ANALYSIS_SCHEMA",
    "compose_report",
    "sort_action_items",
    # Orchestration
    "AuditOrchestrator",
    "AuditState",
    "Idle",
    "FetchingTelemetry",
    "AnalyzingContent",
    "Complete",
    "Failed",
]
