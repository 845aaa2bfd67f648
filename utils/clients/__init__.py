# Clients subpackage - outbound provider clients
from .anthropic_client import AnalysisClient, get_anthropic_client
from .pagespeed_client import TelemetryClient

__all__ = [
    "AnalysisClient",
    "get_anthropic_client",
    "TelemetryClient",
]
