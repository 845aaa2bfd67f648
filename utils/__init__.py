# Utils package - Utility modules organized by domain
# Import from subpackages for convenience

from .clients.anthropic_client import AnalysisClient
from .clients.pagespeed_client import TelemetryClient
from .parsing.json import parse_json_payload

__all__ = [
    "AnalysisClient",
    "TelemetryClient",
    "parse_json_payload",
]
