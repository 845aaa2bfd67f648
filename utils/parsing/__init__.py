# Parsing subpackage - provider payload parsing utilities
from .json import parse_json_payload, strip_code_fence

__all__ = [
    "parse_json_payload",
    "strip_code_fence",
]
