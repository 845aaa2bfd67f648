"""
Response contract for the generative analysis step.

ANALYSIS_SCHEMA is the JSON schema handed to the provider in the prompt;
validate_analysis() enforces the same contract on whatever comes back. The
pydantic models in ``models`` are the source of truth for field names and
enumerations, and the schema below mirrors them.
"""

import logging
from typing import Any, Sequence, Tuple, Union

import pydantic

from analyzer.errors import SchemaViolation
from models import AnalysisResult

logger = logging.getLogger(__name__)

ACTION_ITEM_CATEGORIES = ("Performance", "Effectiveness", "Design")
ACTION_ITEM_PRIORITIES = ("High", "Medium", "Low")

ACTION_ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "category": {"type": "string", "enum": list(ACTION_ITEM_CATEGORIES)},
        "priority": {"type": "string", "enum": list(ACTION_ITEM_PRIORITIES)},
        "impact": {
            "type": "string",
            "description": "Why this matters (e.g. 'Improves LCP by reducing load').",
        },
    },
    "required": ["title", "description", "category", "priority", "impact"],
}

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "effectivenessScore": {
            "type": "number",
            "minimum": 0,
            "maximum": 100,
            "description": "Score from 0-100 based on CRO best practices.",
        },
        "effectivenessReasoning": {
            "type": "string",
            "description": "A detailed paragraph explaining WHY this effectiveness score was given, citing specific positive and negative observations.",
        },
        "designScore": {
            "type": "number",
            "minimum": 0,
            "maximum": 100,
            "description": "Score from 0-100 based on UI/UX best practices.",
        },
        "designReasoning": {
            "type": "string",
            "description": "A detailed paragraph explaining WHY this design score was given, citing specific positive and negative observations.",
        },
        "summary": {
            "type": "string",
            "description": "A 2-3 sentence executive summary of the findings.",
        },
        "actionItems": {"type": "array", "items": ACTION_ITEM_SCHEMA},
    },
    "required": [
        "effectivenessScore",
        "effectivenessReasoning",
        "designScore",
        "designReasoning",
        "summary",
        "actionItems",
    ],
}


def format_field_path(loc: Sequence[Union[str, int]]) -> str:
    """Render a pydantic error location as ``actionItems[2].priority``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "(root)"


def _first_violation(exc: pydantic.ValidationError) -> Tuple[str, str]:
    error = exc.errors()[0]
    return format_field_path(error["loc"]), error["msg"]


def validate_analysis(payload: Any) -> AnalysisResult:
    """
    Validate a decoded provider payload against the analysis contract.

    Args:
        payload: JSON value parsed from the provider's text output

    Returns:
        AnalysisResult built from the payload, values untouched

    Raises:
        SchemaViolation: On the first missing field, wrong type or value
            outside its enumeration, naming the offending field path
    """
    try:
        return AnalysisResult.model_validate(payload)
    except pydantic.ValidationError as e:
        path, reason = _first_violation(e)
        logger.warning(
            f"Analysis payload rejected ({e.error_count()} violation(s)), first: {path}: {reason}"
        )
        raise SchemaViolation(path, reason) from e
