"""
Telemetry normalization for PageSpeed Insights responses.

Turns the loosely-shaped Lighthouse report returned by PageSpeed Insights
into a fixed-shape TelemetryRecord: four category scores, three core web
vitals, the five worst performance and SEO audits, and the final screenshot.
Nothing past this module ever sees the raw document except as the opaque
``raw_audits`` mapping kept for traceability.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

import pydantic

from analyzer.errors import MalformedTelemetry
from models import IssueDetail, TelemetryMetric, TelemetryRecord

logger = logging.getLogger(__name__)

# Audits at or above this score are considered passing
ISSUE_SCORE_THRESHOLD = 0.9
MAX_ISSUES = 5

SCREENSHOT_AUDIT_ID = "final-screenshot"

# (metric id, display title, Lighthouse audit id)
KEY_METRICS = [
    ("lcp", "Largest Contentful Paint", "largest-contentful-paint"),
    ("cls", "Cumulative Layout Shift", "cumulative-layout-shift"),
    ("inp", "Interaction to Next Paint", "interaction-to-next-paint"),
]


def _as_score(value: Any) -> Optional[float]:
    """Return a numeric audit score, or None when the provider left it undefined."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def extract_score(category: Optional[Mapping[str, Any]]) -> int:
    """
    Convert a category's aggregate 0-1 score into a 0-100 integer.

    A missing category or an undefined score counts as 0. Halves round up,
    matching how the scores are shown in the Lighthouse UI.
    """
    raw = _as_score(category.get("score")) if category else None
    value = int(math.floor((raw or 0.0) * 100 + 0.5))
    return max(0, min(100, value))


def extract_issues(lighthouse: Mapping[str, Any], category_id: str) -> List[IssueDetail]:
    """
    Collect the worst-scoring audits that count towards a category.

    An audit qualifies when its reference carries a positive weight and its
    score is defined and below 0.9. Results are ordered worst first (the sort
    is stable, so ties keep the provider's order) and capped at five.
    """
    category = lighthouse.get("categories", {}).get(category_id)
    if not category:
        return []

    audits = lighthouse.get("audits", {})
    issues = []
    for ref in category.get("auditRefs") or []:
        ref_id = ref.get("id")
        weight = ref.get("weight") or 0
        audit = audits.get(ref_id)
        if audit is None:
            logger.debug(f"Category {category_id} references unknown audit {ref_id}")
            continue

        score = _as_score(audit.get("score"))
        if weight <= 0 or score is None or score >= ISSUE_SCORE_THRESHOLD:
            continue

        issues.append(
            IssueDetail(
                id=ref_id,
                title=_as_text(audit.get("title")) or ref_id,
                description=_as_text(audit.get("description")) or "",
                score=score,
                display_value=_as_text(audit.get("displayValue")),
            )
        )

    issues.sort(key=lambda issue: issue.score)
    return issues[:MAX_ISSUES]


def extract_metrics(audits: Mapping[str, Any]) -> List[TelemetryMetric]:
    """Read the three core web vitals, present or not."""
    metrics = []
    for metric_id, title, audit_id in KEY_METRICS:
        audit = audits.get(audit_id) or {}
        metrics.append(
            TelemetryMetric(
                id=metric_id,
                title=title,
                score=_as_score(audit.get("score")),
                display_value=_as_text(audit.get("displayValue")),
            )
        )
    return metrics


def extract_screenshot(audits: Mapping[str, Any]) -> Optional[str]:
    """Return the final screenshot data URI, if Lighthouse captured one."""
    details = (audits.get(SCREENSHOT_AUDIT_ID) or {}).get("details") or {}
    return _as_text(details.get("data"))


def normalize_telemetry(payload: Any) -> TelemetryRecord:
    """
    Build a TelemetryRecord from a raw PageSpeed Insights response.

    Args:
        payload: Decoded JSON body of a successful runPagespeed call

    Returns:
        TelemetryRecord with scores, metrics, ranked issues and screenshot

    Raises:
        MalformedTelemetry: If the Lighthouse report root is missing or unusable
    """
    lighthouse = payload.get("lighthouseResult") if isinstance(payload, dict) else None
    if not isinstance(lighthouse, dict):
        raise MalformedTelemetry(
            "Invalid response from PageSpeed Insights (No Lighthouse data received)."
        )

    audits = lighthouse.get("audits")
    categories = lighthouse.get("categories")
    if not isinstance(audits, dict) or not isinstance(categories, dict):
        raise MalformedTelemetry(
            "Invalid response from PageSpeed Insights (Lighthouse report has no audits or categories)."
        )

    try:
        record = TelemetryRecord(
            performance_score=extract_score(categories.get("performance")),
            accessibility_score=extract_score(categories.get("accessibility")),
            best_practices_score=extract_score(categories.get("best-practices")),
            seo_score=extract_score(categories.get("seo")),
            screenshot_base64=extract_screenshot(audits),
            metrics=extract_metrics(audits),
            performance_issues=extract_issues(lighthouse, "performance"),
            seo_issues=extract_issues(lighthouse, "seo"),
            raw_audits=audits,
        )
    except (pydantic.ValidationError, AttributeError, TypeError) as e:
        raise MalformedTelemetry(
            f"Invalid response from PageSpeed Insights ({str(e).splitlines()[0]})."
        ) from e

    logger.info(
        f"Normalized telemetry: perf={record.performance_score} "
        f"seo={record.seo_score} issues={len(record.performance_issues)}+{len(record.seo_issues)}"
    )
    return record
