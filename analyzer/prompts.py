"""
Prompt construction for the generative analysis step.

The request is one user message made of an optional screenshot image block
followed by a text brief; the response contract travels in the system prompt.
"""

import base64
import binascii
import json
import logging
import re
from typing import Dict, List, Optional, Tuple

from analyzer.schema import ANALYSIS_SCHEMA
from models import TelemetryRecord

logger = logging.getLogger(__name__)

DEFAULT_GOAL = "General Improvement"
DEFAULT_MEDIA_TYPE = "image/jpeg"
# Image types the Messages API accepts
SUPPORTED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

# PageSpeed Insights returns the screenshot as a Data URI
# (e.g. "data:image/jpeg;base64,..."), the provider wants the bare payload.
_DATA_URI_PREFIX = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)


def strip_data_uri(screenshot: str) -> Tuple[str, str]:
    """
    Split a screenshot string into (media_type, base64_payload).

    Strings without a data URI prefix are treated as bare JPEG base64.
    """
    match = _DATA_URI_PREFIX.match(screenshot)
    if not match:
        return DEFAULT_MEDIA_TYPE, screenshot.strip()
    return match.group(1).lower(), screenshot[match.end():].strip()


def build_image_block(screenshot: Optional[str]) -> Optional[Dict]:
    """Build the image content block, or None when there is no usable screenshot."""
    if not screenshot:
        return None

    media_type, data = strip_data_uri(screenshot)
    if not data:
        return None
    if media_type not in SUPPORTED_MEDIA_TYPES:
        logger.warning(f"Screenshot type {media_type} is not supported, sending analysis request without it")
        return None
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Screenshot is not valid base64, sending analysis request without it")
        return None

    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": media_type,
            "data": data,
        },
    }


def build_analysis_brief(telemetry: TelemetryRecord, goal: Optional[str], url: str) -> str:
    """
    Generate the text brief sent alongside the screenshot.

    Args:
        telemetry: Normalized PageSpeed data for the page
        goal: The user's stated goal for the site (blank means general improvement)
        url: Website URL being analyzed

    Returns:
        Prompt text summarizing the telemetry and the task
    """
    goal = (goal or "").strip() or DEFAULT_GOAL
    metric_lines = "\n".join(
        f"- {metric.title}: {metric.display_value or 'n/a'}" for metric in telemetry.metrics
    )

    return f"""You are an expert web conversion rate optimization (CRO) specialist and UI/UX designer.

I will provide data for the website: {url}

The user has a specific goal for this website: "{goal}".

Here is the summary of the PageSpeed Insights performance data:
- Performance Score: {telemetry.performance_score}/100
- Accessibility Score: {telemetry.accessibility_score}/100
- Best Practices Score: {telemetry.best_practices_score}/100
- SEO Score: {telemetry.seo_score}/100

Key Metrics:
{metric_lines}

Your task:
1. Analyze the visual design of the website based on the provided screenshot. Provide a specific design score and a paragraph explaining your reasoning.
2. Evaluate the potential effectiveness (conversions) based on the goal. Provide a specific effectiveness score and a paragraph explaining your reasoning.
3. Synthesize this with the performance data. Ensure your design recommendations do not negatively impact performance (e.g., don't suggest massive hero videos if LCP is already poor, unless optimized). Flag any suggestion that would worsen a metric that is already in poor standing.
4. Provide a holistic list of action items.

Return a structured JSON object."""


def get_system_prompt() -> str:
    """System prompt carrying the response contract."""
    schema = json.dumps(ANALYSIS_SCHEMA, indent=2)
    return f"""You produce website audits as JSON.

Your entire reply MUST be a single JSON object that conforms to this JSON schema:

{schema}

Rules:
- Include every required field.
- "category" must be exactly one of "Performance", "Effectiveness", "Design".
- "priority" must be exactly one of "High", "Medium", "Low".
- Scores are numbers from 0 to 100.
- Do not wrap the object in Markdown and do not add any text before or after it."""


def build_analysis_content(
    telemetry: TelemetryRecord, goal: Optional[str], url: str
) -> List[Dict]:
    """
    Compose the user message content: screenshot first (if any), then the brief.
    """
    content = []

    image_block = build_image_block(telemetry.screenshot_base64)
    if image_block:
        content.append(image_block)

    content.append({
        "type": "text",
        "text": build_analysis_brief(telemetry, goal, url),
    })
    return content
