"""
Report composition for completed audits.

Pure functions that turn telemetry plus analysis into the ordered,
display-ready report returned by the API.
"""

import re
from typing import List, Optional, Sequence, Union

from models import ActionItem, AnalysisResult, AuditReport, IssueDetail, ScoreCard, TelemetryRecord

PRIORITY_WEIGHT = {"High": 3, "Medium": 2, "Low": 1}

_MARKDOWN_LINK = re.compile(r"\[(.*?)\]\(.*?\)")


def sort_action_items(items: Sequence[ActionItem]) -> List[ActionItem]:
    """High priority first; items of equal priority keep the provider's order."""
    return sorted(items, key=lambda item: PRIORITY_WEIGHT[item.priority], reverse=True)


def score_rating(score: Union[int, float]) -> str:
    """Lighthouse colour bands: 90+ good, 50+ needs improvement, else poor."""
    if score >= 90:
        return "good"
    if score >= 50:
        return "needs-improvement"
    return "poor"


def strip_markdown_links(text: str) -> str:
    """Lighthouse descriptions end with '[Learn more](...)' links; keep only the label."""
    return _MARKDOWN_LINK.sub(r"\1", text)


def _plain_issues(issues: Sequence[IssueDetail]) -> List[IssueDetail]:
    return [
        issue.model_copy(update={"description": strip_markdown_links(issue.description)})
        for issue in issues
    ]


def _scorecard(label: str, score: Union[int, float]) -> ScoreCard:
    return ScoreCard(label=label, score=score, rating=score_rating(score))


def compose_report(
    url: str,
    goal: Optional[str],
    telemetry: TelemetryRecord,
    analysis: AnalysisResult,
) -> AuditReport:
    scorecards = [
        _scorecard("Performance", telemetry.performance_score),
        _scorecard("Effectiveness", analysis.effectiveness_score),
        _scorecard("Visual Design", analysis.design_score),
        _scorecard("SEO", telemetry.seo_score),
        _scorecard("Accessibility", telemetry.accessibility_score),
        _scorecard("Best Practices", telemetry.best_practices_score),
    ]
    return AuditReport(
        url=url,
        goal=(goal or "").strip(),
        summary=analysis.summary,
        scorecards=scorecards,
        effectiveness_reasoning=analysis.effectiveness_reasoning,
        design_reasoning=analysis.design_reasoning,
        metrics=telemetry.metrics,
        performance_issues=_plain_issues(telemetry.performance_issues),
        seo_issues=_plain_issues(telemetry.seo_issues),
        action_items=sort_action_items(analysis.action_items),
        has_screenshot=bool(telemetry.screenshot_base64),
        screenshot_base64=telemetry.screenshot_base64,
    )
