"""Shared pytest fixtures for WebPage Reporter tests."""

import copy
import json
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure project root is on sys.path so the top-level modules are importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


SCREENSHOT_DATA_URI = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAgGBgcGBQgHBwcJCQ=="

PSI_PAYLOAD = {
    "kind": "pagespeedonline#result",
    "id": "https://example.com/",
    "lighthouseResult": {
        "requestedUrl": "https://example.com/",
        "categories": {
            "performance": {
                "id": "performance",
                "score": 0.42,
                "auditRefs": [
                    {"id": "largest-contentful-paint", "weight": 25},
                    {"id": "cumulative-layout-shift", "weight": 25},
                    {"id": "unused-javascript", "weight": 1},
                    {"id": "render-blocking-resources", "weight": 1},
                    {"id": "uses-long-cache-ttl", "weight": 0},
                    {"id": "final-screenshot", "weight": 0},
                ],
            },
            "accessibility": {"id": "accessibility", "score": 0.876, "auditRefs": []},
            "best-practices": {"id": "best-practices", "score": 1, "auditRefs": []},
            "seo": {
                "id": "seo",
                "score": 0.83,
                "auditRefs": [
                    {"id": "document-title", "weight": 1},
                    {"id": "meta-description", "weight": 1},
                ],
            },
        },
        "audits": {
            "final-screenshot": {
                "id": "final-screenshot",
                "score": None,
                "details": {"type": "screenshot", "data": SCREENSHOT_DATA_URI},
            },
            "largest-contentful-paint": {
                "id": "largest-contentful-paint",
                "title": "Largest Contentful Paint",
                "description": "LCP marks the time at which the largest text or image is painted.",
                "score": 0.45,
                "displayValue": "4.1 s",
            },
            "cumulative-layout-shift": {
                "id": "cumulative-layout-shift",
                "title": "Cumulative Layout Shift",
                "description": "CLS measures the movement of visible elements.",
                "score": 0.98,
                "displayValue": "0.02",
            },
            "unused-javascript": {
                "id": "unused-javascript",
                "title": "Reduce unused JavaScript",
                "description": "Reduce unused JavaScript. [Learn more](https://developer.chrome.com/docs/lighthouse/performance/unused-javascript/).",
                "score": 0.3,
                "displayValue": "Potential savings of 120 KiB",
            },
            "render-blocking-resources": {
                "id": "render-blocking-resources",
                "title": "Eliminate render-blocking resources",
                "description": "Resources are blocking the first paint of your page.",
                "score": 0.5,
                "displayValue": "Potential savings of 350 ms",
            },
            "uses-long-cache-ttl": {
                "id": "uses-long-cache-ttl",
                "title": "Serve static assets with an efficient cache policy",
                "description": "A long cache lifetime can speed up repeat visits.",
                "score": 0.1,
            },
            "document-title": {
                "id": "document-title",
                "title": "Document has a `<title>` element",
                "description": "The title gives screen reader users an overview of the page.",
                "score": 1,
            },
            "meta-description": {
                "id": "meta-description",
                "title": "Document does not have a meta description",
                "description": "Meta descriptions may be included in search results. [Learn more](https://example.com/meta).",
                "score": 0,
            },
        },
    },
}

ANALYSIS_PAYLOAD = {
    "effectivenessScore": 64,
    "effectivenessReasoning": "The hero communicates the offer but the primary CTA sits below the fold.",
    "designScore": 78,
    "designReasoning": "Clean typography and consistent spacing, weak contrast on secondary buttons.",
    "summary": "A tidy page held back by slow loading and a buried call to action.",
    "actionItems": [
        {
            "title": "Add testimonials near the form",
            "description": "Place two short customer quotes beside the signup form.",
            "category": "Effectiveness",
            "priority": "Low",
            "impact": "Builds trust at the point of conversion.",
        },
        {
            "title": "Defer unused JavaScript",
            "description": "Split vendor bundles and load analytics after interaction.",
            "category": "Performance",
            "priority": "High",
            "impact": "Improves LCP by reducing main-thread work.",
        },
        {
            "title": "Raise button contrast",
            "description": "Darken the secondary button text to meet WCAG AA.",
            "category": "Design",
            "priority": "Medium",
            "impact": "Makes secondary actions legible on mobile.",
        },
    ],
}


@pytest.fixture()
def psi_payload():
    """A trimmed but realistic runPagespeed response body."""
    return copy.deepcopy(PSI_PAYLOAD)


@pytest.fixture()
def analysis_payload():
    """A contract-conforming analysis object as the provider would return it."""
    return copy.deepcopy(ANALYSIS_PAYLOAD)


@pytest.fixture()
def telemetry(psi_payload):
    from analyzer.normalizer import normalize_telemetry
    return normalize_telemetry(psi_payload)


@pytest.fixture()
def analysis(analysis_payload):
    from analyzer.schema import validate_analysis
    return validate_analysis(analysis_payload)


def make_message(text, stop_reason="end_turn"):
    """Shape of an anthropic Message as far as the client reads it."""
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        stop_reason=stop_reason,
    )


@pytest.fixture()
def mock_anthropic():
    """Return a factory for mock AsyncAnthropic clients that answer with canned text."""

    def factory(text=None, side_effect=None):
        client = MagicMock()
        if side_effect is not None:
            client.messages.create = AsyncMock(side_effect=side_effect)
        else:
            body = text if text is not None else json.dumps(ANALYSIS_PAYLOAD)
            client.messages.create = AsyncMock(return_value=make_message(body))
        return client

    return factory


@pytest.fixture()
def psi_transport():
    """Return a factory for httpx clients whose PageSpeed endpoint is mocked."""
    import httpx

    def factory(status_code=200, body=None, handler=None):
        calls = []

        def default_handler(request):
            calls.append(request)
            payload = body if body is not None else copy.deepcopy(PSI_PAYLOAD)
            if isinstance(payload, (bytes, str)):
                return httpx.Response(status_code, content=payload)
            return httpx.Response(status_code, json=payload)

        def recording_handler(request):
            calls.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording_handler if handler else default_handler)
        return httpx.AsyncClient(transport=transport), calls

    return factory


@pytest.fixture()
def anthropic_message():
    """Factory for canned provider messages, for use in side_effect sequences."""
    return make_message
