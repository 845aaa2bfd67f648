"""Tests for the audit state machine."""

import asyncio
import dataclasses
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from analyzer.errors import AuditInProgressError, UpstreamError, ValidationError
from analyzer.orchestrator import (
    AnalyzingContent,
    AuditOrchestrator,
    Complete,
    Failed,
    FetchingTelemetry,
    Idle,
    normalize_target_url,
)
from utils.clients.anthropic_client import AnalysisClient
from utils.clients.pagespeed_client import TelemetryClient


def _fake_clients(telemetry, analysis):
    telemetry_client = MagicMock()
    telemetry_client.fetch_telemetry = AsyncMock(return_value=telemetry)
    analysis_client = MagicMock()
    analysis_client.analyze = AsyncMock(return_value=analysis)
    return telemetry_client, analysis_client


def _recording(orchestrator):
    seen = []
    orchestrator.subscribe(seen.append)
    return seen


# ===========================================================================
# 1. States
# ===========================================================================
class TestAuditStates:

    def test_states_are_immutable(self, telemetry):
        state = AnalyzingContent(telemetry=telemetry)
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.telemetry = None

    def test_complete_requires_analysis(self, telemetry):
        with pytest.raises(TypeError):
            Complete(telemetry=telemetry)

    def test_initial_state_is_idle(self, telemetry, analysis):
        orchestrator = AuditOrchestrator(*_fake_clients(telemetry, analysis))
        assert isinstance(orchestrator.state, Idle)
        assert not orchestrator.is_busy

    @pytest.mark.parametrize("raw,expected", [
        ("example.com", "https://example.com"),
        ("  http://example.com/pricing ", "http://example.com/pricing"),
        ("HTTPS://Example.com", "HTTPS://Example.com"),
    ])
    def test_normalize_target_url(self, raw, expected):
        assert normalize_target_url(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_normalize_target_url_rejects_blank(self, raw):
        with pytest.raises(ValidationError):
            normalize_target_url(raw)


# ===========================================================================
# 2. Happy path and reset
# ===========================================================================
class TestAuditLifecycle:

    async def test_successful_audit(self, telemetry, analysis):
        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)
        seen = _recording(orchestrator)

        final = await orchestrator.start_audit("example.com", "Sell more")

        assert [type(s) for s in seen] == [FetchingTelemetry, AnalyzingContent, Complete]
        assert seen[0].url == "https://example.com"
        assert seen[1].telemetry is telemetry
        assert final is orchestrator.state
        assert final.telemetry is telemetry
        assert final.analysis is analysis
        telemetry_client.fetch_telemetry.assert_awaited_once_with("https://example.com", "mobile")
        analysis_client.analyze.assert_awaited_once_with(telemetry, "Sell more", "https://example.com")

    async def test_strategy_override(self, telemetry, analysis):
        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client, strategy="desktop")

        await orchestrator.start_audit("https://example.com")
        telemetry_client.fetch_telemetry.assert_awaited_once_with("https://example.com", "desktop")

    async def test_reset_discards_results(self, telemetry, analysis):
        orchestrator = AuditOrchestrator(*_fake_clients(telemetry, analysis))
        await orchestrator.start_audit("https://example.com")

        state = orchestrator.reset()
        assert isinstance(state, Idle)
        assert isinstance(orchestrator.state, Idle)

    def test_reset_from_idle_is_noop(self, telemetry, analysis):
        orchestrator = AuditOrchestrator(*_fake_clients(telemetry, analysis))
        seen = _recording(orchestrator)
        before = orchestrator.state

        for _ in range(3):
            orchestrator.reset()

        assert orchestrator.state is before
        assert seen == []

    async def test_new_audit_replaces_completed_one(self, telemetry, analysis):
        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        first = await orchestrator.start_audit("https://a.example")
        second = await orchestrator.start_audit("https://b.example")

        assert isinstance(second, Complete)
        assert second is not first
        assert telemetry_client.fetch_telemetry.await_count == 2

    async def test_blank_url_is_rejected_before_any_call(self, telemetry, analysis):
        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        with pytest.raises(ValidationError):
            await orchestrator.start_audit("  ")

        assert isinstance(orchestrator.state, Idle)
        telemetry_client.fetch_telemetry.assert_not_awaited()


# ===========================================================================
# 3. Failures
# ===========================================================================
class TestAuditFailures:

    async def test_telemetry_http_400(self, psi_transport, mock_anthropic):
        http_client, _ = psi_transport(400, {"error": {"message": "Invalid URL"}})
        provider = mock_anthropic()
        orchestrator = AuditOrchestrator(
            TelemetryClient(api_key="psi-key", http_client=http_client),
            AnalysisClient(client=provider),
        )
        seen = _recording(orchestrator)

        final = await orchestrator.start_audit("https://bad.example")

        assert [type(s) for s in seen] == [FetchingTelemetry, Failed]
        assert final.error == "Invalid URL"
        assert final.status_code == 400
        assert final.telemetry is None
        provider.messages.create.assert_not_awaited()

    async def test_analysis_schema_violation(self, psi_transport, mock_anthropic, analysis_payload):
        del analysis_payload["summary"]
        http_client, _ = psi_transport()
        provider = mock_anthropic(json.dumps(analysis_payload))
        orchestrator = AuditOrchestrator(
            TelemetryClient(api_key="psi-key", http_client=http_client),
            AnalysisClient(client=provider),
        )
        seen = _recording(orchestrator)

        final = await orchestrator.start_audit("https://example.com")

        assert [type(s) for s in seen] == [FetchingTelemetry, AnalyzingContent, Failed]
        assert isinstance(final, Failed)
        assert not any(isinstance(s, Complete) for s in seen)
        assert final.error.startswith("Analysis provider returned invalid data")
        assert "summary" in final.error
        assert final.telemetry is seen[1].telemetry

    async def test_unexpected_exception_is_recorded(self, telemetry, analysis):
        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        analysis_client.analyze.side_effect = RuntimeError("boom")
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        final = await orchestrator.start_audit("https://example.com")

        assert isinstance(final, Failed)
        assert final.error == "boom"
        assert final.status_code == 500
        assert not orchestrator.is_busy

    async def test_restart_after_failure(self, telemetry, analysis):
        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        telemetry_client.fetch_telemetry.side_effect = [UpstreamError("Quota exceeded", 429), telemetry]
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        first = await orchestrator.start_audit("https://example.com")
        assert isinstance(first, Failed)
        assert first.error == "Quota exceeded"

        second = await orchestrator.start_audit("https://example.com")
        assert isinstance(second, Complete)

    async def test_listener_errors_do_not_break_the_pipeline(self, telemetry, analysis):
        orchestrator = AuditOrchestrator(*_fake_clients(telemetry, analysis))
        orchestrator.subscribe(MagicMock(side_effect=ValueError("listener bug")))

        final = await orchestrator.start_audit("https://example.com")
        assert isinstance(final, Complete)

    async def test_unsubscribe(self, telemetry, analysis):
        orchestrator = AuditOrchestrator(*_fake_clients(telemetry, analysis))
        seen = []
        unsubscribe = orchestrator.subscribe(seen.append)
        unsubscribe()

        await orchestrator.start_audit("https://example.com")
        assert seen == []


# ===========================================================================
# 4. Single audit in flight
# ===========================================================================
class TestSingleInFlight:

    async def test_overlapping_start_is_rejected(self, telemetry, analysis):
        release = asyncio.Event()

        async def slow_fetch(url, strategy="mobile"):
            await release.wait()
            return telemetry

        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        telemetry_client.fetch_telemetry = AsyncMock(side_effect=slow_fetch)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        first = asyncio.create_task(orchestrator.start_audit("https://example.com"))
        await asyncio.sleep(0)
        assert isinstance(orchestrator.state, FetchingTelemetry)
        assert orchestrator.is_busy

        with pytest.raises(AuditInProgressError):
            await orchestrator.start_audit("https://other.example")

        release.set()
        final = await first

        assert isinstance(final, Complete)
        assert telemetry_client.fetch_telemetry.await_count == 1
        assert analysis_client.analyze.await_count == 1

    async def test_rejected_while_analyzing(self, telemetry, analysis):
        release = asyncio.Event()

        async def slow_analyze(telemetry_record, goal, url):
            await release.wait()
            return analysis

        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        analysis_client.analyze = AsyncMock(side_effect=slow_analyze)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        first = asyncio.create_task(orchestrator.start_audit("https://example.com"))
        while not isinstance(orchestrator.state, AnalyzingContent):
            await asyncio.sleep(0)

        with pytest.raises(AuditInProgressError):
            await orchestrator.start_audit("https://example.com")

        release.set()
        await first
        assert analysis_client.analyze.await_count == 1

    async def test_cancellation_leaves_a_failed_state(self, telemetry, analysis):
        async def never(url, strategy="mobile"):
            await asyncio.Event().wait()

        telemetry_client, analysis_client = _fake_clients(telemetry, analysis)
        telemetry_client.fetch_telemetry = AsyncMock(side_effect=never)
        orchestrator = AuditOrchestrator(telemetry_client, analysis_client)

        task = asyncio.create_task(orchestrator.start_audit("https://example.com"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert isinstance(orchestrator.state, Failed)
        assert not orchestrator.is_busy
