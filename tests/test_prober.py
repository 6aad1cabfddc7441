"""Tests for single-target probes."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from beacon_qa.probing.models import Observation, Outcome, RenderMetrics
from beacon_qa.probing.prober import probe


def _mock_client(mock_cls: MagicMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_cls.return_value = mock_client
    return mock_client


def _mock_browser(response: object = None, goto_side_effect: object = None, snapshot: object = None):
    page = AsyncMock()
    page.url = "http://localhost:3000/"
    if goto_side_effect is not None:
        page.goto.side_effect = goto_side_effect
    else:
        page.goto.return_value = response
    page.evaluate.return_value = snapshot
    context = AsyncMock()
    context.new_page.return_value = page
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    return browser, context, page


def _page_response(status: int, headers: dict[str, str] | None = None) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.headers = headers if headers is not None else {"content-type": "text/html", "content-length": "2048"}
    response.body = AsyncMock(return_value=b"<html></html>")
    return response


# ─── Observation invariants ───


class TestOutcome:
    @pytest.mark.parametrize("status", [200, 204, 301, 304, 399])
    def test_success_range(self, status):
        assert Outcome.from_status(status) is Outcome.SUCCESS

    @pytest.mark.parametrize("status", [100, 199, 400, 404, 500, 503])
    def test_outside_range_is_http_error(self, status):
        assert Outcome.from_status(status) is Outcome.HTTP_ERROR

    def test_missing_status_is_never_success(self):
        assert Outcome.from_status(None) is not Outcome.SUCCESS


class TestObservationModel:
    def test_success_requires_status(self, api_target):
        with pytest.raises(ValueError, match="inconsistent"):
            Observation(target=api_target, attempted_at=datetime.now(UTC), outcome=Outcome.SUCCESS)

    @pytest.mark.parametrize("status", [404, 500, 199])
    def test_success_rejects_out_of_range_status(self, api_target, status):
        with pytest.raises(ValueError):
            Observation(
                target=api_target,
                attempted_at=datetime.now(UTC),
                outcome=Outcome.SUCCESS,
                status_code=status,
            )

    @pytest.mark.parametrize("outcome", [Outcome.HTTP_ERROR, Outcome.TIMEOUT, Outcome.TRANSPORT_ERROR])
    def test_failure_rejects_success_status(self, api_target, outcome):
        with pytest.raises(ValueError, match="inconsistent"):
            Observation(
                target=api_target,
                attempted_at=datetime.now(UTC),
                outcome=outcome,
                status_code=200,
            )

    def test_consistent_records_accepted(self, api_target):
        now = datetime.now(UTC)
        assert Observation(target=api_target, attempted_at=now, outcome=Outcome.SUCCESS, status_code=302).succeeded
        assert not Observation(target=api_target, attempted_at=now, outcome=Outcome.HTTP_ERROR, status_code=503).succeeded
        assert not Observation(target=api_target, attempted_at=now, outcome=Outcome.TIMEOUT).succeeded


class TestRenderMetricsModel:
    def test_empty(self):
        assert RenderMetrics().is_empty
        assert not RenderMetrics(cumulative_layout_shift=0.0).is_empty

    def test_to_dict(self):
        metrics = RenderMetrics(largest_contentful_paint_ms=1200.0)
        assert metrics.to_dict() == {"lcp_ms": 1200.0, "fcp_ms": None, "cls": None}


# ─── API probes ───


class TestApiProbe:
    @pytest.mark.asyncio
    async def test_success(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            response = httpx.Response(200, json={"message": "hello"})
            client.get.return_value = response

            obs = await probe(api_target, timeout=5.0)

        client.get.assert_awaited_once_with("http://localhost:3001/api/data")
        assert obs.outcome is Outcome.SUCCESS
        assert obs.status_code == 200
        assert obs.latency_ms is not None and obs.latency_ms >= 0
        assert obs.content_type == "application/json"
        assert obs.body_size == len(response.content)
        assert obs.render_metrics is None
        assert obs.error is None

    @pytest.mark.asyncio
    async def test_redirect_status_counts_as_success(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.return_value = httpx.Response(302)
            obs = await probe(api_target, timeout=5.0)
        assert obs.outcome is Outcome.SUCCESS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 500])
    async def test_http_error(self, api_target, status):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.return_value = httpx.Response(status)
            obs = await probe(api_target, timeout=5.0)
        assert obs.outcome is Outcome.HTTP_ERROR
        assert obs.status_code == status
        assert obs.latency_ms is not None
        assert obs.error == f"HTTP {status}"

    @pytest.mark.asyncio
    async def test_connection_refused(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.side_effect = httpx.ConnectError("Connection refused")
            obs = await probe(api_target, timeout=5.0)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert obs.status_code is None
        assert obs.latency_ms is None
        assert "Connection refused" in obs.error

    @pytest.mark.asyncio
    async def test_broken_connection_keeps_latency(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.side_effect = httpx.RemoteProtocolError("peer closed connection")
            obs = await probe(api_target, timeout=5.0)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert obs.latency_ms is not None

    @pytest.mark.asyncio
    async def test_client_timeout(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.side_effect = httpx.ReadTimeout("Timeout")
            obs = await probe(api_target, timeout=2.0)
        assert obs.outcome is Outcome.TIMEOUT
        assert obs.latency_ms == 2000.0
        assert obs.status_code is None

    @pytest.mark.asyncio
    async def test_overall_bound_cancels_slow_request(self, api_target):
        async def _slow(*args, **kwargs):
            await asyncio.sleep(5)
            return httpx.Response(200)

        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.side_effect = _slow
            obs = await probe(api_target, timeout=0.05)
        assert obs.outcome is Outcome.TIMEOUT
        assert obs.latency_ms == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_captured(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.side_effect = RuntimeError("boom")
            obs = await probe(api_target, timeout=5.0)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert "boom" in obs.error


class TestZeroTimeout:
    @pytest.mark.asyncio
    async def test_api_never_succeeds(self, api_target):
        with patch("beacon_qa.probing.prober.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls).get.return_value = httpx.Response(200)
            obs = await probe(api_target, timeout=0)
        assert obs.outcome is Outcome.TIMEOUT
        assert obs.latency_ms == 0.0
        mock_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_page_never_succeeds(self, page_target):
        browser, _, page = _mock_browser(response=_page_response(200))
        obs = await probe(page_target, timeout=0, browser=browser)
        assert obs.outcome is Outcome.TIMEOUT
        page.goto.assert_not_called()


# ─── Page probes ───


class TestPageProbe:
    @pytest.mark.asyncio
    async def test_success_with_render_metrics(self, page_target):
        snapshot = {"lcp": 1200.5, "fcp": 310.0, "cls": 0.02, "observed": True}
        browser, context, page = _mock_browser(response=_page_response(200), snapshot=snapshot)

        obs = await probe(page_target, timeout=10.0, browser=browser, render_window=0)

        assert obs.outcome is Outcome.SUCCESS
        assert obs.status_code == 200
        assert obs.content_type == "text/html"
        assert obs.body_size == 2048
        assert obs.render_metrics == RenderMetrics(
            largest_contentful_paint_ms=1200.5,
            first_contentful_paint_ms=310.0,
            cumulative_layout_shift=0.02,
        )
        page.add_init_script.assert_awaited_once()
        _, kwargs = page.goto.call_args
        assert kwargs["wait_until"] == "domcontentloaded"
        assert kwargs["timeout"] == 10000
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fresh_context_per_probe(self, page_target):
        browser, _, _ = _mock_browser(response=_page_response(200), snapshot={})
        await probe(page_target, timeout=10.0, browser=browser, render_window=0)
        await probe(page_target, timeout=10.0, browser=browser, render_window=0)
        assert browser.new_context.await_count == 2

    @pytest.mark.asyncio
    async def test_body_size_falls_back_to_body(self, page_target):
        response = _page_response(200, headers={"content-type": "text/html"})
        browser, _, _ = _mock_browser(response=response, snapshot={})
        obs = await probe(page_target, timeout=10.0, browser=browser, render_window=0)
        assert obs.body_size == len(b"<html></html>")

    @pytest.mark.asyncio
    async def test_http_error_skips_render_metrics(self, page_target):
        browser, _, page = _mock_browser(response=_page_response(503))
        obs = await probe(page_target, timeout=10.0, browser=browser, render_window=0)
        assert obs.outcome is Outcome.HTTP_ERROR
        assert obs.render_metrics is None
        page.evaluate.assert_not_called()

    @pytest.mark.asyncio
    async def test_render_metrics_disabled(self, page_target):
        from dataclasses import replace

        target = replace(page_target, collect_render_metrics=False)
        browser, _, page = _mock_browser(response=_page_response(200))
        obs = await probe(target, timeout=10.0, browser=browser, render_window=0)
        assert obs.outcome is Outcome.SUCCESS
        assert obs.render_metrics is None
        page.add_init_script.assert_not_called()

    @pytest.mark.asyncio
    async def test_navigation_timeout(self, page_target):
        browser, context, _ = _mock_browser(goto_side_effect=PlaywrightTimeoutError("Timeout 10000ms exceeded"))
        obs = await probe(page_target, timeout=10.0, browser=browser)
        assert obs.outcome is Outcome.TIMEOUT
        assert obs.latency_ms == 10000.0
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_refused(self, page_target):
        error = PlaywrightError("net::ERR_CONNECTION_REFUSED at http://localhost:3000/")
        browser, context, _ = _mock_browser(goto_side_effect=error)
        obs = await probe(page_target, timeout=10.0, browser=browser)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert obs.latency_ms is None
        assert "ERR_CONNECTION_REFUSED" in obs.error
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_navigation_error_keeps_latency(self, page_target):
        error = PlaywrightError("net::ERR_EMPTY_RESPONSE at http://localhost:3000/")
        browser, _, _ = _mock_browser(goto_side_effect=error)
        obs = await probe(page_target, timeout=10.0, browser=browser)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert obs.latency_ms is not None

    @pytest.mark.asyncio
    async def test_no_response(self, page_target):
        browser, _, _ = _mock_browser(response=None)
        obs = await probe(page_target, timeout=10.0, browser=browser)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert obs.status_code is None

    @pytest.mark.asyncio
    async def test_no_browser(self, page_target):
        obs = await probe(page_target, timeout=10.0, browser=None)
        assert obs.outcome is Outcome.TRANSPORT_ERROR
        assert obs.error == "Browser unavailable"

    @pytest.mark.asyncio
    async def test_context_creation_failure(self, page_target):
        browser = MagicMock()
        browser.new_context = AsyncMock(side_effect=PlaywrightError("Target page, context or browser has been closed"))
        obs = await probe(page_target, timeout=10.0, browser=browser)
        assert isinstance(obs, Observation)
        assert obs.outcome is Outcome.TRANSPORT_ERROR

    @pytest.mark.asyncio
    async def test_close_failure_does_not_escape(self, page_target):
        browser, context, _ = _mock_browser(response=_page_response(200), snapshot={})
        context.close.side_effect = PlaywrightError("already closed")
        obs = await probe(page_target, timeout=10.0, browser=browser, render_window=0)
        assert obs.outcome is Outcome.SUCCESS
