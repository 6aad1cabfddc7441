"""Single-shot probes: one observation per call, never raising."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Optional

import httpx
from playwright.async_api import Browser, BrowserContext, Response
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from beacon_qa.probing.models import Observation, Outcome, RenderMetrics
from beacon_qa.probing.render_metrics import extract_render_metrics, install_render_observers
from beacon_qa.registry.models import Target

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1440, "height": 900}

# Browser network errors raised before any connection was established.
_UNOPENED_MARKERS = (
    "ERR_CONNECTION_REFUSED",
    "ERR_NAME_NOT_RESOLVED",
    "ERR_ADDRESS_UNREACHABLE",
    "ERR_INTERNET_DISCONNECTED",
    "NS_ERROR_CONNECTION_REFUSED",
    "NS_ERROR_UNKNOWN_HOST",
    "Could not connect to server",
)


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 1)


def _timed_out(target: Target, attempted_at: datetime, timeout: float) -> Observation:
    return Observation(
        target=target,
        attempted_at=attempted_at,
        outcome=Outcome.TIMEOUT,
        latency_ms=max(0.0, timeout * 1000),
        error=f"Timed out after {timeout}s",
    )


def _transport_error(
    target: Target,
    attempted_at: datetime,
    error: str,
    latency_ms: Optional[float] = None,
) -> Observation:
    return Observation(
        target=target,
        attempted_at=attempted_at,
        outcome=Outcome.TRANSPORT_ERROR,
        latency_ms=latency_ms,
        error=error,
    )


async def probe_api(target: Target, timeout: float, attempted_at: datetime) -> Observation:
    """Issue one GET and time it to the last body byte."""
    start = time.monotonic()

    async def _fetch() -> httpx.Response:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await client.get(target.url)

    try:
        resp = await asyncio.wait_for(_fetch(), timeout=timeout)
    except (httpx.TimeoutException, TimeoutError):
        return _timed_out(target, attempted_at, timeout)
    except httpx.ConnectError as exc:
        return _transport_error(target, attempted_at, f"Connection failed: {exc}")
    except httpx.TransportError as exc:
        return _transport_error(target, attempted_at, f"{type(exc).__name__}: {exc}", _elapsed_ms(start))
    except Exception as exc:
        return _transport_error(target, attempted_at, f"{type(exc).__name__}: {exc}", _elapsed_ms(start))

    latency = _elapsed_ms(start)
    outcome = Outcome.from_status(resp.status_code)
    return Observation(
        target=target,
        attempted_at=attempted_at,
        outcome=outcome,
        status_code=resp.status_code,
        latency_ms=latency,
        content_type=resp.headers.get("content-type"),
        body_size=len(resp.content),
        error=None if outcome is Outcome.SUCCESS else f"HTTP {resp.status_code}",
    )


async def _response_size(response: Response) -> Optional[int]:
    length = response.headers.get("content-length")
    if length and length.isdigit():
        return int(length)
    try:
        return len(await response.body())
    except PlaywrightError:
        # redirect responses and some cached documents have no retrievable body
        return None


def _never_connected(exc: BaseException) -> bool:
    message = str(exc)
    return any(marker in message for marker in _UNOPENED_MARKERS)


async def probe_page(
    target: Target,
    timeout: float,
    attempted_at: datetime,
    browser: Optional[Browser],
    render_window: float = 3.0,
    viewport: Optional[dict[str, int]] = None,
) -> Observation:
    """Load the page in a private browser context and time it to DOMContentLoaded."""
    if browser is None:
        return _transport_error(target, attempted_at, "Browser unavailable")

    context: Optional[BrowserContext] = None
    start = time.monotonic()
    try:
        context = await browser.new_context(viewport=viewport or DEFAULT_VIEWPORT)
        page = await context.new_page()
        if target.collect_render_metrics:
            await install_render_observers(page)

        start = time.monotonic()
        response = await asyncio.wait_for(
            page.goto(target.url, wait_until="domcontentloaded", timeout=max(1, int(timeout * 1000))),
            timeout=timeout,
        )
        latency = _elapsed_ms(start)
        if response is None:
            return _transport_error(target, attempted_at, "Navigation produced no response", latency)

        outcome = Outcome.from_status(response.status)
        metrics: Optional[RenderMetrics] = None
        if outcome is Outcome.SUCCESS and target.collect_render_metrics:
            metrics = await extract_render_metrics(page, render_window)
        return Observation(
            target=target,
            attempted_at=attempted_at,
            outcome=outcome,
            status_code=response.status,
            latency_ms=latency,
            content_type=response.headers.get("content-type"),
            body_size=await _response_size(response),
            render_metrics=metrics,
            error=None if outcome is Outcome.SUCCESS else f"HTTP {response.status}",
        )
    except (PlaywrightTimeoutError, TimeoutError):
        return _timed_out(target, attempted_at, timeout)
    except PlaywrightError as exc:
        latency_ms = None if _never_connected(exc) else _elapsed_ms(start)
        return _transport_error(target, attempted_at, f"Navigation failed: {exc}", latency_ms)
    except Exception as exc:
        return _transport_error(target, attempted_at, f"{type(exc).__name__}: {exc}", _elapsed_ms(start))
    finally:
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as exc:
                logger.debug("Closing browser context for %s failed: %s", target.name, exc)


async def probe(
    target: Target,
    timeout: float,
    *,
    browser: Optional[Browser] = None,
    render_window: float = 3.0,
    viewport: Optional[dict[str, int]] = None,
) -> Observation:
    """Observe *target* once. Every failure is encoded in the returned outcome."""
    attempted_at = datetime.now(UTC)
    if timeout <= 0:
        observation = _timed_out(target, attempted_at, timeout)
    elif target.is_page:
        observation = await probe_page(
            target,
            timeout,
            attempted_at,
            browser,
            render_window=render_window,
            viewport=viewport,
        )
    else:
        observation = await probe_api(target, timeout, attempted_at)

    logger.debug(
        "Probed %s: %s status=%s latency=%s",
        target.name,
        observation.outcome.value,
        observation.status_code,
        observation.latency_ms,
    )
    return observation
