"""Concurrent fan-out of probes across the registry, reduced to a report."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Dict, List, Optional

from playwright.async_api import Browser, async_playwright
from playwright.async_api import Error as PlaywrightError

from beacon_qa.config.models import BeaconConfig
from beacon_qa.health.aggregator import evaluate, summarize
from beacon_qa.health.models import HealthReport, HealthVerdict
from beacon_qa.probing.models import Observation, Outcome
from beacon_qa.probing.prober import probe
from beacon_qa.registry.models import Target
from beacon_qa.registry.registry import TargetRegistry

logger = logging.getLogger(__name__)


class HealthMonitor:
    """Probes every registered target concurrently and judges the results."""

    def __init__(self, config: BeaconConfig, registry: Optional[TargetRegistry] = None) -> None:
        self._config = config
        self._registry = registry or TargetRegistry(config)

    @property
    def registry(self) -> TargetRegistry:
        return self._registry

    @asynccontextmanager
    async def _browser_session(self, needed: bool, browser: Optional[Browser]) -> AsyncIterator[Optional[Browser]]:
        """Yield the injected browser, or launch Chromium for this run only."""
        if browser is not None or not needed:
            yield browser
            return

        try:
            playwright = await async_playwright().start()
        except Exception as exc:
            logger.warning("Playwright unavailable, page targets cannot be loaded: %s", exc)
            yield None
            return

        try:
            launched: Optional[Browser]
            try:
                launched = await playwright.chromium.launch(headless=self._config.probe.headless)
            except PlaywrightError as exc:
                logger.warning("Chromium launch failed, page targets cannot be loaded: %s", exc)
                launched = None
            try:
                yield launched
            finally:
                if launched is not None:
                    await launched.close()
        finally:
            await playwright.stop()

    async def observe(
        self,
        targets: Sequence[Target],
        *,
        browser: Optional[Browser] = None,
        samples: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, List[Observation]]:
        """Probe each target *samples* times; results per target ordered by start time."""
        probe_cfg = self._config.probe
        if samples is not None and samples < 1:
            raise ValueError(f"samples must be at least 1 (got {samples})")
        samples = samples or probe_cfg.samples
        timeout = probe_cfg.timeout if timeout is None else timeout
        viewport = {"width": probe_cfg.viewport_width, "height": probe_cfg.viewport_height}
        pool = asyncio.Semaphore(probe_cfg.max_concurrency)

        async def _bounded(target: Target) -> Observation:
            async with pool:
                return await probe(
                    target,
                    timeout,
                    browser=browser,
                    render_window=probe_cfg.render_window,
                    viewport=viewport,
                )

        jobs = [target for target in targets for _ in range(samples)]
        results = await asyncio.gather(*(_bounded(t) for t in jobs), return_exceptions=True)

        grouped: Dict[str, List[Observation]] = {t.name: [] for t in targets}
        for target, result in zip(jobs, results):
            if isinstance(result, Exception):
                logger.warning("Probe task for %s raised: %s", target.name, result)
                result = Observation(
                    target=target,
                    attempted_at=datetime.now(UTC),
                    outcome=Outcome.TRANSPORT_ERROR,
                    error=f"{type(result).__name__}: {result}",
                )
            elif isinstance(result, BaseException):
                raise result
            grouped[target.name].append(result)

        for observations in grouped.values():
            observations.sort(key=lambda o: o.attempted_at)
        return grouped

    async def _judge(
        self,
        targets: Sequence[Target],
        browser: Optional[Browser],
        samples: Optional[int],
        timeout: Optional[float],
    ) -> Dict[str, HealthVerdict]:
        needs_browser = any(t.is_page for t in targets)
        async with self._browser_session(needs_browser, browser) as session:
            grouped = await self.observe(targets, browser=session, samples=samples, timeout=timeout)
        return {t.name: evaluate(t, grouped[t.name], self._config.policy) for t in targets}

    async def run(
        self,
        *,
        browser: Optional[Browser] = None,
        samples: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> HealthReport:
        """Observe every registered target and summarise into one report."""
        verdicts = await self._judge(list(self._registry), browser, samples, timeout)
        report = summarize(verdicts)
        logger.info(
            "Health run complete: %d/%d targets passed (score %.4f)",
            len(report.passed),
            len(report.verdicts),
            report.overall_score,
        )
        return report

    async def check_one(
        self,
        name: str,
        *,
        browser: Optional[Browser] = None,
        samples: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> HealthVerdict:
        target = self._registry.get(name)
        if target is None:
            raise KeyError(f"Unknown target: {name}")
        verdicts = await self._judge([target], browser, samples, timeout)
        return verdicts[name]

    def run_sync(self, samples: Optional[int] = None, timeout: Optional[float] = None) -> HealthReport:
        return asyncio.run(self.run(samples=samples, timeout=timeout))
