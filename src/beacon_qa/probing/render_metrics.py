"""Paint and layout-shift sampling for page targets.

Observers are registered by an init script before navigation, so buffered
entries from the very first paint are captured. After content-loaded the
extractor waits for a fixed window, never for the signals themselves, then
reads whatever the observers have seen. Partial results are normal.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from beacon_qa.probing.models import RenderMetrics

logger = logging.getLogger(__name__)

RENDER_OBSERVER_SCRIPT = r"""
(() => {
  if (window.__beaconRender) return;
  const state = { lcp: null, fcp: null, cls: null, observers: [] };
  window.__beaconRender = state;

  const watch = (type, onEntries) => {
    try {
      const obs = new PerformanceObserver((list) => onEntries(list.getEntries()));
      obs.observe({ type: type, buffered: true });
      state.observers.push(obs);
      return true;
    } catch (e) {
      return false;  // entry type unsupported by this engine
    }
  };

  watch('largest-contentful-paint', (entries) => {
    const last = entries.length ? entries[entries.length - 1] : null;
    if (last && typeof last.startTime === 'number') state.lcp = last.startTime;
  });

  watch('paint', (entries) => {
    for (const entry of entries) {
      if (entry.name === 'first-contentful-paint' && state.fcp === null) {
        state.fcp = entry.startTime;
      }
    }
  });

  const shiftsObserved = watch('layout-shift', (entries) => {
    for (const entry of entries) {
      if (!entry || entry.hadRecentInput) continue;
      if (typeof entry.value === 'number') state.cls = (state.cls || 0) + entry.value;
    }
  });
  // Supported but silent means a stable layout, not an unmeasured one.
  if (shiftsObserved && state.cls === null) state.cls = 0;

  window.__beaconRenderStop = () => {
    for (const obs of state.observers) {
      try { obs.disconnect(); } catch (e) {}
    }
  };
})();
"""

_SNAPSHOT_SCRIPT = r"""
() => {
  if (window.__beaconRenderStop) window.__beaconRenderStop();
  const state = window.__beaconRender;
  if (state) return { lcp: state.lcp, fcp: state.fcp, cls: state.cls, observed: true };
  const fcp = performance.getEntriesByName('first-contentful-paint')[0];
  return { lcp: null, fcp: fcp ? fcp.startTime : null, cls: null, observed: false };
}
"""


async def install_render_observers(page: Page) -> bool:
    """Register the observer script; must run before ``page.goto``."""
    try:
        await page.add_init_script(RENDER_OBSERVER_SCRIPT)
    except PlaywrightError as exc:
        logger.warning("Could not install render observers: %s", exc)
        return False
    return True


def _metric(raw: Any) -> float | None:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    value = float(raw)
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return value


async def extract_render_metrics(page: Page, window: float) -> RenderMetrics:
    """Sample LCP, FCP and CLS after letting the page settle for *window* seconds."""
    if window > 0:
        await asyncio.sleep(window)
    try:
        snapshot = await page.evaluate(_SNAPSHOT_SCRIPT)
    except Exception as exc:
        logger.warning("Render metric extraction failed for %s: %s", page.url, exc)
        return RenderMetrics()

    if not isinstance(snapshot, dict):
        return RenderMetrics()
    if not snapshot.get("observed"):
        logger.debug("Render observers absent on %s; using paint timing buffer only", page.url)
    return RenderMetrics(
        largest_contentful_paint_ms=_metric(snapshot.get("lcp")),
        first_contentful_paint_ms=_metric(snapshot.get("fcp")),
        cumulative_layout_shift=_metric(snapshot.get("cls")),
    )
