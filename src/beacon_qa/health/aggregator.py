"""Pure reduction of observations into verdicts and verdicts into a report.

No I/O happens here: the same observations and policy always give the same
result.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import List, Optional

from beacon_qa.config.models import PolicyConfig
from beacon_qa.health.models import HealthReport, HealthVerdict
from beacon_qa.probing.models import Observation
from beacon_qa.registry.models import Target

NO_SUCCESS = "no successful observation"
LATENCY_EXCEEDED = "latency ceiling exceeded"
LCP_EXCEEDED = "lcp ceiling exceeded"
CLS_EXCEEDED = "cls ceiling exceeded"
CONTENT_TYPE_MISMATCH = "content type mismatch"


def latency_ceiling_for(target: Target, policy: PolicyConfig) -> float:
    if target.latency_ceiling_ms is not None:
        return target.latency_ceiling_ms
    return policy.kind_ceiling_ms(target.kind)


def threshold_violations(observation: Observation, policy: PolicyConfig) -> List[str]:
    """Names of the threshold checks a successful observation fails."""
    target = observation.target
    violations: List[str] = []
    if observation.latency_ms is not None and observation.latency_ms > latency_ceiling_for(target, policy):
        violations.append(LATENCY_EXCEEDED)

    metrics = observation.render_metrics
    if metrics is not None:
        lcp = metrics.largest_contentful_paint_ms
        if lcp is not None and lcp > policy.lcp_ceiling_ms:
            violations.append(LCP_EXCEEDED)
        cls = metrics.cumulative_layout_shift
        if cls is not None and cls > policy.cls_ceiling:
            violations.append(CLS_EXCEEDED)

    expected = target.expected_content_type
    if expected and expected.lower() not in (observation.content_type or "").lower():
        violations.append(CONTENT_TYPE_MISMATCH)
    return violations


def _best_success(successes: List[Observation], policy: PolicyConfig) -> tuple[Observation, List[str]]:
    """Fewest violations wins; then lower latency; then earlier start."""
    ranked = [(threshold_violations(o, policy), o) for o in successes]
    violations, best = min(
        ranked,
        key=lambda pair: (
            len(pair[0]),
            pair[1].latency_ms if pair[1].latency_ms is not None else math.inf,
            pair[1].attempted_at,
        ),
    )
    return best, violations


def evaluate(
    target: Target,
    observations: Iterable[Observation],
    policy: Optional[PolicyConfig] = None,
) -> HealthVerdict:
    """Judge one target.

    Transient failures are tolerated as long as one attempt succeeded; the
    threshold checks then apply to the best successful attempt only. With no
    success at all the target fails, and each distinct failure outcome is kept
    in ``reasons`` for diagnosis.

    ``passed`` is true exactly when ``reasons`` is empty, so the outcomes of
    tolerated transient failures are not added to ``reasons``. They remain
    available as ``HealthVerdict.failed_outcomes``.
    """
    policy = policy or PolicyConfig()
    ordered = tuple(sorted(observations, key=lambda o: o.attempted_at))
    successes = [o for o in ordered if o.succeeded]

    reasons: set[str] = set()
    best: Optional[Observation] = None
    if not successes:
        reasons.add(NO_SUCCESS)
        reasons.update(f"observed {o.outcome.value}" for o in ordered)
    else:
        best, violations = _best_success(successes, policy)
        reasons.update(violations)

    return HealthVerdict(
        target=target,
        observations=ordered,
        passed=not reasons,
        reasons=frozenset(reasons),
        best=best,
    )


def summarize(verdicts: Mapping[str, HealthVerdict], generated_at: Optional[datetime] = None) -> HealthReport:
    """Fold verdicts into a report; every target weighs the same."""
    total = len(verdicts)
    passed = sum(1 for verdict in verdicts.values() if verdict.passed)
    score = round(passed / total, 4) if total else 0.0
    return HealthReport(
        verdicts=verdicts,
        overall_score=score,
        generated_at=generated_at or datetime.now(UTC),
    )
