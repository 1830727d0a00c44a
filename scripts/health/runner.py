"""
scripts/health/runner.py — Probe definitions, gating, and isolated execution.

A Probe is a named action plus zero or more gates. run_probe() never raises:
an unsatisfied gate yields WARN "skipped: <reason>" without invoking the
action, and anything the action raises becomes FAIL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from scripts.health import ProbeOutcome, ProbeResult
from scripts.health.capabilities import ClusterContext
from scripts.health.client import ClientError

logger = logging.getLogger(__name__)

Action = Callable[[ClusterContext], ProbeOutcome]


class TierUnavailable(Exception):
    """A fallback tier has nothing to work with (e.g. no toolbox pod)."""


@dataclass(frozen=True)
class Gate:
    check: Callable[[ClusterContext], bool]
    reason: str | Callable[[ClusterContext], str]

    def describe(self, ctx: ClusterContext) -> str:
        return self.reason(ctx) if callable(self.reason) else self.reason


@dataclass(frozen=True)
class Probe:
    section: str
    name: str
    action: Action
    gates: tuple[Gate, ...] = ()


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------

def openshift_only(reason: str = "OpenShift-specific check") -> Gate:
    return Gate(lambda ctx: ctx.is_openshift, reason)


def namespace_present(setting: str) -> Gate:
    """Gate on the namespace named by a Settings field (looked up once per run)."""

    def check(ctx: ClusterContext) -> bool:
        return ctx.namespace_exists(getattr(ctx.settings, setting))

    return Gate(check, lambda ctx: f"namespace '{getattr(ctx.settings, setting)}' not found")


def api_resource_present(plural: str, reason: str) -> Gate:
    return Gate(lambda ctx: ctx.api_resource_exists(plural), reason)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def _unsatisfied_gate(probe: Probe, ctx: ClusterContext) -> str | None:
    for gate in probe.gates:
        try:
            satisfied = gate.check(ctx)
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s: gate check raised %s", probe.name, exc)
            satisfied = False
        if not satisfied:
            return gate.describe(ctx)
    return None


def run_probe(probe: Probe, ctx: ClusterContext) -> ProbeOutcome:
    skip_reason = _unsatisfied_gate(probe, ctx)
    if skip_reason is not None:
        return ProbeOutcome.warning(f"skipped: {skip_reason}")
    try:
        outcome = probe.action(ctx)
    except ClientError as exc:
        return ProbeOutcome.failure(str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("%s: unexpected error", probe.name)
        return ProbeOutcome.failure(f"error: {exc}")
    if not isinstance(outcome, ProbeOutcome):
        return ProbeOutcome.failure(f"error: probe returned {type(outcome).__name__}")
    return outcome


def run_catalog(catalog: Iterable[Probe], ctx: ClusterContext) -> Iterator[ProbeResult]:
    """Run probes strictly in catalog order, one at a time."""
    for probe in catalog:
        yield ProbeResult(probe.section, probe.name, run_probe(probe, ctx))


# ---------------------------------------------------------------------------
# Fallback chains
# ---------------------------------------------------------------------------

def fallback_chain(*tiers: Action, exhausted: str) -> Action:
    """Try each tier in order; the first one that does not raise wins.

    A tier moves on by raising ClientError or TierUnavailable. Later tiers are
    marked degraded. When every tier gives up the result is a WARN.
    """

    def action(ctx: ClusterContext) -> ProbeOutcome:
        reasons: list[str] = []
        for index, tier in enumerate(tiers):
            try:
                outcome = tier(ctx)
            except (ClientError, TierUnavailable) as exc:
                reasons.append(str(exc))
                continue
            if index == 0:
                return outcome
            logger.info(
                "degraded: fallback tier %s used after %s",
                getattr(tier, "__name__", index),
                "; ".join(reasons),
            )
            return ProbeOutcome(
                outcome.status,
                _join(reasons[-1], outcome.message),
                outcome.payload,
                degraded=True,
            )
        return ProbeOutcome.warning(_join(exhausted, "; ".join(r for r in reasons if r)))

    return action


def _join(*parts: str) -> str:
    return "; ".join(p for p in parts if p)
