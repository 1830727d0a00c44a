"""
scripts/health/inventory.py — Installed CRDs and recent cluster events.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scripts.health import ProbeOutcome
from scripts.health.client import ClientError

if TYPE_CHECKING:
    from scripts.health.capabilities import ClusterContext


def crds(ctx: ClusterContext) -> ProbeOutcome:
    try:
        names = ctx.client.list_crds()
    except ClientError as exc:
        return ProbeOutcome.warning(f"Unable to list CRDs: {exc}")
    limit = ctx.settings.CRD_LIMIT
    if not names:
        return ProbeOutcome.success(message="no CRDs installed")
    message = f"{len(names)} CRD(s) installed"
    if len(names) > limit:
        message += f" (showing top {limit} of {len(names)})"
    return ProbeOutcome.success("\n".join(names[:limit]), message=message)


def recent_events(ctx: ClusterContext) -> ProbeOutcome:
    try:
        lines = ctx.client.list_events().rstrip().splitlines()
    except ClientError as exc:
        return ProbeOutcome.warning(f"Unable to list events: {exc}")
    if len(lines) <= 1:
        return ProbeOutcome.success(message="no events recorded")
    header, rows = lines[0], lines[1:]
    limit = ctx.settings.EVENTS_LIMIT
    return ProbeOutcome.success(
        "\n".join([header, *rows[-limit:]]),
        message=f"last {min(limit, len(rows))} of {len(rows)} event(s)",
    )
