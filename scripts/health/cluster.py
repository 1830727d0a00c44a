"""
scripts/health/cluster.py — Connectivity, node, and cluster-operator probes.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from scripts.health import ProbeOutcome, render_table
from scripts.health.client import ClientError

if TYPE_CHECKING:
    from scripts.health.capabilities import ClusterContext

_CLUSTER_INFO_RE = re.compile(r"Kubernetes|control plane|CoreDNS")
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def connectivity(ctx: ClusterContext) -> ProbeOutcome:
    # Nodes were already listed during detection.
    return ProbeOutcome.success(
        message=f"API server reachable via '{ctx.client.binary}' ({ctx.node_count} node(s))"
    )


def cluster_info(ctx: ClusterContext) -> ProbeOutcome:
    out = _ANSI_RE.sub("", ctx.client.cluster_info())
    lines = [ln for ln in out.splitlines() if _CLUSTER_INFO_RE.search(ln)][:3]
    return ProbeOutcome.success("\n".join(lines) or out.strip())


def version(ctx: ClusterContext) -> ProbeOutcome:
    label = "OpenShift Version" if ctx.is_openshift else "Kubernetes Version"
    return ProbeOutcome.success(ctx.client.version().strip(), message=label)


def nodes(ctx: ClusterContext) -> ProbeOutcome:
    return ProbeOutcome.success(ctx.client.get_nodes(wide=True).rstrip())


def node_usage(ctx: ClusterContext) -> ProbeOutcome:
    try:
        return ProbeOutcome.success(ctx.client.top_nodes().rstrip())
    except ClientError:
        return ProbeOutcome.warning("Metrics API not available (metrics-server might be missing or not ready)")


def _condition(item: dict[str, Any], kind: str) -> str:
    for cond in item.get("status", {}).get("conditions", []) or []:
        if cond.get("type") == kind:
            return str(cond.get("status", "Unknown"))
    return "Unknown"


def cluster_operators(ctx: ClusterContext) -> ProbeOutcome:
    data = ctx.client.get_json("clusteroperators")
    items = sorted(data.get("items", []), key=lambda i: i.get("metadata", {}).get("name", ""))
    rows = []
    unhealthy = []
    for item in items:
        name = item.get("metadata", {}).get("name", "?")
        available = _condition(item, "Available")
        progressing = _condition(item, "Progressing")
        degraded = _condition(item, "Degraded")
        rows.append([name, available, progressing, degraded])
        if available != "True" or degraded == "True":
            unhealthy.append(name)
    table = render_table(["NAME", "AVAILABLE", "PROGRESSING", "DEGRADED"], rows)
    if unhealthy:
        return ProbeOutcome.warning(
            f"{len(unhealthy)} operator(s) unavailable or degraded: {', '.join(unhealthy)}",
            payload=table,
        )
    return ProbeOutcome.success(table, message=f"all {len(rows)} operators available")
