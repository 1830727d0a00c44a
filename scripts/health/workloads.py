"""
scripts/health/workloads.py — Pod and controller health across all namespaces.

Reads structured (JSON) listings and decides health from status fields
instead of scraping table columns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scripts.health import ProbeOutcome, render_table

if TYPE_CHECKING:
    from scripts.health.capabilities import ClusterContext

NOT_RUNNING = "status.phase!=Running,status.phase!=Succeeded"
CONTROLLER_KINDS = "deployments,statefulsets,daemonsets"


def _meta(item: dict[str, Any]) -> tuple[str, str]:
    meta = item.get("metadata", {})
    return meta.get("namespace", ""), meta.get("name", "?")


def pod_summary(ctx: ClusterContext) -> ProbeOutcome:
    total = len(ctx.client.get_json("pods", all_namespaces=True).get("items", []))
    not_running = len(
        ctx.client.get_json("pods", all_namespaces=True, field_selector=NOT_RUNNING).get("items", [])
    )
    message = f"Total Pods: {total} | Not Running/Completed: {not_running}"
    if not_running:
        return ProbeOutcome.warning(message)
    return ProbeOutcome.success(message=message)


def desired_and_ready(item: dict[str, Any]) -> tuple[int, int]:
    """Desired vs ready replicas for a Deployment, StatefulSet or DaemonSet."""
    status = item.get("status", {}) or {}
    if item.get("kind") == "DaemonSet":
        return int(status.get("desiredNumberScheduled", 0) or 0), int(status.get("numberReady", 0) or 0)
    spec = item.get("spec", {}) or {}
    desired = spec.get("replicas")
    return int(1 if desired is None else desired), int(status.get("readyReplicas", 0) or 0)


def unbalanced_workloads(ctx: ClusterContext) -> ProbeOutcome:
    data = ctx.client.get_json(CONTROLLER_KINDS, all_namespaces=True)
    rows = []
    for item in data.get("items", []):
        desired, ready = desired_and_ready(item)
        if desired != ready:
            namespace, name = _meta(item)
            rows.append([namespace, f"{item.get('kind', '?').lower()}/{name}", desired, ready])
    if not rows:
        return ProbeOutcome.success(message="All major workloads appear balanced.")
    return ProbeOutcome.warning(
        f"{len(rows)} workload(s) not at desired state",
        payload=render_table(["NAMESPACE", "NAME", "DESIRED", "READY"], rows),
    )


def unhealthy_pods(ctx: ClusterContext) -> ProbeOutcome:
    data = ctx.client.get_json("pods", all_namespaces=True, field_selector=NOT_RUNNING)
    items = sorted(data.get("items", []), key=_meta)
    if not items:
        return ProbeOutcome.success(message="No unhealthy pods detected.")
    limit = ctx.settings.UNHEALTHY_PODS_LIMIT
    rows = []
    for item in items[:limit]:
        namespace, name = _meta(item)
        status = item.get("status", {}) or {}
        rows.append([namespace, name, status.get("phase", "Unknown"), status.get("reason", "")])
    message = f"{len(items)} pod(s) not Running/Completed"
    if len(items) > limit:
        message += f" (showing first {limit})"
    return ProbeOutcome.warning(message, payload=render_table(["NAMESPACE", "NAME", "PHASE", "REASON"], rows))
