"""
scripts/health/storage.py — Networking entry points, PVCs, Ceph/ODF and Loki.

Ceph/ODF health goes through a fallback chain:
  1. exec `ceph` commands in the rook-ceph-tools toolbox pod
  2. read the CephCluster custom resources' status
  3. WARN
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import yaml

from scripts.health import ProbeOutcome, render_table
from scripts.health.client import ClientError
from scripts.health.runner import TierUnavailable, fallback_chain

if TYPE_CHECKING:
    from scripts.health.capabilities import ClusterContext

TOOLBOX_SELECTOR = "app=rook-ceph-tools"
CEPH_COMMANDS = "ceph -s; echo; ceph osd status; echo; ceph df"
LOKI_SELECTOR = "component=loki"
CEPH_HEALTH_RE = re.compile(r"\b(HEALTH_(?:OK|WARN|ERR))\b")


def ingress_routes(ctx: ClusterContext) -> ProbeOutcome:
    kind = "routes" if ctx.is_openshift else "ingress"
    try:
        out = ctx.client.get(kind, all_namespaces=True, sort_by=".metadata.namespace")
    except ClientError as exc:
        return ProbeOutcome.warning(f"Unable to list {kind}: {exc}")
    if not out.strip():
        return ProbeOutcome.success(message=f"no {kind} defined")
    return ProbeOutcome.success(out.rstrip(), message=kind)


def unbound_pvcs(ctx: ClusterContext) -> ProbeOutcome:
    data = ctx.client.get_json("pvc", all_namespaces=True)
    rows = []
    for item in data.get("items", []):
        phase = (item.get("status", {}) or {}).get("phase", "Unknown")
        if phase == "Bound":
            continue
        meta = item.get("metadata", {})
        spec = item.get("spec", {}) or {}
        rows.append(
            [
                meta.get("namespace", ""),
                meta.get("name", "?"),
                phase,
                spec.get("volumeName", "") or "<none>",
                spec.get("storageClassName", "") or "<none>",
            ]
        )
    if not rows:
        return ProbeOutcome.success(message="All PVCs are Bound.")
    return ProbeOutcome.warning(
        f"{len(rows)} PVC(s) not Bound",
        payload=render_table(["NAMESPACE", "NAME", "STATUS", "VOLUME", "STORAGECLASS"], rows),
    )


# ---------------------------------------------------------------------------
# Ceph / ODF
# ---------------------------------------------------------------------------

def _find_toolbox_pod(ctx: ClusterContext) -> str | None:
    data = ctx.client.get_json("pods", namespace=ctx.settings.STORAGE_NAMESPACE, selector=TOOLBOX_SELECTOR)
    items = data.get("items", [])
    return items[0].get("metadata", {}).get("name") if items else None


def ceph_toolbox(ctx: ClusterContext) -> ProbeOutcome:
    pod = _find_toolbox_pod(ctx)
    if not pod:
        raise TierUnavailable("rook-ceph-tools pod not found")
    try:
        out = ctx.client.exec(ctx.settings.STORAGE_NAMESPACE, pod, CEPH_COMMANDS)
    except ClientError as exc:
        raise ClientError(f"Unable to run ceph commands in {pod}: {exc}") from exc
    health = CEPH_HEALTH_RE.search(out)
    if health and health.group(1) != "HEALTH_OK":
        return ProbeOutcome.warning(f"Ceph reports {health.group(1)} (via toolbox pod {pod})", payload=out.rstrip())
    return ProbeOutcome.success(out.rstrip(), message=f"via toolbox pod {pod}")


def ceph_cluster_resource(ctx: ClusterContext) -> ProbeOutcome:
    data = ctx.client.get_json("cephcluster", namespace=ctx.settings.STORAGE_NAMESPACE)
    items = data.get("items", [])
    if not items:
        raise TierUnavailable("no CephCluster resources found")
    summary = [
        {"name": i.get("metadata", {}).get("name", "?"), "status": i.get("status", {})}
        for i in items
    ]
    health = [str(((i.get("status") or {}).get("ceph") or {}).get("health", "UNKNOWN")) for i in items]
    payload = yaml.safe_dump(summary, sort_keys=False, default_flow_style=False).rstrip()
    if all(h == "HEALTH_OK" for h in health):
        return ProbeOutcome.success(payload, message="CephCluster details")
    return ProbeOutcome.warning(f"CephCluster health: {', '.join(health)}", payload=payload)


ceph_status = fallback_chain(
    ceph_toolbox,
    ceph_cluster_resource,
    exhausted="Unable to read Ceph status from toolbox pod or CephCluster resources",
)


# ---------------------------------------------------------------------------
# Loki
# ---------------------------------------------------------------------------

def loki_status(ctx: ClusterContext) -> ProbeOutcome:
    try:
        out = ctx.client.get(
            "pods", namespace=ctx.settings.LOGGING_NAMESPACE, selector=LOKI_SELECTOR, output="wide"
        )
    except ClientError as exc:
        return ProbeOutcome.warning(f"Unable to list Loki pods: {exc}")
    if not out.strip():
        return ProbeOutcome.warning(f"no Loki pods found in {ctx.settings.LOGGING_NAMESPACE}")
    return ProbeOutcome.success(out.rstrip())
