"""
scripts/health/etcd.py — etcd health from three angles.

  - OpenShift etcd operator (ClusterOperator + etcd CR)
  - API server health endpoints (/healthz/etcd, /readyz?verbose)
  - etcdctl run inside a Running etcd member pod
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scripts.health import ProbeOutcome
from scripts.health.client import ClientError

if TYPE_CHECKING:
    from scripts.health.capabilities import ClusterContext

ETCD_SELECTOR = "app=etcd"
ETCD_CONTAINER = "etcd-member"
ETCDCTL_COMMANDS = (
    "etcdctl member list -w table; echo; "
    "etcdctl endpoint health --cluster; echo; "
    "etcdctl endpoint status -w table"
)


def operator_status(ctx: ClusterContext) -> ProbeOutcome:
    try:
        co = ctx.client.get("co", name="etcd")
    except ClientError as exc:
        return ProbeOutcome.warning(f"Unable to read ClusterOperator etcd: {exc}")
    parts = [co.rstrip()]
    try:
        parts.append(ctx.client.get("etcd", namespace=ctx.settings.ETCD_NAMESPACE).rstrip())
    except ClientError:
        pass  # the etcd CR listing is supplementary to the ClusterOperator row
    return ProbeOutcome.success("\n\n".join(p for p in parts if p))


def api_health(ctx: ClusterContext) -> ProbeOutcome:
    lines: list[str] = []
    missing: list[str] = []
    try:
        lines.append(f"/healthz/etcd: {ctx.client.get_raw('/healthz/etcd').strip()}")
    except ClientError:
        missing.append("/healthz/etcd")
    try:
        readyz = ctx.client.get_raw("/readyz?verbose")
        etcd_lines = [ln for ln in readyz.splitlines() if "etcd" in ln.lower()]
        if etcd_lines:
            lines.extend(etcd_lines)
        else:
            missing.append("/readyz etcd checks")
    except ClientError:
        missing.append("/readyz etcd checks")

    payload = "\n".join(lines) or None
    if missing:
        return ProbeOutcome.warning(
            f"{', '.join(missing)} not available (RBAC or API endpoint not supported)", payload=payload
        )
    failing = [ln for ln in lines if ln.lstrip().startswith("[-]")]
    if failing:
        return ProbeOutcome.warning("API server reports etcd checks failing", payload=payload)
    return ProbeOutcome.success(payload)


def _running_etcd_pod(ctx: ClusterContext) -> str | None:
    data = ctx.client.get_json(
        "pods",
        namespace=ctx.settings.ETCD_NAMESPACE,
        selector=ETCD_SELECTOR,
        field_selector="status.phase=Running",
    )
    for item in data.get("items", []):
        name = item.get("metadata", {}).get("name")
        if name:
            return name
    return None


def member_health(ctx: ClusterContext) -> ProbeOutcome:
    pod = _running_etcd_pod(ctx)
    if not pod:
        return ProbeOutcome.warning(f"No running etcd pod found in {ctx.settings.ETCD_NAMESPACE}.")
    try:
        out = ctx.client.exec(ctx.settings.ETCD_NAMESPACE, pod, ETCDCTL_COMMANDS, container=ETCD_CONTAINER)
    except ClientError as exc:
        return ProbeOutcome.warning(f"Unable to run etcdctl (RBAC or certs issue): {exc}")
    if "unhealthy" in out.lower():
        return ProbeOutcome.warning(f"etcdctl reports unhealthy endpoints (via {pod})", payload=out.rstrip())
    return ProbeOutcome.success(out.rstrip(), message=f"via {pod}")
