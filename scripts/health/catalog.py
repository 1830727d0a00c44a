"""
scripts/health/catalog.py — The fixed, ordered battery of probes.

Sections and probe order are the report layout. Gates encode which probes
only make sense on OpenShift, or only where an optional namespace or API
is installed; a probe whose gate fails is reported as skipped, never dropped.
"""

from __future__ import annotations

from scripts.health import cluster, etcd, inventory, snapshots, storage, workloads
from scripts.health.runner import (
    Probe,
    api_resource_present,
    namespace_present,
    openshift_only,
)

CONNECTIVITY = "1. Connectivity & Cluster Info"
NODES = "2. Node Status, Uptime & Capacity"
OPERATORS = "3. OpenShift Cluster Operators"
WORKLOADS = "4. Workload Status Summary (All Namespaces)"
NETWORK_STORAGE = "5. Networking & Storage"
CRDS = "6. Custom Resource Definitions (CRDs)"
EVENTS = "7. Recent Cluster Events (Chronological)"
ETCD = "8. Etcd Cluster Health"
SNAPSHOTS = "9. Stale VolumeSnapshots"

SECTIONS = (CONNECTIVITY, NODES, OPERATORS, WORKLOADS, NETWORK_STORAGE, CRDS, EVENTS, ETCD, SNAPSHOTS)

CATALOG: tuple[Probe, ...] = (
    Probe(CONNECTIVITY, "API server connectivity", cluster.connectivity),
    Probe(CONNECTIVITY, "Cluster info", cluster.cluster_info),
    Probe(CONNECTIVITY, "Version", cluster.version),
    Probe(NODES, "Nodes", cluster.nodes),
    Probe(NODES, "Node resource usage (top)", cluster.node_usage),
    Probe(
        OPERATORS,
        "Cluster operators",
        cluster.cluster_operators,
        gates=(openshift_only("ClusterOperators exist only on OpenShift"),),
    ),
    Probe(WORKLOADS, "Pod summary", workloads.pod_summary),
    Probe(WORKLOADS, "Deployments/StatefulSets/DaemonSets not at desired state", workloads.unbalanced_workloads),
    Probe(WORKLOADS, "Pods not Running or Completed", workloads.unhealthy_pods),
    Probe(NETWORK_STORAGE, "Ingress / Routes", storage.ingress_routes),
    Probe(NETWORK_STORAGE, "PVCs not Bound", storage.unbound_pvcs),
    Probe(
        NETWORK_STORAGE,
        "Ceph / ODF health & capacity",
        storage.ceph_status,
        gates=(
            openshift_only("Ceph/ODF checks are OpenShift-specific"),
            namespace_present("STORAGE_NAMESPACE"),
        ),
    ),
    Probe(
        NETWORK_STORAGE,
        "Loki (logging) components",
        storage.loki_status,
        gates=(namespace_present("LOGGING_NAMESPACE"),),
    ),
    Probe(CRDS, "Installed CRDs", inventory.crds),
    Probe(EVENTS, "Recent events", inventory.recent_events),
    Probe(
        ETCD,
        "Etcd operator status",
        etcd.operator_status,
        gates=(openshift_only("etcd operator exists only on OpenShift"),),
    ),
    Probe(ETCD, "API server etcd health endpoints", etcd.api_health),
    Probe(
        ETCD,
        "etcd cluster status (etcdctl via pod exec)",
        etcd.member_health,
        gates=(
            openshift_only("etcd pod exec is not available outside OpenShift"),
            namespace_present("ETCD_NAMESPACE"),
        ),
    ),
    Probe(
        SNAPSHOTS,
        "VolumeSnapshots older than cutoff",
        snapshots.stale_snapshots,
        gates=(
            api_resource_present(
                snapshots.SNAPSHOT_API,
                "VolumeSnapshot API not found (install snapshot.storage.k8s.io)",
            ),
        ),
    ),
)
