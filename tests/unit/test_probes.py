"""Unit tests for individual probes: workloads, PVCs, operators, etcd, inventory."""

from __future__ import annotations

import pytest

from scripts.health import Status
from scripts.health import cluster, etcd, inventory, storage, workloads
from scripts.health.client import ClientError
from scripts.health.etcd import ETCDCTL_COMMANDS
from scripts.health.storage import CEPH_COMMANDS
from scripts.health.workloads import CONTROLLER_KINDS, NOT_RUNNING
from tests.fixtures.cluster_responses import operator, pod
from tests.fixtures.fake_client import items, make_context

PODS_KEY = "get pods -A -o json"
NOT_RUNNING_KEY = f"get pods -A --field-selector={NOT_RUNNING} -o json"
CONTROLLERS_KEY = f"get {CONTROLLER_KINDS} -A -o json"
ETCD_PODS_KEY = "get pods -n openshift-etcd -l app=etcd --field-selector=status.phase=Running -o json"
ETCD_EXEC_KEY = f"exec -n openshift-etcd etcd-m0 -c etcd-member -- /bin/bash -c {ETCDCTL_COMMANDS}"
TOOLBOX_KEY = "get pods -n openshift-storage -l app=rook-ceph-tools -o json"


# ---------------------------------------------------------------------------
# Cluster
# ---------------------------------------------------------------------------


class TestCluster:
    def test_connectivity_makes_no_call(self):
        ctx = make_context({})
        outcome = cluster.connectivity(ctx)
        assert outcome.message == "API server reachable via 'oc' (3 node(s))"
        assert ctx.client.calls == []

    def test_node_usage_without_metrics_is_warn(self):
        outcome = cluster.node_usage(make_context({"top nodes": ClientError("Metrics API not available")}))
        assert outcome.status is Status.WARN
        assert "metrics-server" in outcome.message

    def test_degraded_operator_is_warn(self):
        data = items(operator("monitoring", degraded="True"), operator("dns"), operator("auth", available="False"))
        outcome = cluster.cluster_operators(make_context({"get clusteroperators -o json": data}))
        assert outcome.status is Status.WARN
        assert outcome.message == "2 operator(s) unavailable or degraded: auth, monitoring"
        assert [ln.split()[0] for ln in outcome.payload.splitlines()] == ["NAME", "auth", "dns", "monitoring"]

    def test_operator_without_conditions_is_unknown(self):
        outcome = cluster.cluster_operators(make_context({"get clusteroperators -o json": items({"metadata": {"name": "new"}})}))
        assert outcome.status is Status.WARN
        assert "Unknown" in outcome.payload


# ---------------------------------------------------------------------------
# Workloads
# ---------------------------------------------------------------------------


class TestWorkloads:
    def test_pod_summary_counts(self):
        ctx = make_context(
            {
                PODS_KEY: items(pod("a", "p1"), pod("a", "p2"), pod("b", "p3", phase="Pending")),
                NOT_RUNNING_KEY: items(pod("b", "p3", phase="Pending")),
            }
        )
        outcome = workloads.pod_summary(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message == "Total Pods: 3 | Not Running/Completed: 1"

    def test_pod_summary_all_running_is_ok(self):
        ctx = make_context({PODS_KEY: items(pod("a", "p1")), NOT_RUNNING_KEY: items()})
        assert workloads.pod_summary(ctx).status is Status.OK

    @pytest.mark.parametrize(
        "item, expected",
        [
            ({"kind": "Deployment", "spec": {"replicas": 3}, "status": {"readyReplicas": 2}}, (3, 2)),
            ({"kind": "Deployment", "spec": {}, "status": {}}, (1, 0)),
            ({"kind": "StatefulSet", "spec": {"replicas": 0}, "status": {}}, (0, 0)),
            ({"kind": "DaemonSet", "status": {"desiredNumberScheduled": 4, "numberReady": 4}}, (4, 4)),
        ],
    )
    def test_desired_and_ready(self, item, expected):
        assert workloads.desired_and_ready(item) == expected

    def test_unbalanced_workloads_table(self):
        data = items(
            {"kind": "Deployment", "metadata": {"namespace": "apps", "name": "api"},
             "spec": {"replicas": 3}, "status": {"readyReplicas": 1}},
            {"kind": "DaemonSet", "metadata": {"namespace": "infra", "name": "agent"},
             "status": {"desiredNumberScheduled": 3, "numberReady": 3}},
        )
        outcome = workloads.unbalanced_workloads(make_context({CONTROLLERS_KEY: data}))
        assert outcome.status is Status.WARN
        assert outcome.payload.splitlines()[1].split() == ["apps", "deployment/api", "3", "1"]

    def test_balanced_workloads_ok(self):
        outcome = workloads.unbalanced_workloads(make_context({CONTROLLERS_KEY: items()}))
        assert outcome.message == "All major workloads appear balanced."

    def test_unhealthy_pods_capped_and_sorted(self):
        pods = [pod("ns", f"p{i:02d}", phase="Failed", reason="Evicted") for i in range(5, 0, -1)]
        ctx = make_context({NOT_RUNNING_KEY: items(*pods)}, UNHEALTHY_PODS_LIMIT=3)
        outcome = workloads.unhealthy_pods(ctx)
        assert outcome.message == "5 pod(s) not Running/Completed (showing first 3)"
        rows = outcome.payload.splitlines()[1:]
        assert [r.split()[1] for r in rows] == ["p01", "p02", "p03"]
        assert rows[0].split()[2:] == ["Failed", "Evicted"]


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class TestStorage:
    def test_unbound_pvcs_listed(self):
        data = items(
            {"metadata": {"namespace": "db", "name": "pg"}, "spec": {"storageClassName": "gp3"}, "status": {"phase": "Pending"}},
            {"metadata": {"namespace": "db", "name": "ok"}, "spec": {"volumeName": "pv-1"}, "status": {"phase": "Bound"}},
        )
        outcome = storage.unbound_pvcs(make_context({"get pvc -A -o json": data}))
        assert outcome.status is Status.WARN
        assert outcome.payload.splitlines()[1].split() == ["db", "pg", "Pending", "<none>", "gp3"]

    def test_ingress_listing_failure_is_warn(self):
        outcome = storage.ingress_routes(make_context({}))
        assert outcome.status is Status.WARN
        assert outcome.message.startswith("Unable to list routes")

    def test_unhealthy_cephcluster_is_warn(self):
        ctx = make_context(
            {"get cephcluster -n openshift-storage -o json": items(
                {"metadata": {"name": "c"}, "status": {"ceph": {"health": "HEALTH_WARN"}}}
            )}
        )
        outcome = storage.ceph_cluster_resource(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message == "CephCluster health: HEALTH_WARN"

    def test_empty_loki_listing_is_warn(self):
        ctx = make_context({"get pods -n openshift-logging -l component=loki -o wide": ""})
        assert storage.loki_status(ctx).status is Status.WARN

    @pytest.mark.parametrize("health", ["HEALTH_WARN", "HEALTH_ERR"])
    def test_toolbox_reporting_unhealthy_ceph_is_warn(self, health):
        ctx = make_context(
            {
                TOOLBOX_KEY: items(pod("openshift-storage", "tools-1")),
                f"exec -n openshift-storage tools-1 -- /bin/bash -c {CEPH_COMMANDS}": (
                    f"  cluster:\n    health: {health}\n            1 osds down\n"
                ),
            }
        )
        outcome = storage.ceph_status(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message == f"Ceph reports {health} (via toolbox pod tools-1)"
        assert "1 osds down" in outcome.payload
        assert outcome.degraded is False

    def test_toolbox_reporting_healthy_ceph_is_ok(self):
        ctx = make_context(
            {
                TOOLBOX_KEY: items(pod("openshift-storage", "tools-1")),
                f"exec -n openshift-storage tools-1 -- /bin/bash -c {CEPH_COMMANDS}": "  cluster:\n    health: HEALTH_OK\n",
            }
        )
        outcome = storage.ceph_status(ctx)
        assert outcome.status is Status.OK
        assert outcome.message == "via toolbox pod tools-1"


# ---------------------------------------------------------------------------
# etcd
# ---------------------------------------------------------------------------


class TestEtcd:
    def test_api_health_failing_check_is_warn(self):
        ctx = make_context(
            {
                "get --raw=/healthz/etcd": "ok",
                "get --raw=/readyz?verbose": "[+]ping ok\n[-]etcd failed: reason withheld\n",
            }
        )
        outcome = etcd.api_health(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message == "API server reports etcd checks failing"

    def test_api_health_endpoint_missing_is_warn(self):
        ctx = make_context({"get --raw=/readyz?verbose": "[+]etcd ok\n"})
        outcome = etcd.api_health(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message.startswith("/healthz/etcd not available")
        assert outcome.payload == "[+]etcd ok"

    def test_member_health_without_running_pod(self):
        outcome = etcd.member_health(make_context({ETCD_PODS_KEY: items()}))
        assert outcome.message == "No running etcd pod found in openshift-etcd."

    def test_member_health_exec_denied_is_warn(self):
        ctx = make_context({ETCD_PODS_KEY: items(pod("openshift-etcd", "etcd-m0")), ETCD_EXEC_KEY: ClientError("forbidden")})
        outcome = etcd.member_health(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message == "Unable to run etcdctl (RBAC or certs issue): forbidden"

    def test_member_health_reports_unhealthy_endpoint(self):
        ctx = make_context(
            {
                ETCD_PODS_KEY: items(pod("openshift-etcd", "etcd-m0")),
                ETCD_EXEC_KEY: "https://10.0.0.2:2379 is unhealthy: failed to commit proposal\n",
            }
        )
        assert etcd.member_health(ctx).status is Status.WARN

    def test_operator_status_tolerates_missing_cr(self):
        ctx = make_context({"get co etcd": "NAME   AVAILABLE\netcd   True\n"})
        outcome = etcd.operator_status(ctx)
        assert outcome.status is Status.OK
        assert outcome.payload == "NAME   AVAILABLE\netcd   True"


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class TestInventory:
    def test_crds_capped(self):
        names = "\n".join(f"crd{i}.example.com" for i in range(25))
        ctx = make_context({"get crds --no-headers -o custom-columns=NAME:.metadata.name": names}, CRD_LIMIT=20)
        outcome = inventory.crds(ctx)
        assert outcome.message == "25 CRD(s) installed (showing top 20 of 25)"
        assert len(outcome.payload.splitlines()) == 20

    def test_no_crds(self):
        ctx = make_context({"get crds --no-headers -o custom-columns=NAME:.metadata.name": ""})
        assert inventory.crds(ctx).message == "no CRDs installed"

    def test_events_keep_header_and_most_recent(self):
        rows = "\n".join(f"ns  {i}m  Normal  R{i}" for i in range(60))
        ctx = make_context(
            {"get events -A --sort-by=.metadata.creationTimestamp": f"NAMESPACE  LAST SEEN  TYPE  REASON\n{rows}\n"},
            EVENTS_LIMIT=50,
        )
        outcome = inventory.recent_events(ctx)
        lines = outcome.payload.splitlines()
        assert lines[0].startswith("NAMESPACE")
        assert len(lines) == 51
        assert lines[-1].endswith("R59")
        assert outcome.message == "last 50 of 60 event(s)"

    def test_no_events(self):
        ctx = make_context({"get events -A --sort-by=.metadata.creationTimestamp": "No resources found\n"})
        assert inventory.recent_events(ctx).message == "no events recorded"

    def test_denied_crd_listing_is_warn(self):
        ctx = make_context(
            {"get crds --no-headers -o custom-columns=NAME:.metadata.name": ClientError("crds is forbidden")}
        )
        outcome = inventory.crds(ctx)
        assert outcome.status is Status.WARN
        assert outcome.message == "Unable to list CRDs: crds is forbidden"

    def test_denied_event_listing_is_warn(self):
        outcome = inventory.recent_events(make_context({}))
        assert outcome.status is Status.WARN
        assert outcome.message.startswith("Unable to list events: ")
