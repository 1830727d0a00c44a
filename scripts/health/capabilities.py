"""
scripts/health/capabilities.py — Client dialect detection and run context.

CapabilityDetector.detect() is the only place a run can abort: it picks the
client binary (oc → OpenShift, kubectl → Kubernetes) and performs the single
connectivity check. Everything it learns is frozen into a ClusterContext
that every probe receives explicitly.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Callable

from config.settings import Settings
from scripts.health.client import ClientError, ControlPlaneClient

logger = logging.getLogger(__name__)


class Dialect(str, Enum):
    KUBERNETES = "kubernetes"
    OPENSHIFT = "openshift"


_DIALECT_BY_BINARY = {"oc": Dialect.OPENSHIFT, "kubectl": Dialect.KUBERNETES}


class FatalError(Exception):
    """A precondition failure that aborts the whole run."""

    hint = ""


class ClientNotFoundError(FatalError):
    hint = "Install 'oc' or 'kubectl' and make sure it is on PATH."


class ConnectivityError(FatalError):
    hint = "Check KUBECONFIG and that you are logged in to the cluster."


class NamespaceCache:
    """Memoised namespace lookups: each namespace is queried at most once per run."""

    def __init__(self, client: ControlPlaneClient) -> None:
        self._client = client
        self._seen: dict[str, bool] = {}

    def exists(self, namespace: str) -> bool:
        if namespace not in self._seen:
            self._seen[namespace] = self._client.namespace_exists(namespace)
            logger.debug("namespace %s present=%s", namespace, self._seen[namespace])
        return self._seen[namespace]

    @property
    def detected(self) -> frozenset[str]:
        return frozenset(ns for ns, present in self._seen.items() if present)


@dataclass(frozen=True)
class ClusterContext:
    dialect: Dialect
    client: ControlPlaneClient
    settings: Settings
    node_count: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    namespaces: NamespaceCache = field(init=False, compare=False)
    snapshot_cutoff: datetime = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "namespaces", NamespaceCache(self.client))
        object.__setattr__(self, "snapshot_cutoff", self.started_at - self.settings.snapshot_max_age)

    @property
    def is_openshift(self) -> bool:
        return self.dialect is Dialect.OPENSHIFT

    @property
    def structured_query(self) -> bool:
        return self.settings.STRUCTURED_QUERY

    def namespace_exists(self, namespace: str) -> bool:
        return self.namespaces.exists(namespace)

    def api_resource_exists(self, plural: str) -> bool:
        try:
            return plural in self.client.api_resources()
        except ClientError as exc:
            logger.warning("api-resources lookup failed: %s", exc)
            return False


def determine_client(cfg: Settings, which: Callable[[str], str | None] | None = None) -> tuple[str, Dialect]:
    """Pick the client binary. Raises ClientNotFoundError if none is usable."""
    which = which or shutil.which
    candidates = ["oc", "kubectl"] if cfg.KUBE_CLIENT == "auto" else [cfg.KUBE_CLIENT]
    for binary in candidates:
        if which(binary):
            return binary, _DIALECT_BY_BINARY[binary]
    if cfg.KUBE_CLIENT == "auto":
        raise ClientNotFoundError("CRITICAL: Neither 'kubectl' nor 'oc' found in PATH.")
    raise ClientNotFoundError(f"CRITICAL: Configured client '{cfg.KUBE_CLIENT}' not found in PATH.")


class CapabilityDetector:
    def __init__(
        self,
        cfg: Settings,
        which: Callable[[str], str | None] | None = None,
        client_factory: Callable[..., ControlPlaneClient] = ControlPlaneClient,
    ) -> None:
        self.cfg = cfg
        self._which = which
        self._client_factory = client_factory

    def detect(self) -> ClusterContext:
        binary, dialect = determine_client(self.cfg, self._which)
        client = self._client_factory(
            binary,
            timeout_seconds=self.cfg.CLIENT_TIMEOUT_SECONDS,
            env=self.cfg.client_env,
        )
        node_count = check_connectivity(client)
        return ClusterContext(dialect=dialect, client=client, settings=self.cfg, node_count=node_count)


def check_connectivity(client: ControlPlaneClient) -> int:
    """List nodes once; a failure here means nothing downstream can be trusted."""
    try:
        out = client.get_nodes()
    except ClientError as exc:
        raise ConnectivityError(
            f"ERROR: Cannot authenticate to the cluster ({exc}). "
            f"Try running '{client.binary} get nodes' manually to debug."
        ) from exc
    return max(len([ln for ln in out.splitlines() if ln.strip()]) - 1, 0)
