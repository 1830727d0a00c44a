"""
scripts/health/client.py — Thin read-only wrapper around `oc` / `kubectl`.

Every call is one subprocess with a transport-level timeout. A call either
returns the client's stdout or raises ClientError; callers never see a
CompletedProcess. API-not-found and RBAC-denied both surface as ClientError.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Any

import orjson

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """A client invocation failed (non-zero exit, timeout, missing binary)."""

    def __init__(self, message: str, argv: list[str] | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.argv = argv or []
        self.stderr = stderr


class StructuredOutputError(ClientError):
    """The client answered, but its output was not decodable JSON."""


class ControlPlaneClient:
    def __init__(
        self,
        binary: str,
        timeout_seconds: int = 60,
        env: dict[str, str] | None = None,
    ) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.env = env

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _run(self, args: list[str]) -> str:
        argv = [self.binary, *args]
        started = time.perf_counter()
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                env=self.env,
            )
        except subprocess.TimeoutExpired as exc:
            raise ClientError(f"timed out ({self.timeout_seconds}s)", argv) from exc
        except OSError as exc:
            raise ClientError(f"could not execute {self.binary}: {exc}", argv) from exc
        logger.debug("%s exited %s in %.2fs", " ".join(argv), result.returncode, time.perf_counter() - started)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            first = stderr.splitlines()[0] if stderr else f"exit code {result.returncode}"
            raise ClientError(first[:300], argv, stderr)
        return result.stdout

    def _json(self, args: list[str]) -> Any:
        raw = self._run([*args, "-o", "json"])
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise StructuredOutputError(f"undecodable JSON from {self.binary}: {exc}", [self.binary, *args]) from exc

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_nodes(self, wide: bool = False) -> str:
        args = ["get", "nodes"]
        if wide:
            args += ["-o", "wide", "--sort-by=.metadata.name"]
        return self._run(args)

    def cluster_info(self) -> str:
        return self._run(["cluster-info"])

    def version(self) -> str:
        return self._run(["version"])

    def get_raw(self, path: str) -> str:
        return self._run(["get", f"--raw={path}"])

    def get(
        self,
        resource: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
        all_namespaces: bool = False,
        selector: str | None = None,
        field_selector: str | None = None,
        output: str | None = None,
        sort_by: str | None = None,
        no_headers: bool = False,
    ) -> str:
        return self._run(
            self._get_args(
                resource,
                name=name,
                namespace=namespace,
                all_namespaces=all_namespaces,
                selector=selector,
                field_selector=field_selector,
                sort_by=sort_by,
                no_headers=no_headers,
            )
            + (["-o", output] if output else [])
        )

    def get_json(
        self,
        resource: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
        all_namespaces: bool = False,
        selector: str | None = None,
        field_selector: str | None = None,
    ) -> Any:
        return self._json(
            self._get_args(
                resource,
                name=name,
                namespace=namespace,
                all_namespaces=all_namespaces,
                selector=selector,
                field_selector=field_selector,
            )
        )

    def exec(self, namespace: str, pod: str, command: str, container: str | None = None) -> str:
        args = ["exec", "-n", namespace, pod]
        if container:
            args += ["-c", container]
        return self._run(args + ["--", "/bin/bash", "-c", command])

    def top_nodes(self) -> str:
        return self._run(["top", "nodes"])

    def api_resources(self) -> list[str]:
        """Plural resource names served by the API (first column of api-resources)."""
        out = self._run(["api-resources", "--no-headers"])
        return [ln.split()[0] for ln in out.splitlines() if ln.strip()]

    def list_crds(self) -> list[str]:
        out = self._run(["get", "crds", "--no-headers", "-o", "custom-columns=NAME:.metadata.name"])
        return [ln.strip() for ln in out.splitlines() if ln.strip()]

    def list_events(self) -> str:
        return self._run(["get", "events", "-A", "--sort-by=.metadata.creationTimestamp"])

    def namespace_exists(self, namespace: str) -> bool:
        try:
            self._run(["get", "namespace", namespace])
        except ClientError:
            return False
        return True

    @staticmethod
    def _get_args(
        resource: str,
        *,
        name: str | None = None,
        namespace: str | None = None,
        all_namespaces: bool = False,
        selector: str | None = None,
        field_selector: str | None = None,
        sort_by: str | None = None,
        no_headers: bool = False,
    ) -> list[str]:
        args = ["get", resource]
        if name:
            args.append(name)
        if all_namespaces:
            args.append("-A")
        elif namespace:
            args += ["-n", namespace]
        if selector:
            args += ["-l", selector]
        if field_selector:
            args.append(f"--field-selector={field_selector}")
        if sort_by:
            args.append(f"--sort-by={sort_by}")
        if no_headers:
            args.append("--no-headers")
        return args
