#!/usr/bin/env python3
"""
scripts/snapshot.py — Point-in-time cluster incident snapshot.

Detects the client dialect (oc → OpenShift, kubectl → Kubernetes), checks
that the API server accepts our credentials, then runs every probe in the
catalog in order and prints a colour-coded report:

  1. Connectivity & cluster info     6. CRDs
  2. Nodes                           7. Recent events
  3. Cluster operators (OpenShift)   8. etcd health
  4. Workloads                       9. Stale VolumeSnapshots
  5. Networking & storage

Exit codes: 1 when no client is found or the cluster cannot be reached,
2 on bad flags, 0 otherwise (WARN/FAIL probes do not change the exit code).

Usage:
    python3 scripts/snapshot.py            # print to the terminal
    python3 scripts/snapshot.py --save     # also write cluster_snapshot_<ts>.log
    cluster-snapshot -s                    # installed console script

Importable (used by tests):
    from scripts.snapshot import run_snapshot
    results = run_snapshot(ctx, ReportAssembler(echo=None))
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from datetime import datetime
from typing import Sequence

# Add project root to path so health modules and config are importable
_ROOT = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(_ROOT))

try:
    from config.settings import Settings, load_settings
except ImportError:
    print(
        "ERROR: pydantic-settings not installed.\n"
        "Run: pip install -e ."
    )
    sys.exit(1)

from pydantic import ValidationError  # noqa: E402

from scripts.health import ProbeResult, Status  # noqa: E402
from scripts.health.capabilities import CapabilityDetector, ClusterContext, FatalError  # noqa: E402
from scripts.health.catalog import CATALOG  # noqa: E402
from scripts.health.runner import Probe, run_catalog  # noqa: E402
from scripts.report import NC, RED, STATUS_TAGS, ReportAssembler, log_file_name  # noqa: E402

logger = logging.getLogger("cluster_snapshot")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cluster-snapshot",
        description="Read-only Kubernetes/OpenShift cluster incident snapshot.",
    )
    parser.add_argument(
        "-s",
        "--save",
        action="store_true",
        help="Also save the report (without colours) to cluster_snapshot_<timestamp>.log",
    )
    return parser


def run_snapshot(
    ctx: ClusterContext,
    report: ReportAssembler,
    catalog: Sequence[Probe] = CATALOG,
) -> list[ProbeResult]:
    """Run the catalog against a detected cluster and assemble the report."""
    flavour = "OpenShift" if ctx.is_openshift else "Kubernetes"
    report.note(f"{flavour} Client '{ctx.client.binary}' detected.")
    results = report.extend(run_catalog(catalog, ctx))
    report.footer(datetime.now().astimezone())

    counts = {s: sum(1 for r in results if r.outcome.status is s) for s in Status}
    logger.info(
        "snapshot finished: %d OK, %d WARN, %d FAIL",
        counts[Status.OK],
        counts[Status.WARN],
        counts[Status.FAIL],
    )
    return results


def _report_fatal(exc: FatalError) -> None:
    logger.error("fatal: %s", exc)
    print(f"{STATUS_TAGS[Status.FAIL]} {RED}{exc}{NC}", file=sys.stderr)
    if exc.hint:
        print(exc.hint, file=sys.stderr)


def main(argv: Sequence[str] | None = None, cfg: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)

    if cfg is None:
        try:
            cfg = load_settings()
        except ValidationError as exc:
            print(f"ERROR: invalid configuration\n{exc}", file=sys.stderr)
            return 1

    logging.basicConfig(
        level=cfg.LOG_LEVEL,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        ctx = CapabilityDetector(cfg).detect()
    except FatalError as exc:
        _report_fatal(exc)
        return 1

    report = ReportAssembler()
    log_path = pathlib.Path(cfg.REPORT_DIR) / log_file_name(ctx.started_at.astimezone())
    if args.save:
        report.note(f"Starting snapshot. Output will be saved to {log_path}")

    run_snapshot(ctx, report)

    if args.save:
        try:
            report.save(log_path)
        except OSError as exc:
            print(f"ERROR: could not write {log_path}: {exc}", file=sys.stderr)
            return 1
        print(f"Report saved to {log_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
