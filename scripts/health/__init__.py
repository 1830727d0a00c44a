"""
scripts/health — Composable cluster probes for cluster-snapshot.

Every probe resolves to exactly one ProbeOutcome (OK / WARN / FAIL).
scripts/snapshot.py runs the ordered catalog and hands each ProbeResult to
the report assembler.

Usage:
    from scripts.health import ProbeOutcome, Status
    from scripts.health.catalog import CATALOG
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class Status(str, Enum):
    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class ProbeOutcome:
    status: Status
    message: str = ""
    payload: str | None = None
    degraded: bool = False

    @classmethod
    def success(cls, payload: str | None = None, message: str = "") -> ProbeOutcome:
        return cls(Status.OK, message, payload)

    @classmethod
    def warning(cls, reason: str, payload: str | None = None) -> ProbeOutcome:
        return cls(Status.WARN, reason, payload)

    @classmethod
    def failure(cls, reason: str) -> ProbeOutcome:
        return cls(Status.FAIL, reason)

    @property
    def skipped(self) -> bool:
        return self.status is Status.WARN and self.message.startswith("skipped:")


@dataclass(frozen=True)
class ProbeResult:
    section: str
    name: str
    outcome: ProbeOutcome

    def __str__(self) -> str:
        line = f"  [{self.outcome.status.value}] {self.name}"
        if self.outcome.message:
            line += f": {self.outcome.message}"
        return line


def render_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    """Left-aligned, space-padded table with a fixed header row."""
    cells = [[str(h) for h in headers]] + [[str(c) for c in row] for row in rows]
    widths = [max(len(r[i]) for r in cells) for i in range(len(headers))]
    lines = ["   ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip() for row in cells]
    return "\n".join(lines)
