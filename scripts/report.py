"""
scripts/report.py — Append-only report assembly for a snapshot run.

ReportAssembler turns ProbeResults into report lines in the order they
arrive, opening a section header whenever the section changes. Lines are
echoed to the console as they are appended, and the same lines (minus ANSI
colour codes) can be persisted to a timestamped log file.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from scripts.health import ProbeResult, Status

BOLD = "\033[1m"
BLUE = "\033[0;34m"
CYAN = "\033[0;36m"
RED = "\033[0;31m"
NC = "\033[0m"

STATUS_TAGS = {
    Status.OK: "[ \033[1;32mOK\033[0m ]",
    Status.WARN: "[ \033[1;33mWARN\033[0m ]",
    Status.FAIL: "[ \033[1;31mFAIL\033[0m ]",
}

BAR_WIDTH = 80
HEADER_BAR = f"{BLUE}{'=' * BAR_WIDTH}{NC}"
SUB_HEADER_BAR = f"{CYAN}{'-' * BAR_WIDTH}{NC}"

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_colors(text: str) -> str:
    return _ANSI_RE.sub("", text)


def log_file_name(started_at: datetime) -> str:
    return f"cluster_snapshot_{started_at.strftime('%Y%m%d_%H%M%S')}.log"


class ReportAssembler:
    def __init__(self, echo: Callable[[str], None] | None = print) -> None:
        self._lines: list[str] = []
        self._echo = echo
        self._section: str | None = None

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def _append(self, *lines: str) -> None:
        for line in lines:
            self._lines.append(line)
            if self._echo is not None:
                self._echo(line)

    def note(self, text: str) -> None:
        self._append(f"{CYAN}{text}{NC}")

    def header(self, title: str) -> None:
        self._append("", HEADER_BAR, f"{BOLD}>>> {title} <<<{NC}", HEADER_BAR, "")

    def sub_header(self, title: str) -> None:
        self._append("", SUB_HEADER_BAR, f"{CYAN}{title}{NC}", SUB_HEADER_BAR)

    def add(self, result: ProbeResult) -> None:
        if result.section != self._section:
            self._section = result.section
            self.header(result.section)
        outcome = result.outcome
        self.sub_header(result.name)
        tag = STATUS_TAGS[outcome.status]
        if outcome.degraded:
            tag += " (degraded)"
        if outcome.message:
            self._append(f"{tag} {outcome.message}")
        else:
            self._append(tag)
        if outcome.payload:
            self._append(*outcome.payload.splitlines())

    def extend(self, results: Iterable[ProbeResult]) -> list[ProbeResult]:
        collected = []
        for result in results:
            self.add(result)
            collected.append(result)
        return collected

    def footer(self, finished_at: datetime) -> None:
        # %Z is empty for naive datetimes
        stamp = " ".join(finished_at.strftime("%a %b %d %H:%M:%S %Z %Y").split())
        self._append(
            "",
            HEADER_BAR,
            f"{BOLD}Snapshot Complete at {stamp}{NC}",
            HEADER_BAR,
            "",
        )

    def render(self, color: bool = True) -> str:
        text = "\n".join(self._lines) + "\n"
        return text if color else strip_colors(text)

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(color=False), encoding="utf-8")
        return path
