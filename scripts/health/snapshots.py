"""
scripts/health/snapshots.py — VolumeSnapshots older than the configured age.

Two strategies:
  A. structured query available: decode the JSON listing into VolumeSnapshot
     models, keep those created strictly before the cutoff, print a table.
  B. structured query unavailable (or the JSON could not be decoded): list
     every VolumeSnapshot unfiltered and WARN that the list needs manual
     review.

Snapshots whose creationTimestamp is missing or malformed have no age; they
are never counted as stale, and are reported on the side instead.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from scripts.health import ProbeOutcome, render_table
from scripts.health.client import StructuredOutputError
from scripts.health.runner import fallback_chain

if TYPE_CHECKING:
    from scripts.health.capabilities import ClusterContext

logger = logging.getLogger(__name__)

SNAPSHOT_API = "volumesnapshots"
SNAPSHOT_RESOURCE = "volumesnapshots.snapshot.storage.k8s.io"
TABLE_HEADER = ("NAMESPACE", "NAME", "CREATED", "READY", "RESTORE_SIZE")
UNKNOWN = "unknown"


def parse_timestamp(value: str) -> datetime | None:
    """Parse RFC 3339 timestamps with either '+00:00' or trailing 'Z'. Naive means UTC."""
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return _aware(parsed)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


class VolumeSnapshot(BaseModel):
    """Read-only projection of a snapshot.storage.k8s.io/VolumeSnapshot."""

    model_config = ConfigDict(frozen=True)

    namespace: str = ""
    name: str
    creation_timestamp: datetime | None = None
    created_raw: str | None = None
    ready_to_use: bool | None = None
    restore_size: str | None = None

    @field_validator("name")
    @classmethod
    def non_empty_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("metadata.name cannot be blank")
        return value

    @field_validator("creation_timestamp", mode="before")
    @classmethod
    def lenient_timestamp(cls, value: Any) -> datetime | None:
        if isinstance(value, datetime):
            return _aware(value)
        if isinstance(value, str):
            return parse_timestamp(value)
        return None

    @field_validator("ready_to_use", mode="before")
    @classmethod
    def strict_bool(cls, value: Any) -> bool | None:
        return value if isinstance(value, bool) else None

    @field_validator("restore_size", mode="before")
    @classmethod
    def size_as_text(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> VolumeSnapshot:
        meta = _mapping(item.get("metadata"))
        status = _mapping(item.get("status"))
        created = meta.get("creationTimestamp")
        return cls.model_validate(
            {
                "namespace": meta.get("namespace") or "",
                "name": meta.get("name"),
                "creation_timestamp": created,
                "created_raw": created if isinstance(created, str) else None,
                "ready_to_use": status.get("readyToUse"),
                "restore_size": status.get("restoreSize"),
            }
        )

    def row(self) -> list[str]:
        ready = UNKNOWN if self.ready_to_use is None else str(self.ready_to_use).lower()
        return [
            self.namespace,
            self.name,
            self.created_raw or UNKNOWN,
            ready,
            self.restore_size or UNKNOWN,
        ]


def parse_snapshots(items: Iterable[Any]) -> list[VolumeSnapshot]:
    """Decode listing items, skipping (and logging) any that are not snapshots."""
    snapshots: list[VolumeSnapshot] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("skipping VolumeSnapshot item %d: not an object", index)
            continue
        try:
            snapshots.append(VolumeSnapshot.from_item(item))
        except ValidationError as exc:
            logger.warning("skipping VolumeSnapshot item %d: %s", index, exc.errors()[0].get("msg"))
        except (AttributeError, TypeError) as exc:
            logger.warning("skipping VolumeSnapshot item %d: %s", index, exc)
    return snapshots


def filter_older_than(
    snapshots: Sequence[VolumeSnapshot],
    cutoff: datetime,
    undetermined: list[VolumeSnapshot] | None = None,
) -> list[VolumeSnapshot]:
    """Snapshots created strictly before cutoff, in input order.

    Snapshots without a usable creation timestamp are excluded; when
    `undetermined` is given they are appended to it.
    """
    cutoff = _aware(cutoff)
    stale: list[VolumeSnapshot] = []
    for snap in snapshots:
        if snap.creation_timestamp is None:
            logger.warning(
                "cannot determine age of VolumeSnapshot %s/%s (creationTimestamp=%r)",
                snap.namespace,
                snap.name,
                snap.created_raw,
            )
            if undetermined is not None:
                undetermined.append(snap)
            continue
        if snap.creation_timestamp < cutoff:
            stale.append(snap)
    return stale


def snapshot_table(snapshots: Sequence[VolumeSnapshot]) -> str:
    return render_table(TABLE_HEADER, [s.row() for s in snapshots])


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def structured_scan(ctx: ClusterContext) -> ProbeOutcome:
    data = ctx.client.get_json(SNAPSHOT_RESOURCE, all_namespaces=True)
    if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
        raise StructuredOutputError("VolumeSnapshot listing is not a List object")
    snapshots = parse_snapshots(data.get("items", []))
    undetermined: list[VolumeSnapshot] = []
    stale = filter_older_than(snapshots, ctx.snapshot_cutoff, undetermined)

    days = ctx.settings.SNAPSHOT_MAX_AGE_DAYS
    note = ""
    if undetermined:
        names = ", ".join(f"{s.namespace}/{s.name}" for s in undetermined)
        note = f"; {len(undetermined)} skipped with unparseable creationTimestamp: {names}"
    if not stale:
        return ProbeOutcome.success(message=f"No VolumeSnapshots older than {days} days found{note}")
    return ProbeOutcome.warning(
        f"{len(stale)} VolumeSnapshot(s) older than {days} days{note}",
        payload=snapshot_table(stale),
    )


def unfiltered_listing(ctx: ClusterContext) -> ProbeOutcome:
    out = ctx.client.get(SNAPSHOT_RESOURCE, all_namespaces=True, output="wide")
    return ProbeOutcome.warning(
        "structured query unavailable; showing all VolumeSnapshots for manual review",
        payload=out.rstrip() or None,
    )


_EXHAUSTED = "Unable to list VolumeSnapshots"
_structured_then_unfiltered = fallback_chain(structured_scan, unfiltered_listing, exhausted=_EXHAUSTED)
_unfiltered_only = fallback_chain(unfiltered_listing, exhausted=_EXHAUSTED)


def stale_snapshots(ctx: ClusterContext) -> ProbeOutcome:
    if ctx.structured_query:
        return _structured_then_unfiltered(ctx)
    return _unfiltered_only(ctx)
