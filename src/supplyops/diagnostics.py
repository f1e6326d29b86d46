"""
Tally of rows the pipeline skipped and values it could not compute.

Nothing here aborts a run. The index builder and each analyzer record what
they dropped into a DiscardLog; the report assembler merges the logs so a
reader can see how much of the snapshot actually fed each report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IssueKind(Enum):
    """Why a row or value was left out."""

    UNRESOLVED_REFERENCE = "unresolved_reference"  # Foreign key did not resolve
    UNDEFINED_RATIO = "undefined_ratio"  # Zero divisor, value emitted as null
    INVALID_INPUT = "invalid_input"  # Negative amount, missing timestamp, bad score


@dataclass
class DiscardRecord:
    """Rows skipped by one stage for one reason."""

    entity: str
    reason: str
    kind: IssueKind
    count: int
    sample_keys: list[Any] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str, IssueKind]:
        return (self.entity, self.reason, self.kind)


@dataclass
class DiscardLog:
    """Accumulates DiscardRecords; one log per stage, merged at the end."""

    stage: str
    records: list[DiscardRecord] = field(default_factory=list)

    MAX_SAMPLES = 5

    def record(
        self,
        entity: str,
        reason: str,
        kind: IssueKind,
        count: int,
        sample_keys: list[Any] | None = None,
    ) -> "DiscardLog":
        """Add a tally. Zero counts are ignored. Returns self for chaining."""
        if count <= 0:
            return self
        samples = list(sample_keys or [])[: self.MAX_SAMPLES]
        for existing in self.records:
            if existing.key == (entity, reason, kind):
                existing.count += int(count)
                room = self.MAX_SAMPLES - len(existing.sample_keys)
                existing.sample_keys.extend(samples[:room])
                return self
        self.records.append(
            DiscardRecord(
                entity=entity,
                reason=reason,
                kind=kind,
                count=int(count),
                sample_keys=samples,
            )
        )
        return self

    def merge(self, other: "DiscardLog") -> "DiscardLog":
        """Fold another log into this one (sums counts per entity/reason/kind)."""
        for rec in other.records:
            self.record(rec.entity, rec.reason, rec.kind, rec.count, rec.sample_keys)
        return self

    def total(self, kind: IssueKind | None = None) -> int:
        return sum(r.count for r in self.records if kind is None or r.kind == kind)

    def count_for(self, entity: str, reason: str) -> int:
        return sum(
            r.count for r in self.records if r.entity == entity and r.reason == reason
        )

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "stage": self.stage,
            "total": self.total(),
            **{kind.value: self.total(kind) for kind in IssueKind},
            "details": [
                {
                    "entity": r.entity,
                    "reason": r.reason,
                    "kind": r.kind.value,
                    "count": r.count,
                }
                for r in self.records
            ],
        }
