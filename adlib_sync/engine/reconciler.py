"""Three-way reconciliation of a live ad set against the stored snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..helpers import utc_timestamp
from .records import AdRecord, Identity

# Fields whose difference makes a stored ad worth rewriting.
TRACKED_FIELDS: tuple[str, ...] = ("liveness", "delivery_stop_time", "spend", "impressions")


def has_changed(stored: AdRecord, live: AdRecord) -> bool:
    return any(getattr(stored, name) != getattr(live, name) for name in TRACKED_FIELDS)


@dataclass
class ReconciliationPlan:
    new: list[AdRecord] = field(default_factory=list)
    changed: list[AdRecord] = field(default_factory=list)
    retired: list[AdRecord] = field(default_factory=list)
    unchanged: int = 0

    @property
    def writes(self) -> list[AdRecord]:
        return [*self.new, *self.changed, *self.retired]

    @property
    def new_count(self) -> int:
        return len(self.new)

    @property
    def updated_count(self) -> int:
        return len(self.changed) + len(self.retired)

    def merged_state(
        self,
        snapshot: Iterable[AdRecord],
        written: Iterable[AdRecord] | None = None,
    ) -> dict[Identity, AdRecord]:
        """Snapshot overlaid with the writes that landed (all planned writes by default)."""

        state = {record.identity: record for record in snapshot}
        for record in self.writes if written is None else written:
            state[record.identity] = record
        return state


class Reconciler:
    """Decide which records an incremental sync must write.

    Ads missing from the live feed are never deleted: an active one is
    retired (inactive, stop time stamped at ``observed_at``), an inactive one
    is left as is.
    """

    def reconcile(
        self,
        live: Iterable[AdRecord],
        snapshot: Iterable[AdRecord],
        observed_at: str | None = None,
    ) -> ReconciliationPlan:
        observed_at = observed_at or utc_timestamp()
        stored = {record.identity: record for record in snapshot}
        plan = ReconciliationPlan()
        seen: set[Identity] = set()

        for record in live:
            seen.add(record.identity)
            previous = stored.get(record.identity)
            if previous is None:
                plan.new.append(record)
            elif has_changed(previous, record):
                plan.changed.append(record)
            else:
                plan.unchanged += 1

        for identity, previous in stored.items():
            if identity in seen or not previous.is_active:
                continue
            plan.retired.append(previous.retire(observed_at))

        return plan


__all__ = ["ReconciliationPlan", "Reconciler", "TRACKED_FIELDS", "has_changed"]
