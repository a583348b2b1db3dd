"""Append-only drift report with running summary tallies."""

from collections import Counter
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from osdrift.models import DiffResult, DriftStatus, ProjectDrift, ResourceKind

ALL = "all"

RESOURCE_FILTERS: dict[str, ResourceKind] = {
    "servers": ResourceKind.SERVER,
    "secgrps": ResourceKind.SECURITY_GROUP,
    "rules": ResourceKind.SECURITY_GROUP_RULE,
}

STATUS_FILTERS: dict[str, DriftStatus] = {status.value: status for status in DriftStatus}


@dataclass(frozen=True)
class DriftSummary:
    """Aggregate statistics across every project in a report."""

    total_projects: int = 0
    total_drift: int = 0
    by_status: dict[DriftStatus, int] = field(default_factory=dict)
    by_kind: dict[ResourceKind, int] = field(default_factory=dict)


class DriftReport:
    """Ordered per-project drift results.

    Projects are only ever appended through ``add_project``, which also keeps
    the status and kind tallies in step with the project list.
    """

    def __init__(self) -> None:
        self._projects: list[ProjectDrift] = []
        self._by_status: Counter[DriftStatus] = Counter()
        self._by_kind: Counter[ResourceKind] = Counter()

    def add_project(self, project: ProjectDrift) -> None:
        self._projects.append(project)
        for drift in project.drifts:
            self._by_status[drift.status] += 1
            self._by_kind[drift.resource_kind] += 1

    @property
    def projects(self) -> tuple[ProjectDrift, ...]:
        return tuple(self._projects)

    @property
    def total_drift(self) -> int:
        return sum(len(p.drifts) for p in self._projects)

    @property
    def summary(self) -> DriftSummary:
        return DriftSummary(
            total_projects=len(self._projects),
            total_drift=self.total_drift,
            by_status=dict(self._by_status),
            by_kind=dict(self._by_kind),
        )

    def has_drift(self) -> bool:
        """True iff at least one drift item was recorded across all projects."""
        return self.total_drift > 0

    def drifts(self) -> list[DiffResult]:
        return [d for p in self._projects for d in p.drifts]

    def filter(self, resource: str = ALL, status: str = ALL) -> "DriftReport":
        """Return a new report keeping only matching drift items.

        ``resource`` is one of ``servers``, ``secgrps``, ``rules`` or ``all``;
        ``status`` is a DriftStatus value or ``all``. Every project is kept,
        even when none of its drift items match, so project totals survive
        filtering.
        """
        kind = _lookup(RESOURCE_FILTERS, resource, "resource")
        wanted_status = _lookup(STATUS_FILTERS, status, "status")

        filtered = DriftReport()
        for project in self._projects:
            drifts = tuple(
                d
                for d in project.drifts
                if (kind is None or d.resource_kind == kind)
                and (wanted_status is None or d.status == wanted_status)
            )
            filtered.add_project(replace(project, drifts=drifts))
        return filtered

    def to_dict(self) -> dict[str, Any]:
        """Lossless JSON-ready view of the report."""
        summary = self.summary
        return {
            "projects": [asdict(p) for p in self._projects],
            "summary": {
                "total_projects": summary.total_projects,
                "total_drift": summary.total_drift,
                "by_status": {str(k): v for k, v in summary.by_status.items()},
                "by_kind": {str(k): v for k, v in summary.by_kind.items()},
            },
        }


def _lookup(table: dict, value: str, label: str):
    if value == ALL:
        return None
    try:
        return table[value]
    except KeyError:
        choices = ", ".join([*table, ALL])
        raise ValueError(f"Invalid {label} filter {value!r}: expected one of {choices}") from None
