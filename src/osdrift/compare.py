"""ID-keyed comparison of declared state against observed truth."""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable

from osdrift.models import (
    DiffResult,
    DriftStatus,
    Resource,
    ResourceKind,
    SecurityGroupRule,
    Server,
)

logger = logging.getLogger(__name__)

MISSING_IN_TRUTH_DETAILS = "Resource exists in Terraform state but not in OpenStack"
MISSING_IN_STATE_DETAILS = "Resource exists in OpenStack but not in Terraform state"

PropertyComparer = Callable[[Resource, Resource], tuple[DriftStatus, str] | None]


def compare_resources(state: list[Resource], truth: list[Resource]) -> list[DiffResult]:
    """Compare state and truth resources and return every detected drift.

    Kinds are compared independently. Within a kind, results come in three
    phases (missing in truth, missing in state, changed); no order is
    guaranteed inside a phase.
    """
    state_by_kind = _group_by_kind(state)
    truth_by_kind = _group_by_kind(truth)

    results: list[DiffResult] = []
    for kind, comparer in COMPARERS.items():
        results.extend(
            compare_kind(state_by_kind.get(kind, []), truth_by_kind.get(kind, []), comparer)
        )
    return results


def compare_kind(
    state: list[Resource],
    truth: list[Resource],
    comparer: PropertyComparer,
) -> list[DiffResult]:
    """Match resources of one kind by ID and classify the differences."""
    state_by_id = _index_by_id(state, "state")
    truth_by_id = _index_by_id(truth, "truth")

    results = [
        _diff(res, DriftStatus.MISSING_IN_TRUTH, MISSING_IN_TRUTH_DETAILS)
        for res_id, res in state_by_id.items()
        if res_id not in truth_by_id
    ]
    results.extend(
        _diff(res, DriftStatus.MISSING_IN_STATE, MISSING_IN_STATE_DETAILS)
        for res_id, res in truth_by_id.items()
        if res_id not in state_by_id
    )

    for res_id, state_res in state_by_id.items():
        truth_res = truth_by_id.get(res_id)
        if truth_res is None:
            continue
        change = comparer(state_res, truth_res)
        if change is not None:
            status, details = change
            results.append(_diff(state_res, status, details))

    return results


def compare_server(state_res: Server, truth_res: Server) -> tuple[DriftStatus, str] | None:
    """Name changes take precedence over security group changes."""
    changes = []

    name_changed = state_res.name != truth_res.name
    if name_changed:
        changes.append(_name_change(state_res.name, truth_res.name))

    state_sgs = normalize_security_groups(state_res.security_groups)
    truth_sgs = normalize_security_groups(truth_res.security_groups)
    if state_sgs != truth_sgs:
        added, removed = diff_lists(state_sgs, truth_sgs)
        parts = []
        if added:
            parts.append(f"added: {_format_list(added)}")
        if removed:
            parts.append(f"removed: {_format_list(removed)}")
        changes.append(f"security_groups: {', '.join(parts)}")

    if not changes:
        return None
    status = DriftStatus.NAME_CHANGED if name_changed else DriftStatus.SECGROUPS_CHANGED
    return status, "; ".join(changes)


def compare_security_group(
    state_res: Resource, truth_res: Resource
) -> tuple[DriftStatus, str] | None:
    if state_res.name != truth_res.name:
        return DriftStatus.NAME_CHANGED, _name_change(state_res.name, truth_res.name)
    return None


def compare_security_group_rule(
    state_res: Resource, truth_res: Resource
) -> tuple[DriftStatus, str] | None:
    """Rules are matched by ID only.

    Truth exports do not carry enough rule detail (no ethertype, no remote
    group) for a property comparison to be meaningful.
    """
    return None


COMPARERS: dict[ResourceKind, PropertyComparer] = {
    ResourceKind.SERVER: compare_server,
    ResourceKind.SECURITY_GROUP: compare_security_group,
    ResourceKind.SECURITY_GROUP_RULE: compare_security_group_rule,
}


def normalize_security_groups(groups: Iterable[str]) -> list[str]:
    """Deduplicate and sort group names so comparison ignores order."""
    return sorted(set(groups))


def diff_lists(state: list[str], truth: list[str]) -> tuple[list[str], list[str]]:
    """Return (added, removed): items only in truth, items only in state."""
    state_set = set(state)
    truth_set = set(truth)
    added = [item for item in truth if item not in state_set]
    removed = [item for item in state if item not in truth_set]
    return added, removed


def _diff(res: Resource, status: DriftStatus, details: str) -> DiffResult:
    return DiffResult(
        resource_kind=res.kind,
        resource_name=res.name,
        resource_id=res.id,
        project_name=res.project_name,
        parent_group=res.parent_group if isinstance(res, SecurityGroupRule) else "",
        status=status,
        details=details,
    )


def _group_by_kind(resources: list[Resource]) -> dict[ResourceKind, list[Resource]]:
    grouped: dict[ResourceKind, list[Resource]] = defaultdict(list)
    for res in resources:
        grouped[res.kind].append(res)
    return grouped


def _index_by_id(resources: list[Resource], side: str) -> dict[str, Resource]:
    # Last write wins on duplicate IDs; log it so the overwrite is visible.
    indexed: dict[str, Resource] = {}
    for res in resources:
        if res.id in indexed:
            logger.warning(
                "Duplicate %s id %s in %s for project %s; keeping the last one",
                res.kind,
                res.id,
                side,
                res.project_name,
            )
        indexed[res.id] = res
    return indexed


def _name_change(old: str, new: str) -> str:
    return f"name: {old} -> {new}"


def _format_list(items: list[str]) -> str:
    return "[" + " ".join(items) + "]"
