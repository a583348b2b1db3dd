"""Extract resources from cache export ("truth") files.

The export format has two generations. Current exports carry normalized field
names at the top level of each row; older exports put everything in a
``fields`` map keyed by the display column labels of the listing that produced
them. Both decoders run on every row and the top-level value wins per field,
so files of mixed vintage parse without any version detection.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from osdrift.models import (
    Resource,
    ResourceKind,
    RuleProperties,
    SecurityGroup,
    SecurityGroupRule,
    Server,
    ServerProperties,
)
from osdrift.state import json_array, json_files, string_list

logger = logging.getLogger(__name__)

NOT_APPLICABLE = "n/a"

PROJECT_ALIASES = ("Project Name", "project_name", "project")

# Order matters: the first non-empty alias wins.
LEGACY_ALIASES: dict[ResourceKind, dict[str, tuple[str, ...]]] = {
    ResourceKind.SERVER: {
        "id": ("Server ID", "server_id", "id"),
        "name": ("Server Name", "server_name", "name"),
        "project_name": PROJECT_ALIASES,
        "ip_address": ("IPv4 Address", "ipv4_address", "ip_address"),
    },
    ResourceKind.SECURITY_GROUP: {
        "id": ("ID", "id"),
        "name": ("Name", "name"),
        "project_name": PROJECT_ALIASES,
    },
    ResourceKind.SECURITY_GROUP_RULE: {
        "id": ("ID", "id"),
        "parent_id": ("Parent ID", "parent_id"),
        "parent_name": ("Parent Name", "parent_name", "Name"),
        "project_name": PROJECT_ALIASES,
    },
}


@dataclass(frozen=True)
class FilteringInfo:
    filtered_project_count: int
    matched_projects: tuple[str, ...]


@dataclass(frozen=True)
class TruthDocument:
    """A parsed cache export."""

    headers: tuple[str, ...]
    rows: tuple[dict[str, Any], ...]
    filtering: FilteringInfo | None = None


def parse_truth(source: str | IO[str]) -> TruthDocument:
    """Parse a cache export from a string or text stream.

    Raises ValueError if the content is not valid JSON, not a JSON object, or
    has a ``headers``, ``data`` or filtering block of the wrong shape.
    """
    data = json.loads(source) if isinstance(source, str) else json.load(source)
    if not isinstance(data, dict):
        raise ValueError(f"Truth export must be a JSON object, got {type(data).__name__}")

    filtering = None
    metadata = data.get("metadata")
    if isinstance(metadata, dict) and isinstance(metadata.get("filtering"), dict):
        raw = metadata["filtering"]
        count = raw.get("filtered_project_count") or 0
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(
                f"'filtered_project_count' must be an integer, got {type(count).__name__}"
            )
        filtering = FilteringInfo(
            filtered_project_count=count,
            matched_projects=string_list(raw, "matched_projects"),
        )

    return TruthDocument(
        headers=tuple(h for h in json_array(data, "headers") if isinstance(h, str)),
        rows=tuple(row for row in json_array(data, "data") if isinstance(row, dict)),
        filtering=filtering,
    )


def extract_truth_resources(document: TruthDocument, project_name: str) -> list[Resource]:
    """Convert export rows into resources.

    Rows tagged ``security-group`` or ``security-group-rule`` decode as such;
    untagged rows and rows tagged ``server`` decode as servers. Rows with any
    other tag, or without an ID, are dropped.
    """
    resources: list[Resource] = []
    for row in document.rows:
        kind = _classify(row)
        if kind is None:
            logger.debug("Skipping truth row with unrecognized type %r", row.get("type"))
            continue
        res = _build_resource(kind, _canonical_fields(row, kind), row, project_name)
        if res is not None:
            resources.append(res)
    return resources


def load_truth_dir(path: Path, project_name: str) -> list[Resource]:
    """Load and merge every cache export in a directory.

    Files that fail to read or parse are logged and skipped. An OSError from
    listing the directory itself propagates.
    """
    resources: list[Resource] = []
    for file_path in json_files(path):
        try:
            with file_path.open(encoding="utf-8") as fp:
                found = extract_truth_resources(parse_truth(fp), project_name)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to parse truth export %s: %s", file_path, exc)
            continue
        logger.debug("Loaded %d resources from %s", len(found), file_path)
        resources.extend(found)
    return resources


def _classify(row: dict[str, Any]) -> ResourceKind | None:
    tag = row.get("type") or ""
    if not isinstance(tag, str):
        return None
    if not tag:
        return ResourceKind.SERVER
    try:
        return ResourceKind(tag)
    except ValueError:
        return None


def _canonical_fields(row: dict[str, Any], kind: ResourceKind) -> dict[str, str]:
    aliases = LEGACY_ALIASES[kind]
    current = _decode_current(row, aliases)
    legacy = _decode_legacy(row.get("fields"), aliases)
    return {name: current.get(name) or legacy.get(name, "") for name in aliases}


def _decode_current(row: dict[str, Any], aliases: dict[str, tuple[str, ...]]) -> dict[str, str]:
    return {name: _clean(row.get(name)) for name in aliases}


def _decode_legacy(fields: Any, aliases: dict[str, tuple[str, ...]]) -> dict[str, str]:
    if not isinstance(fields, dict):
        return {}
    decoded = {}
    for name, keys in aliases.items():
        for key in keys:
            value = _clean(fields.get(key))
            if value:
                decoded[name] = value
                break
    return decoded


def _build_resource(
    kind: ResourceKind,
    fields: dict[str, str],
    row: dict[str, Any],
    project_name: str,
) -> Resource | None:
    if not fields["id"]:
        return None
    project = project_name or fields["project_name"]

    if kind == ResourceKind.SECURITY_GROUP:
        return SecurityGroup(id=fields["id"], name=fields["name"], project_name=project)

    if kind == ResourceKind.SECURITY_GROUP_RULE:
        rule_fields = row.get("rule_fields")
        properties = RuleProperties()
        if isinstance(rule_fields, dict):
            properties = RuleProperties(
                direction=_clean(rule_fields.get("direction")),
                protocol=_clean(rule_fields.get("protocol")),
                port_range=_clean(rule_fields.get("port_range")),
                remote_ip_prefix=_clean(rule_fields.get("remote_ip")),
            )
        return SecurityGroupRule(
            id=fields["id"],
            project_name=project,
            parent_id=fields["parent_id"],
            parent_name=fields["parent_name"],
            properties=properties,
        )

    return Server(
        id=fields["id"],
        name=fields["name"],
        project_name=project,
        security_groups=string_list(row, "security_groups"),
        properties=ServerProperties(ip_address=fields["ip_address"]),
    )


def _clean(value: Any) -> str:
    if not isinstance(value, str) or value == NOT_APPLICABLE:
        return ""
    return value
