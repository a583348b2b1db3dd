"""Extract resources from Terraform JSON state (``terraform show -json``)."""

import json
import logging
import math
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from osdrift.models import (
    Resource,
    RuleProperties,
    SecurityGroup,
    SecurityGroupProperties,
    SecurityGroupRule,
    Server,
    ServerProperties,
)

logger = logging.getLogger(__name__)

TF_COMPUTE_INSTANCE = "openstack_compute_instance_v2"
TF_SECURITY_GROUP = "openstack_networking_secgroup_v2"
TF_SECURITY_GROUP_RULE = "openstack_networking_secgroup_rule_v2"


def parse_state(source: str | IO[str]) -> dict[str, Any]:
    """Parse a Terraform JSON document from a string or text stream.

    Raises ValueError if the content is not valid JSON or not a JSON object.
    """
    data = json.loads(source) if isinstance(source, str) else json.load(source)
    if not isinstance(data, dict):
        raise ValueError(f"Terraform state must be a JSON object, got {type(data).__name__}")
    return data


def extract_state_resources(document: dict[str, Any], project_name: str) -> list[Resource]:
    """Flatten every recognized resource in the module tree, depth first.

    Raises ValueError if a module's ``resources`` or ``child_modules`` is not
    an array.
    """
    values = document.get("values")
    if not isinstance(values, dict):
        return []
    root = values.get("root_module")
    if not isinstance(root, dict):
        return []

    resources: list[Resource] = []
    for record in _walk_module(root):
        res = _extract_record(record, project_name)
        if res is not None:
            resources.append(res)
    return resources


def load_state_dir(path: Path, project_name: str) -> list[Resource]:
    """Load and merge every Terraform JSON file in a directory.

    Files that fail to read or parse are logged and skipped. An OSError from
    listing the directory itself propagates.
    """
    resources: list[Resource] = []
    for file_path in json_files(path):
        try:
            with file_path.open(encoding="utf-8") as fp:
                found = extract_state_resources(parse_state(fp), project_name)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to parse Terraform state %s: %s", file_path, exc)
            continue
        logger.debug("Loaded %d resources from %s", len(found), file_path)
        resources.extend(found)
    return resources


def json_files(path: Path) -> list[Path]:
    """Regular ``*.json`` files in a directory, sorted by name."""
    return sorted(
        entry
        for entry in path.iterdir()
        if entry.is_file() and entry.suffix.lower() == ".json"
    )


def json_array(container: dict[str, Any], key: str) -> list[Any]:
    """A structural array of the document; any other non-null type is malformed."""
    value = container.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a JSON array, got {type(value).__name__}")
    return value


def string_list(values: dict[str, Any], key: str) -> tuple[str, ...]:
    """String members of an array field; a non-array value counts as empty."""
    value = values.get(key)
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _walk_module(module: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for record in json_array(module, "resources"):
        if isinstance(record, dict):
            yield record
    for child in json_array(module, "child_modules"):
        if isinstance(child, dict):
            yield from _walk_module(child)


def _extract_record(record: dict[str, Any], project_name: str) -> Resource | None:
    values = record.get("values")
    if not isinstance(values, dict):
        return None

    tf_type = record.get("type")
    extractor = _EXTRACTORS.get(tf_type) if isinstance(tf_type, str) else None
    if extractor is None:
        return None

    if not _str(values, "id"):
        logger.debug("Skipping %s without id", record.get("address", record.get("type")))
        return None
    return extractor(values, project_name)


def _extract_server(values: dict[str, Any], project_name: str) -> Server:
    return Server(
        id=_str(values, "id"),
        name=_str(values, "name"),
        project_name=project_name,
        security_groups=string_list(values, "security_groups"),
        properties=ServerProperties(
            ip_address=_str(values, "access_ip_v4"),
            flavor_name=_str(values, "flavor_name"),
            flavor_id=_str(values, "flavor_id"),
            image_name=_str(values, "image_name"),
            power_state=_str(values, "power_state"),
            availability_zone=_str(values, "availability_zone"),
        ),
    )


def _extract_security_group(values: dict[str, Any], project_name: str) -> SecurityGroup:
    return SecurityGroup(
        id=_str(values, "id"),
        name=_str(values, "name"),
        project_name=project_name,
        properties=SecurityGroupProperties(description=_str(values, "description")),
    )


def _extract_security_group_rule(values: dict[str, Any], project_name: str) -> SecurityGroupRule:
    port_min = _int(values, "port_range_min")
    port_max = _int(values, "port_range_max")
    port_range = f"{port_min}:{port_max}" if port_min or port_max else ""

    return SecurityGroupRule(
        id=_str(values, "id"),
        project_name=project_name,
        parent_id=_str(values, "security_group_id"),
        properties=RuleProperties(
            direction=_str(values, "direction"),
            ethertype=_str(values, "ethertype"),
            protocol=_str(values, "protocol"),
            port_range=port_range,
            remote_ip_prefix=_str(values, "remote_ip_prefix"),
            remote_group_id=_str(values, "remote_group_id"),
        ),
    )


_EXTRACTORS = {
    TF_COMPUTE_INSTANCE: _extract_server,
    TF_SECURITY_GROUP: _extract_security_group,
    TF_SECURITY_GROUP_RULE: _extract_security_group_rule,
}


def _str(values: dict[str, Any], key: str) -> str:
    value = values.get(key)
    return value if isinstance(value, str) else ""


def _int(values: dict[str, Any], key: str) -> int:
    value = values.get(key)
    # bool is an int subclass but never a port number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)

