"""Core data models for OpenStack drift detection."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar


class ResourceKind(StrEnum):
    """Kind of OpenStack resource tracked for drift."""

    SERVER = "server"
    SECURITY_GROUP = "security-group"
    SECURITY_GROUP_RULE = "security-group-rule"


class DriftStatus(StrEnum):
    """Classification of a single drift item."""

    MISSING_IN_TRUTH = "missing_in_truth"
    MISSING_IN_STATE = "missing_in_state"
    NAME_CHANGED = "name_changed"
    SECGROUPS_CHANGED = "secgroups_changed"
    RULE_CHANGED = "rule_changed"


@dataclass(frozen=True)
class ServerProperties:
    """Auxiliary server attributes. Not used for matching."""

    ip_address: str = ""
    flavor_name: str = ""
    flavor_id: str = ""
    image_name: str = ""
    power_state: str = ""
    availability_zone: str = ""


@dataclass(frozen=True)
class SecurityGroupProperties:
    description: str = ""


@dataclass(frozen=True)
class RuleProperties:
    """Security group rule attributes. Not used for matching."""

    direction: str = ""
    ethertype: str = ""
    protocol: str = ""
    port_range: str = ""
    remote_ip_prefix: str = ""
    remote_group_id: str = ""


@dataclass(frozen=True)
class Server:
    """A compute instance."""

    id: str
    name: str
    project_name: str
    security_groups: tuple[str, ...] = ()
    properties: ServerProperties = field(default_factory=ServerProperties)

    kind: ClassVar[ResourceKind] = ResourceKind.SERVER


@dataclass(frozen=True)
class SecurityGroup:
    """A networking security group."""

    id: str
    name: str
    project_name: str
    properties: SecurityGroupProperties = field(default_factory=SecurityGroupProperties)

    kind: ClassVar[ResourceKind] = ResourceKind.SECURITY_GROUP


@dataclass(frozen=True)
class SecurityGroupRule:
    """A rule owned by a security group. Rules carry no name of their own."""

    id: str
    project_name: str
    parent_id: str = ""
    parent_name: str = ""
    properties: RuleProperties = field(default_factory=RuleProperties)
    name: str = ""

    kind: ClassVar[ResourceKind] = ResourceKind.SECURITY_GROUP_RULE

    @property
    def parent_group(self) -> str:
        """Owning group label, preferring the name over the ID."""
        return self.parent_name or self.parent_id


Resource = Server | SecurityGroup | SecurityGroupRule


@dataclass(frozen=True)
class DiffResult:
    """A single drift item between declared state and observed truth."""

    resource_kind: ResourceKind
    resource_name: str
    resource_id: str
    project_name: str
    status: DriftStatus
    details: str
    parent_group: str = ""


@dataclass(frozen=True)
class ResourceCounts:
    """Resource counts by kind for one side of a comparison."""

    servers: int = 0
    security_groups: int = 0
    security_group_rules: int = 0

    @classmethod
    def of(cls, resources: list[Resource]) -> "ResourceCounts":
        servers = security_groups = rules = 0
        for res in resources:
            if res.kind == ResourceKind.SERVER:
                servers += 1
            elif res.kind == ResourceKind.SECURITY_GROUP:
                security_groups += 1
            elif res.kind == ResourceKind.SECURITY_GROUP_RULE:
                rules += 1
        return cls(servers=servers, security_groups=security_groups, security_group_rules=rules)


@dataclass(frozen=True)
class ProjectDrift:
    """Drift results for a single project."""

    project_name: str
    drifts: tuple[DiffResult, ...]
    state_count: ResourceCounts
    truth_count: ResourceCounts
