"""Shared test fixtures."""

import json

import pytest

STATE_DOCUMENT = {
    "format_version": "1.0",
    "terraform_version": "1.5.7",
    "values": {
        "root_module": {
            "resources": [
                {
                    "address": "openstack_compute_instance_v2.web",
                    "mode": "managed",
                    "type": "openstack_compute_instance_v2",
                    "name": "web",
                    "provider_name": "registry.terraform.io/terraform-provider-openstack/openstack",
                    "values": {
                        "id": "srv-1",
                        "name": "web1",
                        "access_ip_v4": "10.0.0.1",
                        "flavor_name": "m6.medium",
                        "security_groups": ["default", "web"],
                    },
                },
                {
                    "address": "openstack_blockstorage_volume_v3.data",
                    "mode": "managed",
                    "type": "openstack_blockstorage_volume_v3",
                    "name": "data",
                    "values": {"id": "vol-1", "name": "data"},
                },
            ],
            "child_modules": [
                {
                    "address": "module.network",
                    "resources": [
                        {
                            "address": "module.network.openstack_networking_secgroup_v2.web",
                            "mode": "managed",
                            "type": "openstack_networking_secgroup_v2",
                            "name": "web",
                            "values": {"id": "sg-1", "name": "web", "description": "Web tier"},
                        },
                    ],
                    "child_modules": [
                        {
                            "address": "module.network.module.rules",
                            "resources": [
                                {
                                    "address": "module.network.module.rules."
                                    "openstack_networking_secgroup_rule_v2.https",
                                    "mode": "managed",
                                    "type": "openstack_networking_secgroup_rule_v2",
                                    "name": "https",
                                    "values": {
                                        "id": "rule-1",
                                        "security_group_id": "sg-1",
                                        "direction": "ingress",
                                        "ethertype": "IPv4",
                                        "protocol": "tcp",
                                        "port_range_min": 443,
                                        "port_range_max": 443,
                                        "remote_ip_prefix": "0.0.0.0/0",
                                        "remote_group_id": "",
                                    },
                                },
                            ],
                        }
                    ],
                }
            ],
        }
    },
}

TRUTH_DOCUMENT = {
    "metadata": {"filtering": {"filtered_project_count": 1, "matched_projects": ["alpha"]}},
    "headers": ["name", "id", "project_name", "ip_address"],
    "data": [
        {
            "type": "server",
            "id": "srv-1",
            "name": "web1",
            "project_name": "alpha",
            "ip_address": "10.0.0.1",
            "security_groups": ["web", "default"],
        },
        {"type": "security-group", "id": "sg-1", "name": "web", "project_name": "alpha"},
        {
            "type": "security-group-rule",
            "id": "rule-1",
            "parent_id": "sg-1",
            "parent_name": "web",
            "project_name": "alpha",
            "rule_fields": {
                "direction": "ingress",
                "protocol": "tcp",
                "port_range": "443",
                "remote_ip": "0.0.0.0/0",
            },
        },
    ],
}

LEGACY_TRUTH_DOCUMENT = {
    "headers": ["Project Name", "Server ID", "Server Name", "IPv4 Address"],
    "data": [
        {
            "fields": {
                "Project Name": "alpha",
                "Server ID": "srv-1",
                "Server Name": "web1",
                "IPv4 Address": "10.0.0.1",
            }
        }
    ],
}


@pytest.fixture
def write_json():
    """Write a JSON document to a path, creating parent directories."""

    def _write(path, document):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document))
        return path

    return _write


@pytest.fixture
def project_root(tmp_path, write_json):
    """A root with one project whose state and truth fully agree."""
    write_json(tmp_path / "alpha" / "state" / "main.json", STATE_DOCUMENT)
    write_json(tmp_path / "alpha" / "truth" / "all.json", TRUTH_DOCUMENT)
    return tmp_path
