"""
kubeplan/utils/naming.py

Deterministic names and tags for cluster resources. Every function here is a
pure function of its arguments.
"""

from __future__ import annotations

import base64
from typing import Dict, Mapping, Optional

from kubeplan.models.cluster_spec import InstanceGroupRole

# Load balancer names are limited to 32 characters by the cloud API.
LB_NAME_MAX_LENGTH = 32
LB_NAME_HASH_LENGTH = 6

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193

_ROLE_GROUP_PREFIX: Dict[InstanceGroupRole, str] = {
    InstanceGroupRole.master: "masters",
    InstanceGroupRole.node: "nodes",
    InstanceGroupRole.bastion: "bastion",
}


def security_group_name(role: InstanceGroupRole, cluster_name: str) -> str:
    """Default security group for a role, e.g. 'masters.example.com'."""
    return f"{_ROLE_GROUP_PREFIX[role]}.{cluster_name}"


def elb_security_group_name(prefix: str, cluster_name: str) -> str:
    """Security group of a load balancer, e.g. 'bastion-elb.example.com'."""
    return f"{prefix}-elb.{cluster_name}"


def utility_subnet_ref(subnet_name: str, cluster_name: str) -> str:
    return f"{subnet_name}.{cluster_name}"


def default_bastion_public_name(cluster_name: str) -> str:
    return f"bastion-{cluster_name}"


def join_suffixes(src_suffix: str, dest_suffix: str) -> str:
    """
    Combine two security-group suffixes into a rule-name suffix.

    Empty when both groups are the default groups; otherwise a missing side
    is spelled '-default' so the pair stays unambiguous.
    """
    if not src_suffix and not dest_suffix:
        return ""
    return (src_suffix or "-default") + (dest_suffix or "-default")


def _fnv1a_32(data: bytes) -> bytes:
    h = _FNV32_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h.to_bytes(4, "big")


def lb_name32(prefix: str, cluster_name: str) -> str:
    """
    Load balancer name of at most 32 characters.

    The base is '<prefix>-<cluster name with dots as dashes>'. A short hash of
    the full base is always appended, truncating the base as needed, so a
    truncated name stays unique to its cluster.
    """
    base = f"{prefix}-{cluster_name.replace('.', '-')}"
    digest = base64.b32hexencode(_fnv1a_32(base.encode("utf-8"))).decode("ascii")
    hash_string = digest.lower()[:LB_NAME_HASH_LENGTH]
    max_base_length = LB_NAME_MAX_LENGTH - len(hash_string) - 1
    return f"{base[:max_base_length]}-{hash_string}"


def cloud_tags(
    name: str,
    cluster_name: str,
    *,
    shared: bool = False,
    cloud_labels: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Tags for a cluster-owned (or shared) cloud resource.

    Args:
        name: Value of the 'Name' tag.
        cluster_name: The owning cluster.
        shared: If True, the cluster tag is 'shared' instead of 'owned'.
        cloud_labels: Cluster-wide labels merged in last.
    """
    tags = {
        "KubernetesCluster": cluster_name,
        "Name": name,
        f"kubernetes.io/cluster/{cluster_name}": "shared" if shared else "owned",
    }
    tags.update(cloud_labels or {})
    return tags
