"""
kubeplan/builders/context.py

ModelContext wraps the compiler input (cluster spec + instance groups) with
the derived lookups builders share: instance groups by role, per-role
security groups, subnet gathering and tag sets. ClusterSubnetResolver is the
bundled zone -> utility subnet resolver.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict

from kubeplan.errors import ConfigurationError, SubnetResolutionError
from kubeplan.models.cluster_spec import (
    ClusterSpec,
    ClusterSubnetSpec,
    EtcdClusterSpec,
    InstanceGroup,
    InstanceGroupRole,
    SubnetType,
)
from kubeplan.models.tasks import SecurityGroup
from kubeplan.utils import naming

_ROLE_DESCRIPTIONS: Dict[InstanceGroupRole, str] = {
    InstanceGroupRole.master: "Security group for masters",
    InstanceGroupRole.node: "Security group for nodes",
    InstanceGroupRole.bastion: "Security group for bastion",
}

_ROLE_REMOVE_EXTRA_RULES: Dict[InstanceGroupRole, List[str]] = {
    InstanceGroupRole.master: [
        "port=22",
        "port=443",
        "port=2380",
        "port=2381",
        "port=4001",
        "port=4002",
        "port=4789",
        "port=179",
    ],
    InstanceGroupRole.node: ["port=22"],
    InstanceGroupRole.bastion: ["port=22"],
}


class SecurityGroupInfo(BaseModel):
    """A role's security group, plus the suffix its rules are named with.

    Attributes:
        name: The group's logical name (override ID or default task name).
        suffix: '' for the role's default group, '-<id>' for an override.
        task: The SecurityGroup task. Its lifecycle is set by the builder that emits it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    suffix: str
    task: SecurityGroup


class SubnetResolver(Protocol):
    def resolve_utility_subnet(self, zone: str) -> str:
        """Return the task name of the utility subnet in `zone`."""
        ...


class ClusterSubnetResolver:
    """Resolves utility subnets from the subnets declared in the cluster spec."""

    def __init__(self, cluster: ClusterSpec) -> None:
        self.cluster = cluster

    def resolve_utility_subnet(self, zone: str) -> str:
        matches = [
            s
            for s in self.cluster.subnets
            if s.type == SubnetType.utility and s.zone == zone
        ]
        if len(matches) != 1:
            raise SubnetResolutionError(
                f"expected exactly one utility subnet in zone {zone!r}, found {len(matches)}",
                zone=zone,
            )
        return naming.utility_subnet_ref(matches[0].name, self.cluster.name)


class ModelContext:
    def __init__(
        self, cluster: ClusterSpec, instance_groups: Sequence[InstanceGroup]
    ) -> None:
        self.cluster = cluster
        self.instance_groups = sorted(instance_groups, key=lambda ig: ig.name)

    @property
    def cluster_name(self) -> str:
        return self.cluster.name

    @property
    def vpc_ref(self) -> str:
        return self.cluster.name

    @property
    def dns_zone_ref(self) -> str:
        return self.cluster.dns_zone or self.cluster.name

    def instance_groups_with_role(self, role: InstanceGroupRole) -> List[InstanceGroup]:
        return [ig for ig in self.instance_groups if ig.role == role]

    def cloud_tags(self, name: str, shared: bool = False) -> Dict[str, str]:
        return naming.cloud_tags(
            name,
            self.cluster_name,
            shared=shared,
            cloud_labels=self.cluster.cloud_labels,
        )

    def get_security_groups(self, role: InstanceGroupRole) -> List[SecurityGroupInfo]:
        """
        Security groups that instances of `role` belong to.

        Each distinct `security_group_override` among the role's instance groups
        yields a shared group, named '<id>-<Role>' and suffixed '-<id>'. The
        role's default group is included unless every group is overridden, so a
        role with no instance groups has no security groups at all.
        """
        default_name = naming.security_group_name(role, self.cluster_name)
        default_group = SecurityGroup(
            name=default_name,
            vpc=self.vpc_ref,
            description=_ROLE_DESCRIPTIONS[role],
            remove_extra_rules=_ROLE_REMOVE_EXTRA_RULES[role],
            tags=self.cloud_tags(default_name),
        )

        groups = self.instance_groups_with_role(role)
        override_ids = sorted(
            {ig.security_group_override for ig in groups if ig.security_group_override}
        )
        all_overridden = all(ig.security_group_override for ig in groups)

        # Shared groups are not ours to prune, so they get no remove_extra_rules.
        infos = [
            SecurityGroupInfo(
                name=sg_id,
                suffix=f"-{sg_id}",
                task=SecurityGroup(
                    name=f"{sg_id}-{role.value}",
                    vpc=self.vpc_ref,
                    description=_ROLE_DESCRIPTIONS[role],
                    id=sg_id,
                    shared=True,
                ),
            )
            for sg_id in override_ids
        ]
        if not all_overridden:
            infos.append(SecurityGroupInfo(name=default_name, suffix="", task=default_group))
        return infos

    def gather_subnets(self, ig: InstanceGroup) -> List[ClusterSubnetSpec]:
        """
        The cluster subnets an instance group names.

        Raises:
            ConfigurationError: If the group names a subnet the cluster lacks.
        """
        by_name = {s.name: s for s in self.cluster.subnets}
        missing = [name for name in ig.subnets if name not in by_name]
        if missing:
            raise ConfigurationError(
                f"InstanceGroup {ig.name!r} references unknown subnet(s): {', '.join(missing)}",
                field=f"instance_groups.{ig.name}.subnets",
            )
        return [by_name[name] for name in ig.subnets]

    def use_etcd_tls(self, etcd_cluster: Optional[EtcdClusterSpec] = None) -> bool:
        if etcd_cluster is not None and etcd_cluster.enable_etcd_tls is not None:
            return etcd_cluster.enable_etcd_tls
        return self.cluster.etcd_tls
