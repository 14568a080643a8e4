"""
kubeplan/builders/bastion.py

BastionModelBuilder adds the tasks that give SSH access through bastions.

Bastion instances live in the utility subnets. All traffic goes through a
classic load balancer, whose security group is the only one open to the
cluster's SSH-access CIDRs. Bastions may in turn reach every master and node
security group on port 22.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from kubeplan.builders.context import ModelContext, SecurityGroupInfo, SubnetResolver
from kubeplan.builders.registry import TaskRegistry
from kubeplan.models.cluster_spec import InstanceGroupRole
from kubeplan.models.tasks import (
    ClassicLoadBalancer,
    ClassicLoadBalancerConnectionSettings,
    ClassicLoadBalancerHealthCheck,
    ClassicLoadBalancerListener,
    DNSName,
    Lifecycle,
    SecurityGroup,
    SecurityGroupRule,
)
from kubeplan.utils import naming

logger = logging.getLogger(__name__)

BASTION_ELB_SECURITY_GROUP_PREFIX = "bastion"
BASTION_ELB_DEFAULT_IDLE_TIMEOUT_SECONDS = 5 * 60

ANY_CIDR = "0.0.0.0/0"
SSH_PORT = 22


class BastionModelBuilder:
    """Emits bastion security groups, rules, the bastion load balancer and its DNS name.

    Attributes:
        context: The shared model context.
        subnet_resolver: Resolves one utility subnet per bastion zone.
        lifecycle: Lifecycle for the load balancer and DNS record.
        security_lifecycle: Lifecycle for security groups and rules.
    """

    def __init__(
        self,
        context: ModelContext,
        subnet_resolver: SubnetResolver,
        lifecycle: Lifecycle = Lifecycle.sync,
        security_lifecycle: Lifecycle = Lifecycle.sync,
    ) -> None:
        self.context = context
        self.subnet_resolver = subnet_resolver
        self.lifecycle = lifecycle
        self.security_lifecycle = security_lifecycle

    @property
    def elb_security_group_name(self) -> str:
        return naming.elb_security_group_name(
            BASTION_ELB_SECURITY_GROUP_PREFIX, self.context.cluster_name
        )

    def _add_rule(
        self,
        registry: TaskRegistry,
        name: str,
        security_group: SecurityGroup,
        *,
        source_group: Optional[str] = None,
        cidr: Optional[str] = None,
        ssh_only: bool = True,
        egress: bool = False,
    ) -> None:
        # Rules inherit their group's tags, renamed after the rule itself.
        tags = dict(security_group.tags)
        tags["Name"] = name
        rule = SecurityGroupRule(
            name=name,
            lifecycle=self.security_lifecycle,
            security_group=security_group.name,
            source_group=source_group,
            cidr=cidr,
            protocol="tcp" if ssh_only else None,
            from_port=SSH_PORT if ssh_only else None,
            to_port=SSH_PORT if ssh_only else None,
            egress=egress,
            tags=tags,
        )
        logger.debug("Adding rule %s", name)
        registry.add(rule)

    def _with_lifecycle(self, info: SecurityGroupInfo) -> SecurityGroup:
        return info.task.model_copy(update={"lifecycle": self.security_lifecycle})

    def build(self, registry: TaskRegistry) -> None:
        """
        Add bastion tasks to `registry`. Does nothing when the cluster has no
        bastion instance groups. The DNS record is only emitted when a public
        bastion name is configured.

        Raises:
            ConfigurationError: If a bastion group names an unknown subnet.
            Any error raised by the subnet resolver, unchanged.
        """
        ctx = self.context
        bastion_instance_groups = ctx.instance_groups_with_role(InstanceGroupRole.bastion)
        if not bastion_instance_groups:
            return

        bastion_infos = ctx.get_security_groups(InstanceGroupRole.bastion)
        bastion_groups = [self._with_lifecycle(info) for info in bastion_infos]
        bastion_suffixes = [info.suffix for info in bastion_infos]
        master_infos = ctx.get_security_groups(InstanceGroupRole.master)
        node_infos = ctx.get_security_groups(InstanceGroupRole.node)

        for group in bastion_groups:
            registry.add(group)

        elb_group = SecurityGroup(
            name=self.elb_security_group_name,
            lifecycle=self.security_lifecycle,
            vpc=ctx.vpc_ref,
            description="Security group for bastion ELB",
            remove_extra_rules=[f"port={SSH_PORT}"],
            tags=ctx.cloud_tags(self.elb_security_group_name),
        )

        # Bastions may egress freely
        for group, suffix in zip(bastion_groups, bastion_suffixes):
            self._add_rule(
                registry,
                "bastion-egress" + suffix,
                group,
                cidr=ANY_CIDR,
                ssh_only=False,
                egress=True,
            )

        # SSH reaches bastions only through the load balancer
        for group, suffix in zip(bastion_groups, bastion_suffixes):
            self._add_rule(
                registry,
                "ssh-elb-to-bastion" + suffix,
                group,
                source_group=elb_group.name,
            )

        # Bastions may SSH to every master and node group
        for src, src_suffix in zip(bastion_groups, bastion_suffixes):
            for dest in master_infos:
                self._add_rule(
                    registry,
                    "bastion-to-master-ssh" + naming.join_suffixes(src_suffix, dest.suffix),
                    self._with_lifecycle(dest),
                    source_group=src.name,
                )
            for dest in node_infos:
                self._add_rule(
                    registry,
                    "bastion-to-node-ssh" + naming.join_suffixes(src_suffix, dest.suffix),
                    self._with_lifecycle(dest),
                    source_group=src.name,
                )

        registry.add(elb_group)

        self._add_rule(
            registry,
            "bastion-elb-egress",
            elb_group,
            cidr=ANY_CIDR,
            ssh_only=False,
            egress=True,
        )

        for cidr in ctx.cluster.ssh_access:
            self._add_rule(
                registry,
                "ssh-external-to-bastion-elb-" + cidr,
                elb_group,
                cidr=cidr,
            )

        elb = self._build_load_balancer(registry, elb_group)
        registry.add(elb)

        bastion = ctx.cluster.bastion
        if bastion is not None and bastion.bastion_public_name:
            registry.add(
                DNSName(
                    name=bastion.bastion_public_name,
                    lifecycle=self.lifecycle,
                    zone=ctx.dns_zone_ref,
                    resource_type="A",
                    target_load_balancer=elb.name,
                )
            )

    def _bastion_zones(self) -> List[str]:
        ctx = self.context
        zones = {
            zone
            for ig in ctx.instance_groups_with_role(InstanceGroupRole.bastion)
            for zone in [s.zone for s in ctx.gather_subnets(ig)] + list(ig.zones)
        }
        return sorted(zones)

    def _build_load_balancer(
        self, registry: TaskRegistry, elb_group: SecurityGroup
    ) -> ClassicLoadBalancer:
        ctx = self.context
        cluster_name = ctx.cluster_name
        bastion = ctx.cluster.bastion

        subnets = [
            self.subnet_resolver.resolve_utility_subnet(zone)
            for zone in self._bastion_zones()
        ]

        idle_timeout = BASTION_ELB_DEFAULT_IDLE_TIMEOUT_SECONDS
        if bastion is not None and bastion.idle_timeout_seconds is not None:
            idle_timeout = bastion.idle_timeout_seconds

        load_balancer_name = naming.lb_name32("bastion", cluster_name)
        elb_name = f"bastion.{cluster_name}"
        tags = ctx.cloud_tags(load_balancer_name)
        tags["Name"] = elb_name

        security_groups = [elb_group.name]
        additional = (
            bastion.load_balancer.additional_security_groups
            if bastion is not None and bastion.load_balancer is not None
            else []
        )
        for sg_id in additional:
            shared = registry.ensure(
                SecurityGroup(
                    name=sg_id,
                    lifecycle=self.security_lifecycle,
                    id=sg_id,
                    shared=True,
                )
            )
            security_groups.append(shared.name)

        return ClassicLoadBalancer(
            name=elb_name,
            lifecycle=self.lifecycle,
            load_balancer_name=load_balancer_name,
            security_groups=security_groups,
            subnets=subnets,
            listeners={str(SSH_PORT): ClassicLoadBalancerListener(instance_port=SSH_PORT)},
            health_check=ClassicLoadBalancerHealthCheck(
                target=f"TCP:{SSH_PORT}",
                timeout=5,
                interval=10,
                healthy_threshold=2,
                unhealthy_threshold=2,
            ),
            connection_settings=ClassicLoadBalancerConnectionSettings(
                idle_timeout=idle_timeout
            ),
            tags=tags,
        )
