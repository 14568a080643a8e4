"""
kubeplan.builders

Unified aggregator import for:
- TaskRegistry
- ModelContext, SecurityGroupInfo and the subnet resolvers
- BastionModelBuilder and EtcdManagerBuilder
"""

from kubeplan.builders.registry import TaskRegistry
from kubeplan.builders.context import (
    ClusterSubnetResolver,
    ModelContext,
    SecurityGroupInfo,
    SubnetResolver,
)
from kubeplan.builders.bastion import BastionModelBuilder
from kubeplan.builders.etcd_manager import EtcdManagerBuilder

__all__ = [
    "TaskRegistry",
    "ClusterSubnetResolver",
    "ModelContext",
    "SecurityGroupInfo",
    "SubnetResolver",
    "BastionModelBuilder",
    "EtcdManagerBuilder",
]
