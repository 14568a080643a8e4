"""Shared fixtures: a small HA cluster on AWS with one bastion group."""

from typing import List

import pytest

from kubeplan.builders import ModelContext, TaskRegistry
from kubeplan.models.cluster_spec import (
    ClusterSpec,
    EtcdClusterSpec,
    InstanceGroup,
    load_instance_groups,
)
from kubeplan.models.settings import CompilerSettings

CLUSTER_YAML = """
name: ha.example.com
cloudProvider: aws
kubernetesVersion: v1.21.0
sshAccess:
- 0.0.0.0/0
subnets:
- name: us-east-1a
  zone: us-east-1a
  type: Private
- name: utility-us-east-1a
  zone: us-east-1a
  type: Utility
- name: us-east-1b
  zone: us-east-1b
  type: Private
etcdClusters:
- name: main
  version: 3.4.13
  etcdMembers:
  - name: a
    instanceGroup: master-us-east-1a
  - name: b
    instanceGroup: master-us-east-1a
  - name: c
    instanceGroup: master-us-east-1a
  backups:
    backupStore: s3://state-store/ha.example.com/backups/etcd/main
- name: events
  version: 3.4.13
  etcdMembers:
  - name: a
    instanceGroup: master-us-east-1a
  backups:
    backupStore: s3://state-store/ha.example.com/backups/etcd/events
"""

INSTANCE_GROUPS_YAML = """
name: master-us-east-1a
role: Master
subnets: [us-east-1a]
---
name: nodes
role: Node
subnets: [us-east-1a]
---
name: bastions
role: Bastion
subnets: [utility-us-east-1a]
"""


@pytest.fixture
def cluster() -> ClusterSpec:
    return ClusterSpec.from_yaml(CLUSTER_YAML)


@pytest.fixture
def instance_groups() -> List[InstanceGroup]:
    return load_instance_groups(INSTANCE_GROUPS_YAML)


@pytest.fixture
def settings() -> CompilerSettings:
    return CompilerSettings()


@pytest.fixture
def context(cluster: ClusterSpec, instance_groups: List[InstanceGroup]) -> ModelContext:
    return ModelContext(cluster, instance_groups)


@pytest.fixture
def registry() -> TaskRegistry:
    return TaskRegistry()


def with_etcd_clusters(cluster: ClusterSpec, *etcd_clusters: EtcdClusterSpec) -> ClusterSpec:
    """Copy of `cluster` with its etcd clusters replaced."""
    return cluster.model_copy(update={"etcd_clusters": list(etcd_clusters)})


def etcd_cluster(name: str, **kwargs) -> EtcdClusterSpec:
    """An etcd-manager cluster with a backup store and three members."""
    data = {
        "name": name,
        "version": "3.4.13",
        "etcdMembers": [{"name": m} for m in "abc"],
        "backups": {"backupStore": f"s3://state-store/ha.example.com/backups/etcd/{name}"},
    }
    data.update(kwargs)
    return EtcdClusterSpec.model_validate(data)
