"""
kubeplan/providers/base.py

The VolumeTagStrategy interface: how an etcd-manager agent on a given cloud
finds the persistent volume that belongs to its etcd cluster.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict


class CloudProviderID(str, Enum):
    aws = "aws"
    alicloud = "alicloud"
    azure = "azure"
    gce = "gce"
    digitalocean = "digitalocean"
    openstack = "openstack"


class VolumeTagSet(BaseModel):
    """The volume discovery settings handed to etcd-manager.

    Attributes:
        volume_provider: Value of --volume-provider.
        volume_tags: Values of the repeated --volume-tag flag; a volume must
            carry all of them.
        volume_name_tag: Value of --volume-name-tag, the tag whose value names
            the etcd member.
    """

    model_config = ConfigDict(frozen=True)

    volume_provider: str
    volume_tags: List[str]
    volume_name_tag: str


class VolumeTagStrategy(ABC):
    """Per-provider volume tagging scheme.

    Subclasses set the tag key prefixes their cloud uses and build the tag list.
    """

    volume_provider: str
    etcd_cluster_prefix: str
    role_prefix: str = ""

    def volume_name_tag(self, etcd_name: str) -> str:
        return self.etcd_cluster_prefix + etcd_name

    @abstractmethod
    def volume_tags(self, cluster_name: str, etcd_name: str) -> List[str]:
        """Tags identifying the volumes of `etcd_name` in `cluster_name`."""

    def tag_set(self, cluster_name: str, etcd_name: str) -> VolumeTagSet:
        return VolumeTagSet(
            volume_provider=self.volume_provider,
            volume_tags=self.volume_tags(cluster_name, etcd_name),
            volume_name_tag=self.volume_name_tag(etcd_name),
        )


def safe_cluster_name(cluster_name: str) -> str:
    """Cluster name usable where '.' is not allowed in tag or label values."""
    return cluster_name.replace(".", "-")
