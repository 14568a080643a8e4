"""Volume tags for Alibaba Cloud disks; same key scheme as AWS."""

from typing import List

from kubeplan.providers.base import VolumeTagStrategy

TAG_NAME_ETCD_CLUSTER_PREFIX = "k8s.io/etcd/"
TAG_NAME_ROLE_PREFIX = "k8s.io/role/"


class AlicloudVolumeTagStrategy(VolumeTagStrategy):
    volume_provider = "alicloud"
    etcd_cluster_prefix = TAG_NAME_ETCD_CLUSTER_PREFIX
    role_prefix = TAG_NAME_ROLE_PREFIX

    def volume_tags(self, cluster_name: str, etcd_name: str) -> List[str]:
        return [
            f"kubernetes.io/cluster/{cluster_name}=owned",
            self.etcd_cluster_prefix + etcd_name,
            self.role_prefix + "master=1",
        ]
