"""Volume tags for OpenStack Cinder volumes."""

from typing import List

from kubeplan.providers.base import VolumeTagStrategy

TAG_NAME_ETCD_CLUSTER_PREFIX = "k8s.io/etcd/"
TAG_NAME_ROLE_PREFIX = "k8s.io/role/"
TAG_CLUSTER_NAME = "KubernetesCluster"


class OpenstackVolumeTagStrategy(VolumeTagStrategy):
    volume_provider = "openstack"
    etcd_cluster_prefix = TAG_NAME_ETCD_CLUSTER_PREFIX
    role_prefix = TAG_NAME_ROLE_PREFIX

    def volume_tags(self, cluster_name: str, etcd_name: str) -> List[str]:
        return [
            self.etcd_cluster_prefix + etcd_name,
            self.role_prefix + "master=1",
            f"{TAG_CLUSTER_NAME}={cluster_name}",
        ]
