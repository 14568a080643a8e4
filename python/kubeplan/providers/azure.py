"""
Volume tags for Azure managed disks.

Azure does not allow '/' in tag keys, so '_' is used where other clouds use '/'.
"""

from typing import List

from kubeplan.providers.base import VolumeTagStrategy

TAG_NAME_ETCD_CLUSTER_PREFIX = "k8s.io_etcd_"
TAG_NAME_ROLE_PREFIX = "k8s.io_role_"


class AzureVolumeTagStrategy(VolumeTagStrategy):
    volume_provider = "azure"
    etcd_cluster_prefix = TAG_NAME_ETCD_CLUSTER_PREFIX
    role_prefix = TAG_NAME_ROLE_PREFIX

    def volume_tags(self, cluster_name: str, etcd_name: str) -> List[str]:
        return [
            f"kubernetes.io_cluster_{cluster_name}=owned",
            self.etcd_cluster_prefix + etcd_name,
            self.role_prefix + "master=1",
        ]
