"""
Volume tags for DigitalOcean block storage.

DigitalOcean does not support '.' in tags, and has no role tag; volumes are
matched on the cluster tag plus the index marker.
"""

from typing import List

from kubeplan.providers.base import VolumeTagStrategy, safe_cluster_name

TAG_KUBERNETES_CLUSTER_NAME_PREFIX = "KubernetesCluster"
TAG_KUBERNETES_CLUSTER_INDEX = "k8s-index"
TAG_NAME_ETCD_CLUSTER_PREFIX = "etcdCluster-"


class DigitalOceanVolumeTagStrategy(VolumeTagStrategy):
    volume_provider = "do"
    etcd_cluster_prefix = TAG_NAME_ETCD_CLUSTER_PREFIX

    def volume_tags(self, cluster_name: str, etcd_name: str) -> List[str]:
        return [
            f"{TAG_KUBERNETES_CLUSTER_NAME_PREFIX}={safe_cluster_name(cluster_name)}",
            TAG_KUBERNETES_CLUSTER_INDEX,
        ]
