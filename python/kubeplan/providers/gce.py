"""
Volume labels for GCE persistent disks.

GCE labels allow neither '.' nor '/', so keys use dashes and the cluster name
is made label-safe.
"""

from typing import List

from kubeplan.providers.base import VolumeTagStrategy, safe_cluster_name

LABEL_NAME_KUBERNETES_CLUSTER = "k8s-io-cluster-name"
LABEL_NAME_ETCD_CLUSTER_PREFIX = "k8s-io-etcd-"
LABEL_NAME_ROLE_PREFIX = "k8s-io-role-"


class GCEVolumeTagStrategy(VolumeTagStrategy):
    volume_provider = "gce"
    etcd_cluster_prefix = LABEL_NAME_ETCD_CLUSTER_PREFIX
    role_prefix = LABEL_NAME_ROLE_PREFIX

    def volume_tags(self, cluster_name: str, etcd_name: str) -> List[str]:
        return [
            f"{LABEL_NAME_KUBERNETES_CLUSTER}={safe_cluster_name(cluster_name)}",
            self.etcd_cluster_prefix + etcd_name,
            self.role_prefix + "master=master",
        ]
