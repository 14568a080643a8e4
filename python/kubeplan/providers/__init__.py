"""
kubeplan.providers

Unified aggregator import for:
- CloudProviderID
- The per-provider VolumeTagStrategy implementations
- VOLUME_TAG_STRATEGIES, the closed provider -> strategy table
"""

from typing import Dict

from kubeplan.errors import UnsupportedProviderError
from kubeplan.providers.base import (
    CloudProviderID,
    VolumeTagSet,
    VolumeTagStrategy,
    safe_cluster_name,
)
from kubeplan.providers.alicloud import AlicloudVolumeTagStrategy
from kubeplan.providers.aws import AWSVolumeTagStrategy
from kubeplan.providers.azure import AzureVolumeTagStrategy
from kubeplan.providers.digitalocean import DigitalOceanVolumeTagStrategy
from kubeplan.providers.gce import GCEVolumeTagStrategy
from kubeplan.providers.openstack import OpenstackVolumeTagStrategy

VOLUME_TAG_STRATEGIES: Dict[CloudProviderID, VolumeTagStrategy] = {
    CloudProviderID.aws: AWSVolumeTagStrategy(),
    CloudProviderID.alicloud: AlicloudVolumeTagStrategy(),
    CloudProviderID.azure: AzureVolumeTagStrategy(),
    CloudProviderID.gce: GCEVolumeTagStrategy(),
    CloudProviderID.digitalocean: DigitalOceanVolumeTagStrategy(),
    CloudProviderID.openstack: OpenstackVolumeTagStrategy(),
}


def get_volume_tag_strategy(provider: str) -> VolumeTagStrategy:
    """
    Look up the volume tag strategy for a cloud provider identifier.

    Raises:
        UnsupportedProviderError: If the provider is not in the table.
    """
    try:
        return VOLUME_TAG_STRATEGIES[CloudProviderID(provider)]
    except ValueError:
        raise UnsupportedProviderError(provider) from None


__all__ = [
    "CloudProviderID",
    "VolumeTagSet",
    "VolumeTagStrategy",
    "safe_cluster_name",
    "AWSVolumeTagStrategy",
    "AlicloudVolumeTagStrategy",
    "AzureVolumeTagStrategy",
    "GCEVolumeTagStrategy",
    "DigitalOceanVolumeTagStrategy",
    "OpenstackVolumeTagStrategy",
    "VOLUME_TAG_STRATEGIES",
    "get_volume_tag_strategy",
]
