"""
kubeplan/utils/assets.py

Container image remapping. The compiler only depends on the ImageRemapper
protocol; AssetImageRemapper is the bundled implementation driven by
`CompilerSettings.assets`.
"""

from __future__ import annotations

import logging
from typing import Protocol

from kubeplan.models.settings import AssetLocation

logger = logging.getLogger(__name__)

_KUBERNETES_REGISTRY_PREFIX = "k8s.gcr.io/"


class ImageRemapper(Protocol):
    def remap_image(self, image: str) -> str:
        """Return the image reference to use in place of `image`."""
        ...


def _normalize_docker_hub(image: str) -> str:
    """'nginx' -> 'docker.io/library/nginx', 'kopeio/x' -> 'docker.io/kopeio/x'."""
    first = image.split("/", 1)[0]
    if "/" in image and any(c in first for c in ".:"):
        return image
    if "/" not in image:
        return f"docker.io/library/{image}"
    return f"docker.io/{image}"


class AssetImageRemapper:
    """Rewrites image references to a registry mirror or a pull-through proxy.

    Attributes:
        location: The configured asset location; with neither field set every
            image is returned unchanged.
    """

    def __init__(self, location: AssetLocation) -> None:
        self.location = location

    def remap_image(self, image: str) -> str:
        remapped = image

        if self.location.container_proxy:
            proxy = self.location.container_proxy.rstrip("/")
            normalized = _normalize_docker_hub(remapped)
            remapped = f"{proxy}/{normalized.split('/', 1)[1]}"

        if self.location.container_registry:
            mirror = self.location.container_registry
            normalized = remapped
            if normalized.startswith(_KUBERNETES_REGISTRY_PREFIX):
                normalized = normalized[len(_KUBERNETES_REGISTRY_PREFIX):]
            # Already remapped images are left alone so repeated passes converge.
            if not normalized.startswith(mirror + "/"):
                normalized = f"{mirror}/{normalized.replace('/', '-')}"
            remapped = normalized

        if remapped != image:
            logger.debug("Remapped image %s => %s", image, remapped)
        return remapped
