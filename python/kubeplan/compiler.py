"""
kubeplan/compiler.py

Entry point for a compile pass: turns a ClusterSpec and its InstanceGroups
into a TaskRegistry holding the bastion access tasks and the etcd-manager
manifests, keypairs and backup-store records.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from kubeplan.builders import (
    BastionModelBuilder,
    ClusterSubnetResolver,
    EtcdManagerBuilder,
    ModelContext,
    SubnetResolver,
    TaskRegistry,
)
from kubeplan.models.cluster_spec import ClusterSpec, InstanceGroup
from kubeplan.models.settings import CompilerSettings
from kubeplan.utils.assets import AssetImageRemapper, ImageRemapper
from kubeplan.utils.templates import EmbeddedTemplateLoader, TemplateLoader

logger = logging.getLogger(__name__)


def compile_cluster(
    cluster: ClusterSpec,
    instance_groups: Sequence[InstanceGroup],
    settings: Optional[CompilerSettings] = None,
    *,
    subnet_resolver: Optional[SubnetResolver] = None,
    template_loader: Optional[TemplateLoader] = None,
    image_remapper: Optional[ImageRemapper] = None,
) -> TaskRegistry:
    """
    Run every builder against a fresh registry and return it.

    Builders run in a fixed order (bastion, then etcd-manager). The registry
    is only returned when all of them succeed; on error the exception
    propagates and the partially filled registry is dropped.

    Args:
        cluster: The cluster specification.
        instance_groups: Every instance group of the cluster.
        settings: Run-wide settings; defaults to CompilerSettings().
        subnet_resolver: Zone -> utility subnet resolver; defaults to
            ClusterSubnetResolver over `cluster.subnets`.
        template_loader: Manifest template source; defaults to the embedded templates.
        image_remapper: Image rewriter; defaults to AssetImageRemapper(settings.assets).

    Returns:
        TaskRegistry: The complete plan.

    Raises:
        ConfigurationError: If the cluster cannot be compiled as specified.
        DuplicateTaskError: If two builders disagree on a shared task.
        Any error raised by `subnet_resolver`, `template_loader` or
        `image_remapper`, unchanged.
    """
    settings = settings or CompilerSettings()
    context = ModelContext(cluster, instance_groups)

    registry = TaskRegistry()
    BastionModelBuilder(
        context,
        subnet_resolver or ClusterSubnetResolver(cluster),
        lifecycle=settings.lifecycle,
        security_lifecycle=settings.security_lifecycle,
    ).build(registry)
    EtcdManagerBuilder(
        context,
        settings,
        template_loader or EmbeddedTemplateLoader(),
        image_remapper or AssetImageRemapper(settings.assets),
    ).build(registry)

    logger.info("Compiled cluster %s: %d tasks", cluster.name, len(registry))
    return registry
