"""
kubeplan/builders/etcd_manager.py

EtcdManagerBuilder compiles every etcd-manager etcd cluster of the cluster
spec into:
  - the etcd-manager static pod manifest (manifests/etcd/<name>.yaml)
  - the etcd-cluster-spec record under the cluster's backup store
  - the CA keypairs etcd-manager, etcd peers and etcd clients trust

Clusters whose provider is not the etcd-manager agent are skipped.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from kubeplan.builders.context import ModelContext
from kubeplan.builders.registry import TaskRegistry
from kubeplan.errors import ConfigurationError, ManifestTemplateError
from kubeplan.models.cluster_spec import EtcdClusterSpec, EtcdProviderType
from kubeplan.models.etcd_manager import EtcdClusterSpecInfo, EtcdManagerConfig
from kubeplan.models.k8s import Container, EnvVar, Pod, ResourceRequirements
from kubeplan.models.settings import CompilerSettings
from kubeplan.models.tasks import Keypair, Lifecycle, ManagedFile
from kubeplan.models.validator import validate_type
from kubeplan.providers import get_volume_tag_strategy
from kubeplan.utils import kubemanifest
from kubeplan.utils.assets import ImageRemapper
from kubeplan.utils.env import build_system_component_env_vars, to_env_vars
from kubeplan.utils.flagbuilder import build_flags_list
from kubeplan.utils.templates import ETCD_MANAGER_TEMPLATE, TemplateLoader
from kubeplan.utils.versions import behavior_for
from kubeplan.utils.wellknownports import etcd_cluster_ports

logger = logging.getLogger(__name__)

DEFAULT_CPU_REQUEST = "200m"
DEFAULT_MEMORY_REQUEST = "100Mi"

CONTAINER_LOG_FILE = "/var/log/etcd.log"
PKI_VOLUME_NAME = "pki"
GOSSIP_DNS_SUFFIX = ".k8s.local"
SHARED_CLIENT_CA = "etcd-clients-ca"
CILIUM_CLUSTER = "cilium"


def is_gossip_hostname(name: str) -> bool:
    """Gossip clusters resolve names themselves; their names end in .k8s.local."""
    normalized = "." + name.rstrip(".")
    return normalized.endswith(GOSSIP_DNS_SUFFIX)


def _ca_keypair(name: str, lifecycle: Lifecycle) -> Keypair:
    return Keypair(
        name=name,
        lifecycle=lifecycle,
        subject=f"cn={name}",
        type="ca",
    )


class EtcdManagerBuilder:
    """Builds etcd-manager manifests and their supporting tasks.

    Attributes:
        context: The shared model context.
        settings: Run-wide settings (lifecycle, feature flags, log level).
        template_loader: Source of the etcd-manager pod template.
        image_remapper: Rewrites the container image before it is emitted.
    """

    def __init__(
        self,
        context: ModelContext,
        settings: CompilerSettings,
        template_loader: TemplateLoader,
        image_remapper: ImageRemapper,
    ) -> None:
        self.context = context
        self.settings = settings
        self.template_loader = template_loader
        self.image_remapper = image_remapper

    def build(self, registry: TaskRegistry) -> None:
        """
        Add etcd-manager tasks for every etcd-manager etcd cluster.

        Raises:
            ConfigurationError: On a missing backup store, unknown cluster name,
                unsupported provider or tuning knob, or a malformed template.
            DuplicateTaskError: If a shared task was registered with another shape.
        """
        for etcd_cluster in self.context.cluster.etcd_clusters:
            if etcd_cluster.provider != EtcdProviderType.manager:
                logger.debug("Skipping etcd cluster %s (provider %s)", etcd_cluster.name, etcd_cluster.provider.value)
                continue
            self._build_cluster(registry, etcd_cluster)

    def _build_cluster(self, registry: TaskRegistry, etcd_cluster: EtcdClusterSpec) -> None:
        name = etcd_cluster.name
        backup_store = etcd_cluster.backup_store
        if not backup_store:
            raise ConfigurationError(
                "backupStore must be set for use with etcd-manager",
                field=f"etcd_clusters.{name}.backups.backup_store",
            )

        pod = self.build_pod(etcd_cluster)
        logger.info("Compiled etcd-manager manifest for etcd cluster %s", name)

        registry.add(
            ManagedFile(
                name=f"manifests-etcdmanager-{name}",
                lifecycle=self.settings.lifecycle,
                location=f"manifests/etcd/{name}.yaml",
                contents=pod.to_yaml(),
            )
        )

        info = EtcdClusterSpecInfo(
            member_count=len(etcd_cluster.members) or None,
            etcd_version=etcd_cluster.version or None,
        )
        registry.add(
            ManagedFile(
                name=f"etcd-cluster-spec-{name}",
                lifecycle=self.settings.lifecycle,
                base=backup_store,
                location="control/etcd-cluster-spec",
                contents=info.to_json(),
            )
        )

        # CAs securing etcd-manager peers, and etcd peers
        registry.add(_ca_keypair(f"etcd-manager-ca-{name}", self.settings.lifecycle))
        registry.add(_ca_keypair(f"etcd-peers-ca-{name}", self.settings.lifecycle))

        # The API server has a single etcd client certificate, so every etcd
        # cluster trusts one shared client CA.
        registry.ensure(_ca_keypair(SHARED_CLIENT_CA, self.settings.lifecycle))

        if name == CILIUM_CLUSTER:
            registry.add(_ca_keypair(f"{SHARED_CLIENT_CA}-{CILIUM_CLUSTER}", self.settings.lifecycle))

    def _load_template(self) -> Pod:
        objects = self.template_loader.load_template(ETCD_MANAGER_TEMPLATE)
        if len(objects) != 1:
            raise ManifestTemplateError(
                f"expected exactly one object in manifest {ETCD_MANAGER_TEMPLATE}, found {len(objects)}"
            )
        kind = objects[0].get("kind")
        if kind != "Pod":
            raise ManifestTemplateError(
                f"expected Pod object in manifest {ETCD_MANAGER_TEMPLATE}, found {kind!r}"
            )
        pod = validate_type(objects[0], Pod)
        if len(pod.spec.containers) != 1:
            raise ManifestTemplateError(
                f"expected exactly one container in etcd-manager Pod, found {len(pod.spec.containers)}"
            )
        return pod

    def _dns_internal_suffix(self) -> str:
        # Must match the suffix running clusters were created with.
        master_internal_name = self.context.cluster.internal_master_name
        if is_gossip_hostname(master_internal_name):
            suffix = master_internal_name
            if suffix.startswith("api."):
                suffix = suffix[len("api."):]
            if suffix:
                return suffix
        return f".internal.{self.context.cluster_name}"

    def _check_unsupported_settings(self, etcd_cluster: EtcdClusterSpec) -> None:
        if etcd_cluster.leader_election_timeout is not None:
            raise ConfigurationError(
                "LeaderElectionTimeout not supported by etcd-manager",
                field=f"etcd_clusters.{etcd_cluster.name}.leader_election_timeout",
            )
        if etcd_cluster.heartbeat_interval is not None:
            raise ConfigurationError(
                "HeartbeatInterval not supported by etcd-manager",
                field=f"etcd_clusters.{etcd_cluster.name}.heartbeat_interval",
            )

    def build_config(self, etcd_cluster: EtcdClusterSpec) -> EtcdManagerConfig:
        """
        The etcd-manager flag configuration for one etcd cluster.

        Raises:
            UnknownEtcdClusterError: If the cluster name has no port allocation.
            UnsupportedProviderError: If the cloud has no volume tag strategy.
            ConfigurationError: If an unsupported tuning knob is set.
        """
        ctx = self.context
        name = etcd_cluster.name
        ports = etcd_cluster_ports(name)
        self._check_unsupported_settings(etcd_cluster)

        client_host = f"{name}.etcd.{ctx.cluster_name}" if self.settings.api_server_nodes else "__name__"
        use_tls = ctx.use_etcd_tls(etcd_cluster)
        scheme = "https" if use_tls else "http"

        log_level = self.settings.etcd_manager_log_level
        manager = etcd_cluster.manager
        if manager is not None and manager.log_level is not None:
            logger.warning("Overriding etcd-manager log level for %s: %d", name, manager.log_level)
            log_level = manager.log_level

        volume_tags = get_volume_tag_strategy(ctx.cluster.cloud_provider).tag_set(
            ctx.cluster_name, name
        )

        return EtcdManagerConfig(
            log_level=log_level,
            containerized=True,
            etcd_insecure=not use_tls,
            cluster_name=ports.cluster_name,
            backup_store=etcd_cluster.backup_store,
            grpc_port=ports.grpc_port,
            dns_suffix=self._dns_internal_suffix(),
            discovery_poll_interval=manager.discovery_poll_interval if manager else None,
            peer_urls=f"{scheme}://__name__:{ports.peer_port}",
            client_urls=f"{scheme}://{client_host}:{ports.client_port}",
            quarantine_client_urls=f"{scheme}://__name__:{ports.quarantined_client_port}",
            volume_provider=volume_tags.volume_provider,
            volume_tag=volume_tags.volume_tags,
            volume_name_tag=volume_tags.volume_name_tag,
        )

    def _container_env(self, etcd_cluster: EtcdClusterSpec) -> List[EnvVar]:
        env: Dict[str, str] = build_system_component_env_vars(self.context.cluster)
        overrides = etcd_cluster.manager.env if etcd_cluster.manager else []
        for var in overrides:
            logger.warning(
                "Overloading env var in etcd-manager manifest for %s with %s=%s",
                etcd_cluster.name,
                var.name,
                var.value,
            )
        base = to_env_vars({k: v for k, v in env.items() if k not in {o.name for o in overrides}})
        # Overrides keep their declared order; the last value of a repeated name wins.
        deduped = {var.name: var.model_copy() for var in overrides}
        return base + list(deduped.values())

    def _rewrite_pki_volume(self, pod: Pod, etcd_name: str) -> None:
        pki_volumes = [v for v in pod.spec.volumes if v.name == PKI_VOLUME_NAME]
        if not pki_volumes:
            raise ManifestTemplateError("did not find PKI volume")
        for volume in pki_volumes:
            if volume.host_path is None:
                raise ManifestTemplateError("PKI volume has no hostPath")
            volume.host_path.path = f"/etc/kubernetes/pki/etcd-manager-{etcd_name}"

    def build_pod(self, etcd_cluster: EtcdClusterSpec) -> Pod:
        """
        Build the etcd-manager pod for one etcd cluster from the template.

        Raises:
            ManifestTemplateError: If the template is not one Pod with one
                container, or lacks a hostPath PKI volume.
            ConfigurationError: See build_config.
        """
        ctx = self.context
        name = etcd_cluster.name
        pod = self._load_template()
        container: Container = pod.spec.containers[0]

        manager = etcd_cluster.manager
        if manager is not None and manager.image:
            logger.warning("Overloading etcd-manager image for %s with %s", name, manager.image)
            container.image = manager.image

        if behavior_for(ctx.cluster.kubernetes_version).share_host_etc_hosts:
            kubemanifest.map_etc_hosts(pod, container, read_only=False)

        container.image = self.image_remapper.remap_image(container.image)

        config = self.build_config(etcd_cluster)
        ports = etcd_cluster_ports(name)

        pod.metadata.name = f"etcd-manager-{name}"
        pod.metadata.labels["k8s-app"] = pod.metadata.name
        if self.settings.api_server_nodes:
            pod.metadata.annotations["dns.alpha.kubernetes.io/internal"] = (
                f"{name}.etcd.{ctx.cluster_name}"
            )

        container.command = kubemanifest.with_tee(
            "/etcd-manager", build_flags_list(config), CONTAINER_LOG_FILE
        )

        container.resources = ResourceRequirements(
            requests={
                "cpu": etcd_cluster.cpu_request or DEFAULT_CPU_REQUEST,
                "memory": etcd_cluster.memory_request or DEFAULT_MEMORY_REQUEST,
            }
        )

        kubemanifest.add_host_path_mapping(
            pod,
            container,
            "varlogetcd",
            f"/var/log/{ports.cluster_name}.log",
            mount_path=CONTAINER_LOG_FILE,
            host_path_type="FileOrCreate",
            read_only=False,
        )
        if ctx.cluster.use_host_certificates:
            kubemanifest.add_host_path_mapping(
                pod,
                container,
                "etc-ssl-certs",
                "/etc/ssl/certs",
                host_path_type="DirectoryOrCreate",
                read_only=True,
            )

        container.env = self._container_env(etcd_cluster)

        self._rewrite_pki_volume(pod, name)

        kubemanifest.mark_pod_as_critical(pod)
        kubemanifest.mark_pod_as_cluster_critical(pod)
        return pod
