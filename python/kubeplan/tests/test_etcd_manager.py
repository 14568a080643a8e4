"""Tests for EtcdManagerBuilder: manifests, flags, keypairs and failure modes."""

import json
import logging
from typing import Dict, Optional

import pytest
import yaml

from conftest import etcd_cluster, with_etcd_clusters
from kubeplan.builders import EtcdManagerBuilder, ModelContext, TaskRegistry
from kubeplan.errors import (
    ConfigurationError,
    ManifestTemplateError,
    UnknownEtcdClusterError,
    UnsupportedProviderError,
)
from kubeplan.models.cluster_spec import ClusterSpec, EgressProxySpec, HTTPProxy
from kubeplan.models.k8s import Pod
from kubeplan.models.settings import AssetLocation, CompilerSettings
from kubeplan.models.tasks import Keypair, ManagedFile
from kubeplan.utils.assets import AssetImageRemapper
from kubeplan.utils.flagbuilder import build_flags_list
from kubeplan.utils.templates import (
    DEFAULT_ETCD_MANAGER_MANIFEST,
    ETCD_MANAGER_TEMPLATE,
    EmbeddedTemplateLoader,
)


def _builder(
    cluster: ClusterSpec,
    settings: Optional[CompilerSettings] = None,
    templates: Optional[Dict[str, str]] = None,
) -> EtcdManagerBuilder:
    settings = settings or CompilerSettings()
    return EtcdManagerBuilder(
        ModelContext(cluster, []),
        settings,
        EmbeddedTemplateLoader(templates),
        AssetImageRemapper(settings.assets),
    )


def _build(cluster: ClusterSpec, **kwargs) -> TaskRegistry:
    registry = TaskRegistry()
    _builder(cluster, **kwargs).build(registry)
    return registry


def _volume_paths(pod: Pod) -> Dict[str, str]:
    return {v.name: v.host_path.path for v in pod.spec.volumes if v.host_path is not None}


def _with_pod_edit(edit) -> Dict[str, str]:
    """Template override built by applying `edit` to the default manifest."""
    manifest = yaml.safe_load(DEFAULT_ETCD_MANAGER_MANIFEST)
    edit(manifest)
    return {ETCD_MANAGER_TEMPLATE: yaml.safe_dump(manifest)}


class TestEtcdManagerConfig:
    """Flag configuration per etcd cluster."""

    def test_main_on_aws(self, cluster):
        config = _builder(cluster).build_config(etcd_cluster("main"))
        assert config.peer_urls == "https://__name__:2380"
        assert config.client_urls == "https://__name__:4001"
        assert config.quarantine_client_urls == "https://__name__:3994"
        assert config.grpc_port == 3996
        assert config.cluster_name == "etcd"
        assert config.backup_store == "s3://state-store/ha.example.com/backups/etcd/main"
        assert config.volume_provider == "aws"
        assert "kubernetes.io/cluster/ha.example.com=owned" in config.volume_tag
        assert "k8s.io/etcd/main" in config.volume_tag
        assert config.volume_name_tag == "k8s.io/etcd/main"
        assert config.etcd_insecure is False
        assert config.dns_suffix == ".internal.ha.example.com"
        assert config.log_level == 6

    def test_events_ports(self, cluster):
        config = _builder(cluster).build_config(etcd_cluster("events"))
        assert config.client_urls == "https://__name__:4002"
        assert config.peer_urls == "https://__name__:2381"
        assert config.grpc_port == 3997
        assert config.quarantine_client_urls == "https://__name__:3995"
        assert config.cluster_name == "etcd-events"

    def test_cilium_ports(self, cluster):
        config = _builder(cluster).build_config(etcd_cluster("cilium"))
        assert config.client_urls == "https://__name__:4003"
        assert config.peer_urls == "https://__name__:2382"
        assert config.grpc_port == 3991

    def test_tls_disabled_cluster_wide(self, cluster):
        cluster = cluster.model_copy(update={"etcd_tls": False})
        config = _builder(cluster).build_config(etcd_cluster("main"))
        assert config.client_urls == "http://__name__:4001"
        assert config.peer_urls == "http://__name__:2380"
        assert "--etcd-insecure=true" in build_flags_list(config)

    def test_tls_disabled_per_cluster(self, cluster):
        config = _builder(cluster).build_config(etcd_cluster("events", enableEtcdTLS=False))
        assert config.client_urls.startswith("http://")
        assert config.etcd_insecure is True

    def test_api_server_nodes(self, cluster):
        settings = CompilerSettings(api_server_nodes=True)
        config = _builder(cluster, settings=settings).build_config(etcd_cluster("main"))
        assert config.client_urls == "https://main.etcd.ha.example.com:4001"
        assert config.peer_urls == "https://__name__:2380"

    def test_gossip_dns_suffix(self, cluster):
        gossip = cluster.model_copy(update={"name": "ha.k8s.local"})
        config = _builder(gossip).build_config(etcd_cluster("main"))
        assert config.dns_suffix == "internal.ha.k8s.local"

    def test_log_level_and_poll_interval_overrides(self, cluster, caplog):
        spec = etcd_cluster("main", manager={"logLevel": 3, "discoveryPollInterval": "30s"})
        with caplog.at_level(logging.WARNING, logger="kubeplan.builders.etcd_manager"):
            flags = build_flags_list(_builder(cluster).build_config(spec))
        assert "--v=3" in flags
        assert "--discovery-poll-interval=30s" in flags
        assert "Overriding etcd-manager log level" in caplog.text

    @pytest.mark.parametrize("field", ["leaderElectionTimeout", "heartbeatInterval"])
    def test_unsupported_timeouts(self, cluster, field):
        with pytest.raises(ConfigurationError) as exc_info:
            _builder(cluster).build_config(etcd_cluster("main", **{field: "1000ms"}))
        assert "not supported by etcd-manager" in str(exc_info.value)

    def test_unknown_cluster_name(self, cluster):
        with pytest.raises(UnknownEtcdClusterError) as exc_info:
            _builder(cluster).build_config(etcd_cluster("extra"))
        assert exc_info.value.name == "extra"

    def test_unsupported_provider(self, cluster):
        cluster = cluster.model_copy(update={"cloud_provider": "vsphere"})
        with pytest.raises(UnsupportedProviderError):
            _builder(cluster).build_config(etcd_cluster("main"))

    def test_flags_sorted(self, cluster):
        flags = build_flags_list(_builder(cluster).build_config(etcd_cluster("main")))
        assert flags == sorted(flags)
        assert flags[0] == "--backup-store=s3://state-store/ha.example.com/backups/etcd/main"


class TestEtcdManagerPod:
    """The etcd-manager pod built from the template."""

    def test_identity_and_criticality(self, cluster):
        pod = _builder(cluster).build_pod(etcd_cluster("main"))
        assert pod.metadata.name == "etcd-manager-main"
        assert pod.metadata.namespace == "kube-system"
        assert pod.metadata.labels == {"k8s-app": "etcd-manager-main"}
        assert pod.metadata.annotations == {"scheduler.alpha.kubernetes.io/critical-pod": ""}
        assert pod.spec.priority_class_name == "system-cluster-critical"

    def test_command_tees_to_log_file(self, cluster):
        container = _builder(cluster).build_pod(etcd_cluster("main")).spec.containers[0]
        assert container.command[:2] == ["/bin/sh", "-c"]
        script = container.command[2]
        assert script.startswith("mkfifo /tmp/pipe; (tee -a /var/log/etcd.log < /tmp/pipe & ) ; exec /etcd-manager ")
        assert "--containerized=true" in script
        assert script.endswith("> /tmp/pipe 2>&1")

    def test_resources(self, cluster):
        pod = _builder(cluster).build_pod(etcd_cluster("main"))
        assert pod.spec.containers[0].resources.requests == {"cpu": "200m", "memory": "100Mi"}
        pod = _builder(cluster).build_pod(etcd_cluster("main", cpuRequest="500m", memoryRequest="1Gi"))
        assert pod.spec.containers[0].resources.requests == {"cpu": "500m", "memory": "1Gi"}

    def test_volumes(self, cluster):
        pod = _builder(cluster).build_pod(etcd_cluster("events"))
        paths = _volume_paths(pod)
        assert paths["varlogetcd"] == "/var/log/etcd-events.log"
        assert paths["pki"] == "/etc/kubernetes/pki/etcd-manager-events"
        assert "hosts" not in paths
        assert "etc-ssl-certs" not in paths
        mounts = {m.name: m for m in pod.spec.containers[0].volume_mounts}
        assert mounts["varlogetcd"].mount_path == "/var/log/etcd.log"

    def test_host_certificates(self, cluster):
        cluster = cluster.model_copy(update={"use_host_certificates": True})
        pod = _builder(cluster).build_pod(etcd_cluster("main"))
        certs = next(v for v in pod.spec.volumes if v.name == "etc-ssl-certs")
        assert certs.host_path.path == "/etc/ssl/certs"
        assert certs.host_path.type == "DirectoryOrCreate"
        mount = next(m for m in pod.spec.containers[0].volume_mounts if m.name == "etc-ssl-certs")
        assert mount.read_only is True

    def test_legacy_version_shares_etc_hosts(self, cluster):
        cluster = cluster.model_copy(update={"kubernetes_version": "v1.16.3"})
        pod = _builder(cluster).build_pod(etcd_cluster("main"))
        hosts = next(v for v in pod.spec.volumes if v.name == "hosts")
        assert hosts.host_path.path == "/etc/hosts"
        assert hosts.host_path.type == "File"
        mount = next(m for m in pod.spec.containers[0].volume_mounts if m.name == "hosts")
        assert mount.read_only is False

    def test_api_server_nodes_annotation(self, cluster):
        settings = CompilerSettings(api_server_nodes=True)
        pod = _builder(cluster, settings=settings).build_pod(etcd_cluster("main"))
        assert pod.metadata.annotations["dns.alpha.kubernetes.io/internal"] == "main.etcd.ha.example.com"

    def test_image_remapped(self, cluster):
        settings = CompilerSettings(assets=AssetLocation(container_registry="registry.example.com"))
        pod = _builder(cluster, settings=settings).build_pod(etcd_cluster("main"))
        assert pod.spec.containers[0].image == "registry.example.com/kopeio-etcd-manager:3.0.20210228"

    def test_image_override(self, cluster, caplog):
        spec = etcd_cluster("main", manager={"image": "example/etcd-manager:dev"})
        with caplog.at_level(logging.WARNING, logger="kubeplan.builders.etcd_manager"):
            pod = _builder(cluster).build_pod(spec)
        assert pod.spec.containers[0].image == "example/etcd-manager:dev"
        assert "Overloading etcd-manager image" in caplog.text

    def test_env_overrides_win(self, cluster, caplog):
        cluster = cluster.model_copy(
            update={"egress_proxy": EgressProxySpec(http_proxy=HTTPProxy(host="proxy.corp", port=3128))}
        )
        spec = etcd_cluster(
            "main",
            manager={
                "env": [
                    {"name": "http_proxy", "value": "http://other:8080"},
                    {"name": "ETCD_QUOTA", "value": "1"},
                    {"name": "ETCD_QUOTA", "value": "2"},
                ]
            },
        )
        with caplog.at_level(logging.WARNING, logger="kubeplan.builders.etcd_manager"):
            pod = _builder(cluster).build_pod(spec)
        env = [(e.name, e.value) for e in pod.spec.containers[0].env]
        assert env == [
            ("https_proxy", "http://proxy.corp:3128"),
            ("http_proxy", "http://other:8080"),
            ("ETCD_QUOTA", "2"),
        ]
        assert "Overloading env var" in caplog.text

    def test_wire_form(self, cluster):
        wire = yaml.safe_load(_builder(cluster).build_pod(etcd_cluster("main")).to_yaml())
        assert wire["apiVersion"] == "v1"
        assert wire["kind"] == "Pod"
        assert wire["spec"]["hostNetwork"] is True
        assert wire["spec"]["hostPID"] is True
        assert wire["spec"]["priorityClassName"] == "system-cluster-critical"
        assert wire["spec"]["containers"][0]["securityContext"] == {"privileged": True}


class TestEtcdManagerTemplate:
    """Structural checks on the manifest template."""

    def test_two_objects(self, cluster):
        templates = {ETCD_MANAGER_TEMPLATE: DEFAULT_ETCD_MANAGER_MANIFEST + "\n---\n" + DEFAULT_ETCD_MANAGER_MANIFEST}
        with pytest.raises(ManifestTemplateError) as exc_info:
            _builder(cluster, templates=templates).build_pod(etcd_cluster("main"))
        assert "found 2" in str(exc_info.value)

    def test_not_a_pod(self, cluster):
        templates = _with_pod_edit(lambda m: m.update(kind="Deployment"))
        with pytest.raises(ManifestTemplateError):
            _builder(cluster, templates=templates).build_pod(etcd_cluster("main"))

    def test_two_containers(self, cluster):
        templates = _with_pod_edit(
            lambda m: m["spec"]["containers"].append({"name": "sidecar", "image": "busybox"})
        )
        with pytest.raises(ManifestTemplateError) as exc_info:
            _builder(cluster, templates=templates).build_pod(etcd_cluster("main"))
        assert "exactly one container" in str(exc_info.value)

    def test_missing_pki_volume(self, cluster):
        def drop_pki(manifest):
            manifest["spec"]["volumes"] = [v for v in manifest["spec"]["volumes"] if v["name"] != "pki"]

        with pytest.raises(ManifestTemplateError) as exc_info:
            _builder(cluster, templates=_with_pod_edit(drop_pki)).build_pod(etcd_cluster("main"))
        assert "did not find PKI volume" in str(exc_info.value)

    def test_pki_volume_without_host_path(self, cluster):
        def empty_dir_pki(manifest):
            for volume in manifest["spec"]["volumes"]:
                if volume["name"] == "pki":
                    del volume["hostPath"]
                    volume["emptyDir"] = {}

        with pytest.raises(ManifestTemplateError):
            _builder(cluster, templates=_with_pod_edit(empty_dir_pki)).build_pod(etcd_cluster("main"))

    def test_unknown_fields_survive(self, cluster):
        templates = _with_pod_edit(lambda m: m["spec"].update(dnsPolicy="ClusterFirstWithHostNet"))
        pod = _builder(cluster, templates=templates).build_pod(etcd_cluster("main"))
        assert pod.to_wire()["spec"]["dnsPolicy"] == "ClusterFirstWithHostNet"


class TestEtcdManagerTasks:
    """Tasks registered by build()."""

    def test_managed_files(self, cluster):
        registry = _build(cluster)
        manifest = registry.get("ManagedFile/manifests-etcdmanager-main")
        assert isinstance(manifest, ManagedFile)
        assert manifest.location == "manifests/etcd/main.yaml"
        assert manifest.base is None
        assert yaml.safe_load(manifest.contents)["metadata"]["name"] == "etcd-manager-main"

        spec = registry.get("ManagedFile/etcd-cluster-spec-events")
        assert spec.base == "s3://state-store/ha.example.com/backups/etcd/events"
        assert spec.location == "control/etcd-cluster-spec"
        assert json.loads(spec.contents) == {"memberCount": 1, "etcdVersion": "3.4.13"}

    def test_keypairs(self, cluster):
        registry = _build(cluster)
        keypairs = sorted(t.name for t in registry.tasks() if isinstance(t, Keypair))
        assert keypairs == [
            "etcd-clients-ca",
            "etcd-manager-ca-events",
            "etcd-manager-ca-main",
            "etcd-peers-ca-events",
            "etcd-peers-ca-main",
        ]
        shared = registry.get("Keypair/etcd-clients-ca")
        assert (shared.subject, shared.type) == ("cn=etcd-clients-ca", "ca")

    def test_cilium_gets_dedicated_client_ca(self, cluster):
        cluster = with_etcd_clusters(cluster, etcd_cluster("main"), etcd_cluster("cilium"))
        registry = _build(cluster)
        assert "Keypair/etcd-clients-ca-cilium" in registry
        assert "Keypair/etcd-clients-ca" in registry
        assert "Keypair/etcd-peers-ca-cilium" in registry

    def test_legacy_clusters_skipped(self, cluster):
        cluster = with_etcd_clusters(cluster, etcd_cluster("main", provider="Legacy", backups=None))
        assert len(_build(cluster)) == 0

    def test_missing_backup_store(self, cluster):
        cluster = with_etcd_clusters(cluster, etcd_cluster("main", backups=None))
        with pytest.raises(ConfigurationError) as exc_info:
            _build(cluster)
        assert "backupStore" in str(exc_info.value)
        assert exc_info.value.field == "etcd_clusters.main.backups.backup_store"

    def test_empty_backup_store(self, cluster):
        cluster = with_etcd_clusters(cluster, etcd_cluster("main", backups={"backupStore": ""}))
        with pytest.raises(ConfigurationError):
            _build(cluster)
