"""
kubeplan/models/etcd_manager.py

Models for what the etcd-manager compiler generates besides the pod itself:
  - EtcdManagerConfig: the agent's command-line configuration. Each field
    declares its flag name via `flag(...)`; see kubeplan.utils.flagbuilder.
  - EtcdClusterSpecInfo: the small JSON record written next to backups.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def flag(name: str, *, repeat: bool = False, default: Any = None) -> Any:
    """Declare a model field rendered as `--name=value`."""
    return Field(default=default, json_schema_extra={"flag": name, "repeat": repeat})


class EtcdManagerConfig(BaseModel):
    """Flags passed to /etcd-manager."""

    # LogLevel sets the log verbosity level
    log_level: int = flag("v", default=0)
    # Containerized is set if etcd-manager is running in a container
    containerized: bool = flag("containerized", default=False)
    # Directory for the keys securing etcd-manager peer traffic
    pki_dir: str = flag("pki-dir", default="")
    # Turns off TLS for etcd-manager itself (compare with etcd_insecure)
    insecure: bool = flag("insecure", default=False)
    # Turns off TLS for etcd (compare with insecure)
    etcd_insecure: bool = flag("etcd-insecure", default=False)

    address: str = flag("address", default="")
    peer_urls: str = flag("peer-urls", default="")
    grpc_port: int = flag("grpc-port", default=0)
    client_urls: str = flag("client-urls", default="")
    discovery_poll_interval: Optional[str] = flag("discovery-poll-interval")
    quarantine_client_urls: str = flag("quarantine-client-urls", default="")
    cluster_name: str = flag("cluster-name", default="")
    backup_store: str = flag("backup-store", default="")
    data_dir: str = flag("data-dir", default="")
    volume_provider: str = flag("volume-provider", default="")
    volume_tag: List[str] = flag("volume-tag", repeat=True, default=[])
    volume_name_tag: str = flag("volume-name-tag", default="")
    dns_suffix: str = flag("dns-suffix", default="")


class EtcdClusterSpecInfo(BaseModel):
    """Written to <backupStore>/control/etcd-cluster-spec."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    member_count: Optional[int] = None
    etcd_version: Optional[str] = None

    def to_json(self) -> str:
        """Two-space indented JSON, omitting unset fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
