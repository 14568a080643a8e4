"""
kubeplan/utils/wellknownports.py

Fixed ports of the well-known etcd clusters. A running cluster's peer and
client URLs embed these, so an existing entry must never change.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict

from kubeplan.errors import UnknownEtcdClusterError

ETCD_MAIN_GRPC = 3996
ETCD_EVENTS_GRPC = 3997
ETCD_CILIUM_GRPC = 3991

ETCD_MAIN_QUARANTINED_CLIENT_PORT = 3994
ETCD_EVENTS_QUARANTINED_CLIENT_PORT = 3995
ETCD_CILIUM_QUARANTINED_CLIENT_PORT = 3992


class EtcdClusterKey(str, Enum):
    main = "main"
    events = "events"
    cilium = "cilium"


class EtcdClusterPorts(BaseModel):
    """Ports and agent-level cluster name for one well-known etcd cluster.

    Attributes:
        cluster_name: Value of etcd-manager's --cluster-name; also names the host log file.
        client_port: Port clients (the API server) connect to.
        peer_port: Port etcd members peer on.
        grpc_port: Port etcd-manager instances talk to each other on.
        quarantined_client_port: Client port used while a member is quarantined.
    """

    model_config = ConfigDict(frozen=True)

    cluster_name: str
    client_port: int
    peer_port: int
    grpc_port: int
    quarantined_client_port: int


ETCD_CLUSTER_PORTS: Dict[EtcdClusterKey, EtcdClusterPorts] = {
    EtcdClusterKey.main: EtcdClusterPorts(
        cluster_name="etcd",
        client_port=4001,
        peer_port=2380,
        grpc_port=ETCD_MAIN_GRPC,
        quarantined_client_port=ETCD_MAIN_QUARANTINED_CLIENT_PORT,
    ),
    EtcdClusterKey.events: EtcdClusterPorts(
        cluster_name="etcd-events",
        client_port=4002,
        peer_port=2381,
        grpc_port=ETCD_EVENTS_GRPC,
        quarantined_client_port=ETCD_EVENTS_QUARANTINED_CLIENT_PORT,
    ),
    EtcdClusterKey.cilium: EtcdClusterPorts(
        cluster_name="etcd-cilium",
        client_port=4003,
        peer_port=2382,
        grpc_port=ETCD_CILIUM_GRPC,
        quarantined_client_port=ETCD_CILIUM_QUARANTINED_CLIENT_PORT,
    ),
}


def etcd_cluster_ports(name: str) -> EtcdClusterPorts:
    """
    Ports for the etcd cluster called `name`.

    Raises:
        UnknownEtcdClusterError: If `name` is not a well-known etcd cluster.
    """
    try:
        return ETCD_CLUSTER_PORTS[EtcdClusterKey(name)]
    except ValueError:
        raise UnknownEtcdClusterError(name) from None
