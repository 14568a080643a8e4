"""
kubeplan/utils/kubemanifest.py

In-place helpers for system-component pods: host path mounts, /etc/hosts
mapping, criticality markers, and the tee-to-logfile command wrapper.
"""

from __future__ import annotations

from typing import List

from kubeplan.models.k8s import (
    Container,
    HostPathVolumeSource,
    Pod,
    Volume,
    VolumeMount,
)

CRITICAL_POD_ANNOTATION = "scheduler.alpha.kubernetes.io/critical-pod"
CLUSTER_CRITICAL_PRIORITY_CLASS = "system-cluster-critical"


def add_host_path_mapping(
    pod: Pod,
    container: Container,
    name: str,
    host_path: str,
    *,
    mount_path: str = "",
    host_path_type: str = "DirectoryOrCreate",
    read_only: bool = False,
) -> None:
    """
    Add a hostPath volume to the pod and mount it into the container.

    Args:
        pod: Pod receiving the volume.
        container: Container receiving the mount.
        name: Volume name.
        host_path: Path on the node.
        mount_path: Path inside the container; defaults to host_path.
        host_path_type: Kubernetes HostPathType, e.g. "FileOrCreate".
        read_only: Mount read-only.
    """
    pod.spec.volumes.append(
        Volume(name=name, host_path=HostPathVolumeSource(path=host_path, type=host_path_type))
    )
    container.volume_mounts.append(
        VolumeMount(name=name, mount_path=mount_path or host_path, read_only=read_only)
    )


def map_etc_hosts(pod: Pod, container: Container, read_only: bool) -> None:
    """Bind-mount the node's /etc/hosts into the container."""
    add_host_path_mapping(
        pod,
        container,
        "hosts",
        "/etc/hosts",
        host_path_type="File",
        read_only=read_only,
    )


def mark_pod_as_critical(pod: Pod) -> None:
    pod.metadata.annotations[CRITICAL_POD_ANNOTATION] = ""


def mark_pod_as_cluster_critical(pod: Pod) -> None:
    pod.spec.priority_class_name = CLUSTER_CRITICAL_PRIORITY_CLASS


def with_tee(cmd: str, args: List[str], tee_file: str) -> List[str]:
    """
    Wrap a command so its stdout and stderr are also appended to `tee_file`.

    Returns:
        ["/bin/sh", "-c", "mkfifo /tmp/pipe; (tee -a <file> < /tmp/pipe & ) ; exec <cmd> <args> > /tmp/pipe 2>&1"]
    """
    full_cmd = " ".join([cmd] + args)
    return [
        "/bin/sh",
        "-c",
        f"mkfifo /tmp/pipe; (tee -a {tee_file} < /tmp/pipe & ) ; exec {full_cmd} > /tmp/pipe 2>&1",
    ]
