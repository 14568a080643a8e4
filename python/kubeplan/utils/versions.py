"""
kubeplan/utils/versions.py

Kubernetes version parsing and the version-gated etcd-manager behaviour table.
The boundaries here are fixed: moving one would change manifests of clusters
that are already running.
"""

from __future__ import annotations

import re
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict

from kubeplan.errors import ConfigurationError

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)(?:\.(\d+))?(?:[-+].*)?$")

KubernetesVersion = Tuple[int, int, int]


def parse_kubernetes_version(version: str) -> KubernetesVersion:
    """
    Parse 'v1.21.0', '1.21' or '1.21.0-beta.1' into (major, minor, patch).

    Raises:
        ConfigurationError: If the string is not a recognizable version.
    """
    match = _VERSION_RE.match(version.strip())
    if not match:
        raise ConfigurationError(
            f"unable to parse kubernetes version {version!r}",
            field="kubernetes_version",
        )
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


def is_version_lt(version: str, boundary: str) -> bool:
    return parse_kubernetes_version(version) < parse_kubernetes_version(boundary)


class EtcdManagerBehavior(BaseModel):
    """Behaviour switches for the etcd-manager pod at a given target version.

    Attributes:
        share_host_etc_hosts: Bind-mount the node's /etc/hosts into the container
            (the legacy layout). Newer clusters let etcd-manager keep host entries
            to itself, avoiding concurrent writes to one file across bind mounts.
    """

    model_config = ConfigDict(frozen=True)

    share_host_etc_hosts: bool = False


# (boundary, behaviour for versions strictly below the boundary)
_BEHAVIOR_TABLE: List[Tuple[str, EtcdManagerBehavior]] = [
    ("1.17", EtcdManagerBehavior(share_host_etc_hosts=True)),
]


def behavior_for(kubernetes_version: str) -> EtcdManagerBehavior:
    """
    Look up the etcd-manager behaviour for a target Kubernetes version; the
    first boundary the version falls below wins.
    """
    return next(
        (
            behavior
            for boundary, behavior in _BEHAVIOR_TABLE
            if is_version_lt(kubernetes_version, boundary)
        ),
        EtcdManagerBehavior(),
    )
