"""
kubeplan/utils/env.py

Environment variables every system component container receives, derived
from the cluster spec alone.
"""

from __future__ import annotations

from typing import Dict, List

from kubeplan.models.cluster_spec import ClusterSpec, EgressProxySpec
from kubeplan.models.k8s import EnvVar


def _egress_proxy_vars(proxy: EgressProxySpec) -> Dict[str, str]:
    env: Dict[str, str] = {}
    if proxy.http_proxy.host:
        port = f":{proxy.http_proxy.port}" if proxy.http_proxy.port else ""
        url = f"http://{proxy.http_proxy.host}{port}"
        env["http_proxy"] = url
        env["https_proxy"] = url
    if proxy.proxy_excludes:
        env["no_proxy"] = proxy.proxy_excludes
        env["NO_PROXY"] = proxy.proxy_excludes
    return env


def build_system_component_env_vars(cluster: ClusterSpec) -> Dict[str, str]:
    """Common env for system components, keyed by variable name."""
    return _egress_proxy_vars(cluster.egress_proxy) if cluster.egress_proxy else {}


def to_env_vars(env: Dict[str, str]) -> List[EnvVar]:
    """Convert a name -> value map into EnvVars sorted by name."""
    return [EnvVar(name=name, value=env[name]) for name in sorted(env)]
