"""
kubeplan/models/k8s.py

Defines Pydantic models representing the subset of Kubernetes objects that the
etcd-manager compiler reads from a template and writes back out: Pod, its
metadata, containers, volumes and env vars.

Field names are snake_case in Python and camelCase on the wire, so a template
parsed from YAML and a pod dumped with `to_wire()` both look like real
Kubernetes manifests. Fields the models do not know about are kept as extras.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models whose wire form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KubeObject(CamelModel):
    """Base for Kubernetes objects; unknown template fields survive a round trip."""

    model_config = ConfigDict(extra="allow")


class EnvVar(KubeObject):
    """A single NAME=value environment variable."""

    name: str
    value: str = ""


class HostPathVolumeSource(KubeObject):
    path: str
    type: Optional[str] = None


class Volume(KubeObject):
    name: str
    host_path: Optional[HostPathVolumeSource] = None


class VolumeMount(KubeObject):
    name: str
    mount_path: str
    read_only: Optional[bool] = None


class ResourceRequirements(KubeObject):
    requests: Dict[str, str] = Field(default_factory=dict)
    limits: Dict[str, str] = Field(default_factory=dict)


class SecurityContext(KubeObject):
    privileged: Optional[bool] = None


class Container(KubeObject):
    name: str
    image: str = ""
    command: List[str] = Field(default_factory=list)
    env: List[EnvVar] = Field(default_factory=list)
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)
    security_context: Optional[SecurityContext] = None
    volume_mounts: List[VolumeMount] = Field(default_factory=list)


class ObjectMeta(KubeObject):
    name: str = ""
    namespace: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class PodSpec(KubeObject):
    containers: List[Container] = Field(default_factory=list)
    volumes: List[Volume] = Field(default_factory=list)
    host_network: Optional[bool] = None
    host_pid: Optional[bool] = Field(default=None, alias="hostPID")
    priority_class_name: Optional[str] = None


class Pod(KubeObject):
    """A v1 Pod. `kind` is pinned so template validation rejects other objects."""

    api_version: str = "v1"
    kind: Literal["Pod"] = "Pod"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec = Field(default_factory=PodSpec)

    def to_wire(self) -> Dict[str, Any]:
        """Dump as a camelCase dict with unset optional fields dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_yaml(self) -> str:
        """
        Serialize this Pod to a YAML manifest using PyYAML. Keys are sorted so
        the output is stable across runs.
        """
        return yaml.safe_dump(self.to_wire(), sort_keys=True)


__all__ = [
    "CamelModel",
    "KubeObject",
    "EnvVar",
    "HostPathVolumeSource",
    "Volume",
    "VolumeMount",
    "ResourceRequirements",
    "SecurityContext",
    "Container",
    "ObjectMeta",
    "PodSpec",
    "Pod",
]
