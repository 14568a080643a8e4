"""
kubeplan/models/tasks.py

The tasks a compile pass emits for the external executor. Every task has a
`name` and a `lifecycle`; references between tasks are by task name, so the
whole plan is plain data and compares structurally.

Task kinds:
  - SecurityGroup, SecurityGroupRule
  - ClassicLoadBalancer (with listener, health check and connection settings)
  - ManagedFile, Keypair, DNSName
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Lifecycle(str, Enum):
    """How the executor may treat a task's resource in the current run."""

    sync = "Sync"
    ignore = "Ignore"
    warn_if_insufficient_access = "WarnIfInsufficientAccess"
    exists_and_validates = "ExistsAndValidates"
    exists_and_warn_if_changes = "ExistsAndWarnIfChanges"


class Task(BaseModel):
    """Base task. Frozen, so a registered task cannot drift after the fact."""

    model_config = ConfigDict(frozen=True)

    name: str
    lifecycle: Lifecycle = Lifecycle.sync

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def key(self) -> str:
        """Registry key: kind and name, e.g. 'Keypair/etcd-clients-ca'."""
        return f"{self.kind}/{self.name}"


class SecurityGroup(Task):
    """A security group. `shared` groups are referenced by `id` and never deleted."""

    vpc: Optional[str] = None
    description: Optional[str] = None
    id: Optional[str] = None
    shared: bool = False
    remove_extra_rules: List[str] = Field(default_factory=list)
    tags: Dict[str, str] = Field(default_factory=dict)


class SecurityGroupRule(Task):
    """A directed rule on `security_group`, sourced from a group or a CIDR."""

    security_group: str
    source_group: Optional[str] = None
    cidr: Optional[str] = None
    protocol: Optional[str] = None
    from_port: Optional[int] = None
    to_port: Optional[int] = None
    egress: bool = False
    tags: Dict[str, str] = Field(default_factory=dict)


class ClassicLoadBalancerListener(BaseModel):
    model_config = ConfigDict(frozen=True)

    instance_port: int


class ClassicLoadBalancerHealthCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: str
    timeout: int
    interval: int
    healthy_threshold: int
    unhealthy_threshold: int


class ClassicLoadBalancerConnectionSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    idle_timeout: int


class ClassicLoadBalancer(Task):
    load_balancer_name: str
    security_groups: List[str] = Field(default_factory=list)
    subnets: List[str] = Field(default_factory=list)
    listeners: Dict[str, ClassicLoadBalancerListener] = Field(default_factory=dict)
    health_check: Optional[ClassicLoadBalancerHealthCheck] = None
    connection_settings: Optional[ClassicLoadBalancerConnectionSettings] = None
    tags: Dict[str, str] = Field(default_factory=dict)


class ManagedFile(Task):
    """A file the executor writes to `location`, relative to `base` if set."""

    location: str
    contents: str
    base: Optional[str] = None


class Keypair(Task):
    subject: str
    type: str


class DNSName(Task):
    zone: str
    resource_type: str
    target_load_balancer: str


AnyTask = Union[
    SecurityGroup,
    SecurityGroupRule,
    ClassicLoadBalancer,
    ManagedFile,
    Keypair,
    DNSName,
]


__all__ = [
    "Lifecycle",
    "Task",
    "SecurityGroup",
    "SecurityGroupRule",
    "ClassicLoadBalancerListener",
    "ClassicLoadBalancerHealthCheck",
    "ClassicLoadBalancerConnectionSettings",
    "ClassicLoadBalancer",
    "ManagedFile",
    "Keypair",
    "DNSName",
    "AnyTask",
]
