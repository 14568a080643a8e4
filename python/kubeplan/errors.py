"""
kubeplan/errors.py

Exception taxonomy for a compile pass:
  - ConfigurationError (and subclasses): the static input cannot be compiled.
  - DuplicateTaskError: two builders produced differing tasks under one key.
  - SubnetResolutionError: the bundled zone -> utility subnet resolver failed.

None of these are retried; callers discard the registry on the first error.
"""

from __future__ import annotations

from typing import Optional


class KubeplanError(Exception):
    """Base class for every error raised by a compile pass."""


class ConfigurationError(KubeplanError, ValueError):
    """The cluster specification (or a template it references) is invalid.

    Attributes:
        message (str): Human readable description of the problem.
        field (Optional[str]): Dotted path of the offending input field, if known.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        """
        Initialize a ConfigurationError.

        Args:
            message (str): Human readable description of the problem.
            field (Optional[str]): Dotted path of the offending input field.
        """
        super().__init__(message)
        self.field = field


class ManifestTemplateError(ConfigurationError):
    """A manifest template does not have the required structure."""


class UnsupportedProviderError(ConfigurationError):
    """The cloud provider has no volume tag strategy."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"CloudProvider {provider!r} not supported with etcd-manager",
            field="cloud_provider",
        )
        self.provider = provider


class UnknownEtcdClusterError(ConfigurationError):
    """The etcd cluster name is not one of the well-known cluster names."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown etcd cluster key {name!r}", field="etcd_clusters")
        self.name = name


class DuplicateTaskError(KubeplanError):
    """A task was registered under a key that already holds a different task.

    Attributes:
        key (str): The registry key, e.g. "Keypair/etcd-clients-ca".
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"task {key!r} already registered with a different definition")
        self.key = key


class SubnetResolutionError(KubeplanError):
    """No single utility subnet could be found for a zone.

    Attributes:
        zone (str): The zone that failed to resolve.
    """

    def __init__(self, message: str, zone: str) -> None:
        super().__init__(message)
        self.zone = zone
