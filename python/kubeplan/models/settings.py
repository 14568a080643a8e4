"""
kubeplan/models/settings.py

Run-wide knobs for a compile pass. Everything has a default, so
`CompilerSettings()` is a valid configuration.
"""

from __future__ import annotations

from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from kubeplan.models.tasks import Lifecycle


class AssetLocation(BaseModel):
    """Where container images are pulled from, when not from their origin registry."""

    container_registry: Optional[str] = None
    container_proxy: Optional[str] = None

    @model_validator(mode="after")
    def check_exclusivity(self) -> AssetLocation:
        """
        Ensure container_registry and container_proxy are not both set.
        """
        if self.container_registry and self.container_proxy:
            raise ValueError(
                "container_registry and container_proxy are mutually exclusive."
            )
        return self


class CompilerSettings(BaseModel):
    lifecycle: Lifecycle = Lifecycle.sync
    security_lifecycle: Lifecycle = Lifecycle.sync
    api_server_nodes: bool = False
    etcd_manager_log_level: int = Field(default=6, ge=0)
    assets: AssetLocation = Field(default_factory=AssetLocation)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> CompilerSettings:
        """
        Deserialize CompilerSettings from a YAML string; an empty document yields defaults.
        """
        return cls.model_validate(yaml.safe_load(yaml_str) or {})
