"""Configuration models and utilities for azgov."""

from __future__ import annotations

import re
from pathlib import Path

# type: ignore[import-untyped]
import yaml
from pydantic import BaseModel, Field, field_validator

from .compliance import DISCOVERY_MODES

_GUID = re.compile(r"^[0-9a-fA-F]{8}-([0-9a-fA-F]{4}-){3}[0-9a-fA-F]{12}$")


class CatalogConfig(BaseModel):
    """Where and how to load the provider operation catalog."""

    cache_file: str | None = None
    namespaces: list[str] = Field(default_factory=list)


class ComplianceConfig(BaseModel):
    """Compliance report and remediation preferences."""

    discovery_mode: str = "ExistingNonCompliant"
    exclude_assignments: list[str] = Field(default_factory=list)

    @field_validator("discovery_mode")
    @classmethod
    def validate_discovery_mode(cls, v: str) -> str:
        if v not in DISCOVERY_MODES:
            raise ValueError(f"discovery_mode must be one of {', '.join(DISCOVERY_MODES)}")
        return v


class WafConfig(BaseModel):
    """Default WAF policy location."""

    resource_group: str | None = None
    policy_name: str | None = None


class AppConfig(BaseModel):
    """Application configuration settings."""

    version: str = "0.1"
    tenant_id: str | None = None
    subscriptions: list[str] = Field(default_factory=list)
    output_dir: str = "reports"
    az_path: str = "az"
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    compliance: ComplianceConfig = Field(default_factory=ComplianceConfig)
    waf: WafConfig = Field(default_factory=WafConfig)

    @field_validator("subscriptions")
    @classmethod
    def validate_subscriptions(cls, v: list[str]) -> list[str]:
        """Subscription ids must be GUIDs."""
        for sub in v:
            if not _GUID.match(sub):
                raise ValueError(f"Invalid subscription id: {sub}")
        return v

    @staticmethod
    def load(path: Path | str) -> AppConfig:
        """Load configuration from a file."""
        p = Path(path)
        data = yaml.safe_load(p.read_text()) or {}
        return AppConfig.model_validate(data)

    def save(self, path: Path | str) -> None:
        """Save configuration to a file."""
        p = Path(path)
        p.write_text(yaml.safe_dump(self.model_dump(mode="python"), sort_keys=False))
