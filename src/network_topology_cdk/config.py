"""Configuration management using Pydantic.

Two layers:

* ``Settings``: application settings (environment, logging, CDK CLI),
  loaded from environment variables and the project-root .env file.
* ``TopologyConfig``: the network shape to compile, loaded from a YAML file
  and overridable from the command line.
"""

import ipaddress
import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .project_settings import DEFAULT_REGION
from .topology.models import NetworkSpec, SubnetRequest, Tier
from .topology.tags import merge_tags

# Find .env file in project root (parent of src/)
_PACKAGE_DIR = Path(__file__).parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CdkConfig(BaseModel):
    """How the CDK CLI is invoked for apply and destroy."""

    model_config = ConfigDict(frozen=True)

    binary: str = "cdk"
    require_approval: str = "never"
    app_dir: Path = _PROJECT_ROOT


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in project root (if it exists)
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Basic settings
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: LogLevel = LogLevel.INFO

    # Application metadata
    app_name: str = "Network Topology CDK"
    app_version: str = "0.1.0"

    # Topology file used when no --config is given
    topology_config: Path = _PROJECT_ROOT / "config.yaml"

    # Tracing is enabled only when an endpoint is set
    otlp_endpoint: Optional[str] = None

    cdk: CdkConfig = Field(default_factory=CdkConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: Any) -> Environment:
        """Validate and convert environment string."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


def _check_cidr(value: str) -> str:
    try:
        ipaddress.IPv4Network(value)
    except ValueError as e:
        raise ValueError(f"Invalid IPv4 CIDR '{value}': {e}") from e
    return value


class TopologyConfig(BaseModel):
    """Network shape to compile.

    CIDR strings are syntax-checked here; overlap is not checked anywhere.
    Count/list consistency is left to the compiler's validator so the error
    names the tier field that is short.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "main"
    region: str = DEFAULT_REGION
    account: Optional[str] = None

    cidr_block: str = "10.0.0.0/16"
    dns_support: bool = True
    dns_hostnames: bool = True

    availability_zones: list[str] = Field(default_factory=lambda: ["us-west-2a", "us-west-2b"])

    public_subnet_count: Annotated[int, Field(ge=0)] = 2
    public_subnet_cidrs: list[str] = Field(default_factory=lambda: ["10.0.1.0/24", "10.0.2.0/24"])

    private_subnet_count: Annotated[int, Field(ge=0)] = 2
    private_subnet_cidrs: list[str] = Field(default_factory=lambda: ["10.0.101.0/24", "10.0.102.0/24"])

    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("cidr_block")
    @classmethod
    def validate_cidr_block(cls, v: str) -> str:
        return _check_cidr(v)

    @field_validator("public_subnet_cidrs", "private_subnet_cidrs")
    @classmethod
    def validate_subnet_cidrs(cls, v: list[str]) -> list[str]:
        return [_check_cidr(cidr) for cidr in v]

    def network_spec(self) -> NetworkSpec:
        return NetworkSpec(
            name=self.name,
            cidr_block=self.cidr_block,
            dns_support=self.dns_support,
            dns_hostnames=self.dns_hostnames,
            tags=self.tags,
        )

    def subnet_request(self, tier: Tier) -> SubnetRequest:
        if tier is Tier.PUBLIC:
            count, cidrs = self.public_subnet_count, self.public_subnet_cidrs
        else:
            count, cidrs = self.private_subnet_count, self.private_subnet_cidrs
        return SubnetRequest(
            tier=tier,
            count=count,
            cidrs=tuple(cidrs),
            zones=tuple(self.availability_zones),
        )


def _as_configuration_error(error: ValidationError, source: str) -> ConfigurationError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "<root>"
    return ConfigurationError(
        f"Invalid topology configuration: {first['msg']}",
        field=field,
        source=source,
    )


def build_topology_config(
    data: Optional[dict[str, Any]] = None,
    source: str = "<defaults>",
    **overrides: Any,
) -> TopologyConfig:
    """Validate raw topology data, applying non-None overrides on top.

    ``tags`` overrides are merged into the file's tags instead of replacing
    them.

    Raises:
        ConfigurationError: If the data does not form a valid TopologyConfig
    """
    merged = dict(data or {})
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "tags":
            value = merge_tags(merged.get("tags") or {}, value)
        merged[key] = value

    try:
        return TopologyConfig.model_validate(merged)
    except ValidationError as e:
        raise _as_configuration_error(e, source) from e


def load_topology_config(config_path: Path, **overrides: Any) -> TopologyConfig:
    """Load and validate a topology from a YAML file.

    Args:
        config_path: Path to the YAML topology file
        **overrides: Field values that win over the file (None is ignored)

    Returns:
        Validated topology configuration

    Raises:
        ConfigurationError: If the file is missing, empty, not YAML, or invalid
    """
    if not config_path.exists():
        raise ConfigurationError(
            "Configuration file not found",
            field="config",
            path=str(config_path),
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in config file: {e}",
            field="config",
            path=str(config_path),
        ) from e

    if not data:
        raise ConfigurationError(
            "Configuration file is empty",
            field="config",
            path=str(config_path),
        )
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping",
            field="config",
            path=str(config_path),
        )

    return build_topology_config(data, source=str(config_path), **overrides)


def topology_from_context(raw: Any) -> TopologyConfig:
    """Build the topology from a CDK context value (JSON string or mapping).

    Raises:
        ConfigurationError: If the value is not valid JSON or not a valid topology
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in topology context: {e}",
                field="topology",
            ) from e
    if not isinstance(raw, dict):
        raise ConfigurationError("Topology context must be a mapping", field="topology")
    return build_topology_config(raw, source="cdk context")
