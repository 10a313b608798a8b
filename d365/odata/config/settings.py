"""Configuration loading.

A TOML file supplies service-level settings; credentials and the endpoint
come from the environment (or a ``.env`` file). Environment values take
precedence over the file.

Example ``config/default.toml``::

    [global]
    product = "finops"
    endpoint = "https://org.operations.dynamics.com/data/"
    max_retries = 3
    retry_delay_ms = 1000

    [observability]
    log_level = "debug"

    [[entities]]
    name = "CustomersV3"
    cross_company = true
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..auth.credentials import AuthConfig
from ..core.enums import AuthType, ProductType
from ..core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/default.toml")


class GlobalSettings(BaseModel):
    """``[global]`` table."""

    product: ProductType = ProductType.DATAVERSE
    endpoint: str = ""
    page_size: int = Field(default=500, ge=1)
    concurrency: int = Field(default=4, ge=1)
    max_retries: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=1000, ge=0)
    max_retry_delay_ms: int | None = Field(default=None, ge=0)
    max_pages: int | None = Field(default=None, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    insecure_ssl: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("product", mode="before")
    @classmethod
    def parse_product(cls, value: object) -> object:
        if isinstance(value, str):
            return ProductType.parse(value)
        return value

    @model_validator(mode="after")
    def check_retry_delay_cap(self) -> GlobalSettings:
        if self.max_retry_delay_ms is not None and self.max_retry_delay_ms < self.retry_delay_ms:
            raise ValueError("max_retry_delay_ms cannot be lower than retry_delay_ms")
        return self


class ObservabilitySettings(BaseModel):
    """``[observability]`` table."""

    log_level: str = "info"
    enable_tracing: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")


class EntitySettings(BaseModel):
    """One ``[[entities]]`` entry."""

    name: str = Field(..., min_length=1)
    initial_load: bool | None = None
    delta_enabled: bool | None = None
    cross_company: bool | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class FileConfig(BaseModel):
    """Root of the TOML configuration file."""

    global_: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    entities: list[EntitySettings] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_runtime(self, env: EnvSettings | None = None) -> RuntimeConfig:
        """Resolve file values against environment variables."""
        env = env or EnvSettings()

        missing = [
            name.upper()
            for name in ("tenant_id", "client_id", "client_secret")
            if not getattr(env, name)
        ]
        if missing:
            raise ConfigError(f"{', '.join(missing)} environment variable(s) required")

        endpoint = env.endpoint or self.global_.endpoint
        if not endpoint:
            raise ConfigError("ENDPOINT environment variable or config endpoint is required")

        product = self.global_.product
        if env.product:
            try:
                product = ProductType.parse(env.product)
            except ValueError:
                logger.warning("Ignoring PRODUCT=%s, using %s", env.product, product.value)

        try:
            auth_type = AuthType.parse(env.auth_type)
        except ValueError:
            logger.warning("Unknown AUTH_TYPE=%s, falling back to azure", env.auth_type)
            auth_type = AuthType.AZURE_AD

        return RuntimeConfig(
            product=product,
            endpoint=endpoint,
            tenant_id=env.tenant_id or "",
            client_id=env.client_id or "",
            client_secret=env.client_secret or "",
            auth_type=auth_type,
            token_url=env.token_url,
            resource=env.resource,
            page_size=self.global_.page_size,
            concurrency=self.global_.concurrency,
            max_retries=self.global_.max_retries,
            retry_delay_ms=self.global_.retry_delay_ms,
            max_retry_delay_ms=self.global_.max_retry_delay_ms,
            max_pages=self.global_.max_pages,
            timeout_seconds=self.global_.timeout_seconds,
            insecure_ssl=self.global_.insecure_ssl,
            log_level=self.observability.log_level,
            enable_tracing=self.observability.enable_tracing,
            entities=list(self.entities),
        )


class EnvSettings(BaseSettings):
    """Environment variables (unprefixed, case-insensitive)."""

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = Field(default=None, repr=False)
    endpoint: str | None = None
    product: str | None = None
    auth_type: str = "azure"
    token_url: str | None = None
    resource: str | None = None


class RuntimeConfig(BaseModel):
    """Fully resolved configuration handed to the client."""

    product: ProductType
    endpoint: str
    tenant_id: str
    client_id: str
    client_secret: str = Field(repr=False)
    auth_type: AuthType = AuthType.AZURE_AD
    token_url: str | None = None
    resource: str | None = None
    page_size: int = 500
    # Read from config files but unused by the client.
    concurrency: int = 4
    max_retries: int = 3
    retry_delay_ms: int = 1000
    max_retry_delay_ms: int | None = None
    max_pages: int | None = None
    timeout_seconds: float = 30.0
    insecure_ssl: bool = False
    log_level: str = "info"
    enable_tracing: bool = False
    entities: list[EntitySettings] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def auth_config(self) -> AuthConfig:
        return AuthConfig(
            auth_type=self.auth_type,
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_url=self.token_url,
            resource=self.resource,
        )

    def entity(self, name: str) -> EntitySettings | None:
        """Per-entity settings, matched case-insensitively."""
        lowered = name.lower()
        for entity in self.entities:
            if entity.name.lower() == lowered:
                return entity
        return None


def load_config(path: str | Path) -> FileConfig:
    """Load configuration from a TOML file."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    try:
        return FileConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def load_default(path: str | Path = DEFAULT_CONFIG_PATH) -> FileConfig:
    """Load ``path`` if it exists, otherwise built-in defaults."""
    if Path(path).exists():
        return load_config(path)
    return FileConfig()
