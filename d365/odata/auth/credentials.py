"""Authentication configuration and token cache records."""

from __future__ import annotations

import time
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import AuthType

# Tokens are treated as expired this many seconds early to absorb clock skew
# and the latency of the request that carries them.
EXPIRY_MARGIN_SECONDS = 60.0


class AuthConfig(BaseModel):
    """OAuth2 client-credentials configuration."""

    auth_type: AuthType = AuthType.AZURE_AD
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    # Explicit token endpoint; only honoured for ADFS.
    token_url: str | None = None
    # Explicit resource/audience; only honoured for ADFS.
    resource: str | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("auth_type", mode="before")
    @classmethod
    def parse_auth_type(cls, value: object) -> AuthType:
        if isinstance(value, str):
            return AuthType.parse(value)
        return value  # type: ignore[return-value]

    def missing_fields(self) -> list[str]:
        """Names of the required fields that are empty."""
        missing = [
            name
            for name in ("client_id", "client_secret")
            if not getattr(self, name)
        ]
        # ADFS can do without a tenant when the token URL is explicit.
        if not self.tenant_id and not (self.auth_type is AuthType.ADFS and self.token_url):
            missing.insert(0, "tenant_id")
        return missing


class TokenResponse(BaseModel):
    """Token endpoint response body."""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    ext_expires_in: int = 0

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class CachedToken:
    """Bearer token with an absolute expiry on the monotonic clock."""

    access_token: str
    expires_at: float

    @classmethod
    def issued(cls, access_token: str, expires_in: float, now: float | None = None) -> CachedToken:
        now = time.monotonic() if now is None else now
        return cls(access_token=access_token, expires_at=now + expires_in)

    def is_valid(self, now: float | None = None) -> bool:
        """True while ``now + margin`` is strictly before expiry."""
        now = time.monotonic() if now is None else now
        return self.expires_at > now + EXPIRY_MARGIN_SECONDS
