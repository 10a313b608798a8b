"""Unit tests for auth configuration and cached tokens."""

import pytest
from pydantic import ValidationError

from d365.odata.auth import AuthConfig, CachedToken, TokenResponse
from d365.odata.core import AuthType


class TestCachedToken:
    """Test the 60 second validity margin."""

    NOW = 10_000.0

    def test_valid_far_from_expiry(self):
        token = CachedToken(access_token="t", expires_at=self.NOW + 3600)
        assert token.is_valid(now=self.NOW)

    def test_expired_token_invalid(self):
        token = CachedToken(access_token="t", expires_at=self.NOW - 60)
        assert not token.is_valid(now=self.NOW)

    def test_boundary_is_strict(self):
        """Test a token expiring exactly at now + 60s is already invalid."""
        token = CachedToken(access_token="t", expires_at=self.NOW + 60)
        assert not token.is_valid(now=self.NOW)

    def test_just_past_boundary_valid(self):
        token = CachedToken(access_token="t", expires_at=self.NOW + 60.5)
        assert token.is_valid(now=self.NOW)

    def test_issued_sets_absolute_expiry(self):
        token = CachedToken.issued("abc", 3599, now=self.NOW)
        assert token.access_token == "abc"
        assert token.expires_at == self.NOW + 3599

    def test_issued_uses_monotonic_clock_by_default(self):
        assert CachedToken.issued("abc", 3600).is_valid()

    def test_frozen(self):
        token = CachedToken(access_token="t", expires_at=1.0)
        with pytest.raises(AttributeError):
            token.access_token = "other"  # type: ignore[misc]


class TestAuthConfig:
    """Test AuthConfig validation."""

    def test_defaults_to_azure(self):
        config = AuthConfig(tenant_id="t", client_id="c", client_secret="s")
        assert config.auth_type is AuthType.AZURE_AD

    def test_parses_auth_type_alias(self):
        config = AuthConfig(auth_type="on-premise", tenant_id="t", client_id="c", client_secret="s")
        assert config.auth_type is AuthType.ADFS

    def test_unknown_auth_type_rejected(self):
        with pytest.raises(ValidationError):
            AuthConfig(auth_type="kerberos")

    def test_immutable(self):
        config = AuthConfig(tenant_id="t", client_id="c", client_secret="s")
        with pytest.raises(ValidationError):
            config.tenant_id = "other"  # type: ignore[misc]

    def test_secret_not_in_repr(self):
        config = AuthConfig(tenant_id="t", client_id="c", client_secret="hunter2")
        assert "hunter2" not in repr(config)

    def test_missing_fields_complete(self):
        config = AuthConfig(tenant_id="t", client_id="c", client_secret="s")
        assert config.missing_fields() == []

    def test_missing_fields_reports_empty_values(self):
        config = AuthConfig(tenant_id="", client_id="c", client_secret="")
        assert config.missing_fields() == ["tenant_id", "client_secret"]

    def test_adfs_with_token_url_needs_no_tenant(self):
        config = AuthConfig(
            auth_type=AuthType.ADFS,
            client_id="c",
            client_secret="s",
            token_url="https://fs.example.com/adfs/oauth2/token",
        )
        assert config.missing_fields() == []


class TestTokenResponse:
    """Test token response decoding."""

    def test_optional_fields_defaulted(self):
        token = TokenResponse.model_validate({"access_token": "abc", "expires_in": 3599})
        assert token.token_type == "Bearer"
        assert token.ext_expires_in == 0

    def test_missing_access_token_rejected(self):
        with pytest.raises(ValidationError):
            TokenResponse.model_validate({"expires_in": 3599})
