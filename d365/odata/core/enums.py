"""Core enumerations shared by the auth and OData layers.

Architecture:
    Two closed variant tags drive all dialect differences:
    - ProductType: which OData dialect the service speaks (Dataverse or F&O)
    - AuthType: which OAuth2 authority issues tokens (Entra ID or ADFS)

Design Decisions:
    - String enums: values round-trip through TOML and environment variables
    - parse() accepts the aliases operators actually type, case-insensitive
"""

from __future__ import annotations

from enum import Enum


class ProductType(str, Enum):
    """Dynamics 365 product variant behind the OData endpoint."""

    DATAVERSE = "dataverse"
    FINOPS = "finops"

    @classmethod
    def parse(cls, value: str | ProductType) -> ProductType:
        """Parse a product name, accepting the short F&O aliases."""
        if isinstance(value, ProductType):
            return value
        normalized = value.strip().lower()
        if normalized == "dataverse":
            return cls.DATAVERSE
        if normalized in ("finops", "fno", "fo"):
            return cls.FINOPS
        raise ValueError(f"Unknown product: {value}. Use 'dataverse' or 'finops'")

    @property
    def supports_cross_company(self) -> bool:
        return self is ProductType.FINOPS


class AuthType(str, Enum):
    """OAuth2 authority variant.

    AZURE_AD is the cloud (Entra ID) authority, ADFS the on-premises one.
    """

    AZURE_AD = "azure"
    ADFS = "adfs"

    @classmethod
    def parse(cls, value: str | AuthType) -> AuthType:
        """Parse an auth type name."""
        if isinstance(value, AuthType):
            return value
        normalized = value.strip().lower()
        if normalized in ("azure", "azuread", "azure_ad", "entra"):
            return cls.AZURE_AD
        if normalized in ("adfs", "on-premise", "onpremise"):
            return cls.ADFS
        raise ValueError(f"Unknown auth type: {value}. Use 'azure' or 'adfs'")
