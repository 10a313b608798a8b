"""OData query options and query string construction."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import ProductType


class QueryOptions(BaseModel):
    """System query options for an entity set request.

    Values are emitted verbatim; callers pre-escape free-text filters.
    ``cross_company`` only has an effect against Finance & Operations.
    """

    select: list[str] | None = None
    filter: str | None = None
    top: int | None = Field(default=None, ge=0)
    skip: int | None = Field(default=None, ge=0)
    orderby: str | None = None
    expand: list[str] | None = None
    cross_company: bool = False
    count: bool = False

    model_config = ConfigDict(frozen=True)

    def to_query_string(self, product: ProductType) -> str:
        """Build query string from options."""
        params: list[str] = []

        if self.select is not None:
            params.append(f"$select={','.join(self.select)}")
        if self.filter is not None:
            params.append(f"$filter={self.filter}")
        if self.top is not None:
            params.append(f"$top={self.top}")
        if self.skip is not None:
            params.append(f"$skip={self.skip}")
        if self.orderby is not None:
            params.append(f"$orderby={self.orderby}")
        if self.expand is not None:
            params.append(f"$expand={','.join(self.expand)}")
        if self.count:
            params.append("$count=true")
        # F&O only; Dataverse silently drops the flag
        if self.cross_company and product.supports_cross_company:
            params.append("cross-company=true")

        if not params:
            return ""
        return "?" + "&".join(params)


def to_query_string(options: QueryOptions, product: ProductType) -> str:
    return options.to_query_string(product)
