"""OData response payload models.

Records inside a page are left as decoded JSON values; the client never
assumes an entity schema.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ODataPage(BaseModel):
    """One page of an entity set response."""

    context: str | None = Field(default=None, alias="@odata.context")
    next_link: str | None = Field(default=None, alias="@odata.nextLink")
    count: int | None = Field(default=None, alias="@odata.count")
    delta_link: str | None = Field(default=None, alias="@odata.deltaLink")
    value: list[Any] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def has_next(self) -> bool:
        return self.next_link is not None


class EntityInfo(BaseModel):
    """Entity set description."""

    name: str = Field(..., min_length=1)
    entity_set_name: str = Field(..., min_length=1)
    description: str | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
