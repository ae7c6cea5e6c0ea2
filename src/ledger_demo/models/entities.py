"""Schemas for the onboarding entities the generator creates."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

StatusCode = Literal["ACTIVE", "INACTIVE", "BLOCKED"]


class ApiModel(BaseModel):
    """Base model speaking the API's camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Status(ApiModel):
    code: StatusCode = "ACTIVE"
    description: str | None = None


class Address(ApiModel):
    line1: str = Field(min_length=1)
    line2: str | None = None
    zip_code: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    country: str = Field(min_length=2, max_length=2)


class OrganizationInput(ApiModel):
    legal_name: str = Field(min_length=1, max_length=256)
    legal_document: str = Field(min_length=1, max_length=256)
    doing_business_as: str | None = Field(default=None, max_length=256)
    address: Address
    status: Status = Field(default_factory=Status)
    metadata: dict[str, Any] = Field(default_factory=dict)


class LedgerInput(ApiModel):
    name: str = Field(min_length=1, max_length=256)
    status: Status = Field(default_factory=Status)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AssetInput(ApiModel):
    name: str = Field(min_length=1, max_length=256)
    type: Literal["currency", "crypto", "commodity", "others"]
    code: str = Field(pattern=r"^[A-Z]{3,10}$")
    status: Status = Field(default_factory=Status)
    metadata: dict[str, Any] = Field(default_factory=dict)


class PortfolioInput(ApiModel):
    name: str = Field(min_length=1, max_length=256)
    entity_id: str | None = None
    status: Status = Field(default_factory=Status)
    metadata: dict[str, Any] = Field(default_factory=dict)


class SegmentInput(ApiModel):
    name: str = Field(min_length=1, max_length=256)
    status: Status = Field(default_factory=Status)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AccountInput(ApiModel):
    name: str = Field(min_length=1, max_length=256)
    asset_code: str = Field(pattern=r"^[A-Z]{3,10}$")
    type: Literal["deposit", "savings", "loans", "marketplace", "creditCard", "external"]
    alias: str = Field(min_length=1, max_length=100)
    portfolio_id: str | None = None
    segment_id: str | None = None
    status: Status = Field(default_factory=Status)
    metadata: dict[str, Any] = Field(default_factory=dict)


class Organization(ApiModel):
    id: str
    legal_name: str
    legal_document: str | None = None
    metadata: dict[str, Any] | None = None


class Ledger(ApiModel):
    id: str
    name: str
    organization_id: str | None = None
    metadata: dict[str, Any] | None = None


class Asset(ApiModel):
    id: str
    name: str
    code: str
    type: str | None = None
    ledger_id: str | None = None


class Portfolio(ApiModel):
    id: str
    name: str
    ledger_id: str | None = None


class Segment(ApiModel):
    id: str
    name: str
    ledger_id: str | None = None


class Account(ApiModel):
    id: str
    name: str
    alias: str | None = None
    asset_code: str
    type: str | None = None
    ledger_id: str | None = None
    portfolio_id: str | None = None
    segment_id: str | None = None


__all__ = [
    "Account",
    "AccountInput",
    "Address",
    "ApiModel",
    "Asset",
    "AssetInput",
    "Ledger",
    "LedgerInput",
    "Organization",
    "OrganizationInput",
    "Portfolio",
    "PortfolioInput",
    "Segment",
    "SegmentInput",
    "Status",
]
