"""
Catalog data models for the Appetite Service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..rules.models import utcnow
from ..schemas import ApiModel, PaginationInfo


@dataclass
class Carrier:
    """Insurance carrier organisation."""
    carrier_id: str
    legal_name: str
    display_name: str
    country: Optional[str] = None
    headquarters_address: Optional[str] = None
    primary_contact_name: Optional[str] = None
    primary_contact_email: Optional[str] = None
    primary_contact_phone: Optional[str] = None
    technical_contact_name: Optional[str] = None
    technical_contact_email: Optional[str] = None
    auth_method: Optional[str] = None
    sso_metadata_url: Optional[str] = None
    api_client_id: Optional[str] = None
    api_secret_key_ref: Optional[str] = None
    data_residency: Optional[str] = None
    products_offered: List[str] = field(default_factory=list)
    rule_upload_allowed: bool = False
    rule_upload_method: Optional[str] = None
    rule_approval_required: bool = True
    default_rule_versioning: bool = True
    use_naics_enrichment: bool = False
    preferred_naics_source: Optional[str] = None
    pas_webhook_url: Optional[str] = None
    webhook_auth_type: Optional[str] = None
    webhook_secret_ref: Optional[str] = None
    contract_ref: Optional[str] = None
    billing_contact_email: Optional[str] = None
    retention_policy_days: Optional[int] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    additional_json: Optional[str] = None


@dataclass
class Product:
    """Insurance product offered by a carrier."""
    product_id: str
    name: str
    carrier: str
    description: Optional[str] = None
    product_type: Optional[str] = None
    per_occurrence: int = 0
    aggregate: int = 0
    min_annual_revenue: int = 0
    max_annual_revenue: int = 0
    naics_allowed: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class User:
    """Platform user. Credentials are managed by the identity provider."""
    user_id: str
    name: str
    email: str
    roles: List[str] = field(default_factory=list)
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    is_active: bool = True
    auth_provider: Optional[str] = "local"
    created_at: datetime = field(default_factory=utcnow)
    last_login_at: Optional[datetime] = None


class CarrierWriteRequest(ApiModel):
    """Request model for creating or updating a carrier."""
    legal_name: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    country: Optional[str] = None
    headquarters_address: Optional[str] = None
    primary_contact_name: Optional[str] = None
    primary_contact_email: Optional[str] = None
    primary_contact_phone: Optional[str] = None
    technical_contact_name: Optional[str] = None
    technical_contact_email: Optional[str] = None
    auth_method: Optional[str] = None
    sso_metadata_url: Optional[str] = None
    api_client_id: Optional[str] = None
    api_secret_key_ref: Optional[str] = None
    data_residency: Optional[str] = None
    products_offered: List[str] = Field(default_factory=list)
    rule_upload_allowed: bool = False
    rule_upload_method: Optional[str] = None
    rule_approval_required: bool = True
    default_rule_versioning: bool = True
    use_naics_enrichment: bool = False
    preferred_naics_source: Optional[str] = None
    pas_webhook_url: Optional[str] = None
    webhook_auth_type: Optional[str] = None
    webhook_secret_ref: Optional[str] = None
    contract_ref: Optional[str] = None
    billing_contact_email: Optional[str] = None
    retention_policy_days: Optional[int] = Field(None, ge=0)
    created_by: Optional[str] = None
    additional_json: Optional[str] = None


class CarrierDetails(CarrierWriteRequest):
    carrier_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class CarrierSummary(ApiModel):
    carrier_id: str
    legal_name: str
    display_name: str
    country: Optional[str] = None
    primary_contact_email: Optional[str] = None


class CarriersResponse(ApiModel):
    data: List[CarrierSummary]
    pagination: PaginationInfo


class ProductCreateRequest(ApiModel):
    """Request model for creating a product."""
    name: str = Field(..., min_length=1)
    carrier: str = Field(..., min_length=1)
    description: Optional[str] = None
    product_type: Optional[str] = None
    per_occurrence: int = Field(0, ge=0)
    aggregate: int = Field(0, ge=0)
    min_annual_revenue: int = Field(0, ge=0)
    max_annual_revenue: int = Field(0, ge=0)
    naics_allowed: List[str] = Field(default_factory=list)


class ProductDetails(ProductCreateRequest):
    product_id: str
    created_at: datetime


class ProductSummary(ApiModel):
    product_id: str
    name: str
    carrier: str


class ProductsResponse(ApiModel):
    data: List[ProductSummary]
    pagination: PaginationInfo


class UserCreateRequest(ApiModel):
    """Request model for creating a user."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    roles: List[str] = Field(default_factory=lambda: ["agent"])
    organization_name: Optional[str] = None
    is_active: bool = True
    auth_provider: Optional[str] = "local"


class UserProfile(ApiModel):
    user_id: str
    name: str
    email: str
    roles: List[str]
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    is_active: bool
    auth_provider: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None


class UserSummary(ApiModel):
    user_id: str
    name: str
    email: str
    roles: List[str]
    is_active: bool


class UsersResponse(ApiModel):
    data: List[UserSummary]
    pagination: PaginationInfo
