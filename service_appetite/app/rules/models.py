"""
Rule data models for the Appetite Service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ..schemas import ApiModel, PaginationInfo

PRIORITY_RANKS = {"high": 3, "medium": 2}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def priority_rank(priority: Optional[str]) -> int:
    """Three-level ordinal: high=3, medium=2, anything else=1."""
    if not priority:
        return 1
    return PRIORITY_RANKS.get(priority.strip().lower(), 1)


@dataclass
class Rule:
    """Underwriting appetite rule."""
    rule_id: str
    title: str
    description: Optional[str] = None
    business_type: Optional[str] = None
    naics_codes: List[str] = field(default_factory=list)
    states: List[str] = field(default_factory=list)
    carrier: Optional[str] = None
    product: Optional[str] = None
    restrictions: List[str] = field(default_factory=list)
    priority: Optional[str] = None
    outcome: Optional[str] = None
    rule_version: Optional[str] = None
    status: Optional[str] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    min_revenue: Optional[Decimal] = None
    max_revenue: Optional[Decimal] = None
    min_years_in_business: Optional[int] = None
    max_years_in_business: Optional[int] = None
    prior_claims_allowed: Optional[int] = None
    conditions: List[str] = field(default_factory=list)
    contact_email: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    additional_json: Optional[str] = None

    @property
    def priority_rank(self) -> int:
        return priority_rank(self.priority)

    @property
    def is_restricted(self) -> bool:
        return len(self.restrictions) > 0


class RuleWriteRequest(ApiModel):
    """Request model for creating or updating a rule."""
    title: str = Field(..., min_length=1, description="Rule title")
    description: Optional[str] = None
    business_type: Optional[str] = None
    naics_codes: Optional[List[str]] = None
    states: Optional[List[str]] = None
    carrier: Optional[str] = None
    product: Optional[str] = None
    restrictions: Optional[List[str]] = None
    priority: Optional[str] = None
    outcome: Optional[str] = None
    rule_version: Optional[str] = None
    status: Optional[str] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    min_revenue: Optional[Decimal] = None
    max_revenue: Optional[Decimal] = None
    min_years_in_business: Optional[int] = None
    max_years_in_business: Optional[int] = None
    prior_claims_allowed: Optional[int] = None
    conditions: Optional[List[str]] = None
    contact_email: Optional[str] = None
    created_by: Optional[str] = None
    additional_json: Optional[str] = None


class RuleDetails(ApiModel):
    """Full rule representation."""
    rule_id: str
    title: str
    description: Optional[str] = None
    business_type: Optional[str] = None
    naics_codes: List[str] = Field(default_factory=list)
    states: List[str] = Field(default_factory=list)
    carrier: Optional[str] = None
    product: Optional[str] = None
    restrictions: List[str] = Field(default_factory=list)
    priority: Optional[str] = None
    outcome: Optional[str] = None
    rule_version: Optional[str] = None
    status: Optional[str] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    min_revenue: Optional[Decimal] = None
    max_revenue: Optional[Decimal] = None
    min_years_in_business: Optional[int] = None
    max_years_in_business: Optional[int] = None
    prior_claims_allowed: Optional[int] = None
    conditions: List[str] = Field(default_factory=list)
    contact_email: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    additional_json: Optional[str] = None


class RuleSummary(ApiModel):
    """Rule list entry for the management API."""
    rule_id: str
    title: str
    priority: Optional[str] = None
    status: Optional[str] = None


class RulesResponse(ApiModel):
    """Paginated rule summaries."""
    data: List[RuleSummary]
    pagination: PaginationInfo


class SearchRule(ApiModel):
    """Rule as returned by the search API."""
    rule_id: str
    title: str
    description: Optional[str] = None
    business_type: Optional[str] = None
    naics_codes: List[str] = Field(default_factory=list)
    states: List[str] = Field(default_factory=list)
    carrier: Optional[str] = None
    product: Optional[str] = None
    restrictions: List[str] = Field(default_factory=list)
    priority: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class SearchRuleResponse(ApiModel):
    """Paginated search results."""
    data: List[SearchRule]
    pagination: PaginationInfo


class CustomFilterRequest(ApiModel):
    """Advanced filter request for rule search."""
    carrier: Optional[str] = None
    product: Optional[str] = None
    states: Optional[List[str]] = None
    naics_codes: Optional[List[str]] = None
    business_types: Optional[List[str]] = None
    priority: Optional[str] = None
    include_restricted: bool = True
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1)
    sort_by: Optional[str] = None
