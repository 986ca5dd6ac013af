"""
Analytics data models for the Appetite Service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..schemas import ApiModel


@dataclass(frozen=True)
class AnalyticsEvent:
    """Telemetry event."""
    event_id: str
    timestamp: datetime
    user_id: str
    action: str
    rule_id: Optional[str] = None
    product_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class AddEventRequest(ApiModel):
    event_id: str = Field(..., min_length=1)
    timestamp: datetime
    user_id: str
    action: str
    rule_id: Optional[str] = None
    product_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AddEventResponse(ApiModel):
    status: str
    message: str
    event_id: str


class EligibilityDistribution(ApiModel):
    eligible: int
    ineligible: int
    conditional: int


class SubmissionOverTime(ApiModel):
    date: str
    count: int


class RuleByProduct(ApiModel):
    product_id: str
    rule_count: int


class AnalyticsMetrics(ApiModel):
    eligibility_distribution: EligibilityDistribution
    submissions_over_time: List[SubmissionOverTime]
    appetite_share: Dict[str, int]
    rules_by_product: List[RuleByProduct]


class FetchAnalyticsResponse(ApiModel):
    snapshot_at: datetime
    metrics: AnalyticsMetrics


class GrowthPoint(ApiModel):
    date: str
    users: int
    rules: int
    carriers: int


class CanvasMetrics(ApiModel):
    total_rules: int
    rules_by_priority: Dict[str, int]
    products_by_carrier: Dict[str, int]
    recent_uploads: int
    total_users: int
    total_carriers: int
    total_products: int
    users_by_role: Dict[str, int]
    growth_data: List[GrowthPoint]


class CanvasAnalyticsResponse(ApiModel):
    snapshot_at: datetime
    metrics: CanvasMetrics
