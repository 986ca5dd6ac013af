"""
Checker data models for the Appetite Service.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from ..schemas import ApiModel


class Decision(str, Enum):
    """Appetite decision."""
    ELIGIBLE = "Eligible"
    DECLINED = "Declined"
    RESTRICTED = "Restricted"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Decision"]:
        """Case-insensitive lookup; None when ``value`` names no decision."""
        if not value:
            return None
        for decision in cls:
            if decision.value.lower() == value.strip().lower():
                return decision
        return None


@dataclass(frozen=True)
class Location:
    """Business location."""
    state: str
    zipcode: Optional[str] = None


@dataclass(frozen=True)
class Submission:
    """One evaluation of a prospective insured business. Never mutated."""
    submission_id: str
    business_desc: str
    naics_code: str
    location: Location
    decision: Decision
    confidence: float
    reason: str
    matched_rule: str
    evaluated_at: datetime


@dataclass(frozen=True)
class RuleMatch:
    """Decision and matched rule identifier for a (NAICS, state) pair."""
    decision: Decision
    rule_id: str


@dataclass
class EvaluationResult:
    """Result of evaluating a submission."""
    submission_id: str
    decision: Decision
    matched_rule: str
    reason: str
    confidence: float


@dataclass
class EligibilityResult:
    """Result of a product eligibility check."""
    eligible: bool
    reason: str


@dataclass(frozen=True)
class Alternative:
    """Alternate classification or product suggestion."""
    naics: str
    product_id: str
    desc: str


class LocationInfo(ApiModel):
    state: str = Field(..., description="Two-letter state code")
    zipcode: Optional[str] = None


class EvaluateRequest(ApiModel):
    """Request model for submission evaluation."""
    submission_id: str = Field(..., min_length=1)
    business_desc: str = ""
    naics_code: str
    location: LocationInfo


class EvaluateResponse(ApiModel):
    submission_id: str
    decision: Decision
    matched_rule: str
    reason: str


class ConfidenceScoreResponse(ApiModel):
    naics: str
    confidence_score: float
    desc: str


class EligibilityCheckRequest(ApiModel):
    submission_id: str
    product_id: str
    naics_code: str
    location: LocationInfo


class EligibilityCheckResponse(ApiModel):
    submission_id: str
    product_id: str
    eligible: bool
    reason: str


class AlternativeOption(ApiModel):
    naics: str
    product_id: str
    desc: str


class RecommendationsResponse(ApiModel):
    submission_id: str
    alternatives: List[AlternativeOption]


class PrepareSummaryRequest(ApiModel):
    submission_id: str
    decision: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str


class PrepareSummaryResponse(ApiModel):
    submission_id: str
    summary: str


class ResultResponse(ApiModel):
    submission_id: str
    decision: Decision
    confidence: float
    reason: str


class NotifyAnalyticsRequest(ApiModel):
    submission_id: str
    decision: str
    processing_time_ms: int = Field(0, ge=0)
    timestamp: datetime


class NotifyAnalyticsResponse(ApiModel):
    status: str
    message: str
    submission_id: str
