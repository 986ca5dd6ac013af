"""
Appetite service for the Appetite Checker backend.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import Body, Depends, Query

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import PersistenceError, ValidationError

from .analytics.models import (
    AddEventRequest, AddEventResponse, AnalyticsEvent, CanvasAnalyticsResponse,
    FetchAnalyticsResponse
)
from .analytics.service import AnalyticsService, InMemoryEventStore
from .auth import ADMIN, CARRIER, Actor, authorize, get_actor, require_roles
from .catalog.models import (
    CarrierDetails, CarrierSummary, CarriersResponse, CarrierWriteRequest,
    ProductCreateRequest, ProductDetails, ProductSummary, ProductsResponse,
    UserCreateRequest, UserProfile, UserSummary, UsersResponse
)
from .catalog.service import CatalogService
from .checker.evaluator import EligibilityEvaluator, prepare_summary
from .checker.matcher import StaticRuleMatcher, StoreRuleMatcher
from .checker.models import (
    AlternativeOption, ConfidenceScoreResponse, EligibilityCheckRequest,
    EligibilityCheckResponse, EvaluateRequest, EvaluateResponse, Location,
    NotifyAnalyticsRequest, NotifyAnalyticsResponse, PrepareSummaryRequest,
    PrepareSummaryResponse, RecommendationsResponse, ResultResponse
)
from .checker.store import InMemorySubmissionStore
from .pagination import Page
from .persistence.postgres import PostgreSQLPersistence
from .rules.models import (
    CustomFilterRequest, RuleDetails, RulesResponse, RuleSummary, RuleWriteRequest,
    SearchRule, SearchRuleResponse
)
from .rules.search import SearchEngine
from .rules.store import InMemoryRuleStore
from .schemas import PaginationInfo
from .seed import seed_catalog

SERVICE_NAME = "appetite"
SERVICE_PORT = 8011


def _search_response(page: Page) -> SearchRuleResponse:
    return SearchRuleResponse(
        data=[SearchRule.model_validate(rule) for rule in page.items],
        pagination=PaginationInfo.from_pagination(page.pagination),
    )


class AppetiteService(BaseService):
    """Appetite service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        # Stores are built once per process and injected into every component
        self.rule_store = InMemoryRuleStore()
        self.submission_store = InMemorySubmissionStore()
        self.event_store = InMemoryEventStore()

        self.catalog = CatalogService(self.rule_store)
        self.search_engine = SearchEngine(self.rule_store)
        self.evaluator = EligibilityEvaluator(
            rule_matcher=self._build_matcher(),
            submission_store=self.submission_store,
            rule_store=self.rule_store,
            product_naics=self.catalog.product_naics,
        )
        self.analytics = AnalyticsService(self.event_store, self.submission_store, self.catalog)

        self.persistence: Optional[PostgreSQLPersistence] = None
        if self.config.persistence_enabled:
            self.persistence = PostgreSQLPersistence(self.config.postgres_dsn)

        if self.config.seed_sample_data:
            seed_catalog(self.catalog, self.submission_store)

        self._setup_checker_routes()
        self._setup_search_routes()
        self._setup_canvas_routes()
        self._setup_analytics_routes()

    def _build_matcher(self):
        if self.config.rule_matcher == "store":
            return StoreRuleMatcher(self.rule_store)
        return StaticRuleMatcher()

    def _page_size_query(self, default: int):
        return Query(default, ge=1, le=self.config.max_page_size, alias="pageSize")

    def _setup_checker_routes(self):
        """Set up eligibility checker routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Appetite Checker - Appetite Service",
                "version": "1.0.0",
                "capabilities": ["evaluation", "search", "catalog", "analytics"],
                "rule_matcher": self.config.rule_matcher,
            }

        @self.app.post("/api/checker/evaluate", response_model=EvaluateResponse)
        async def evaluate(request: EvaluateRequest):
            """Evaluate a submission and record the outcome."""
            with self.metrics.time_operation("appetite_evaluation_duration_seconds"):
                result = self.evaluator.evaluate(
                    submission_id=request.submission_id,
                    business_desc=request.business_desc,
                    naics_code=request.naics_code,
                    location=Location(state=request.location.state, zipcode=request.location.zipcode),
                )
            self.metrics.record_evaluation(result.decision.value)

            if self.persistence is not None:
                submission = self.submission_store.get_by_id(result.submission_id)
                if not await self.persistence.save_submission(submission):
                    self.logger.warning(
                        "Submission kept in memory only", submission_id=result.submission_id
                    )

            return EvaluateResponse(
                submission_id=result.submission_id,
                decision=result.decision,
                matched_rule=result.matched_rule,
                reason=result.reason,
            )

        @self.app.get("/api/checker/confidenceScore", response_model=ConfidenceScoreResponse)
        async def confidence_score(
            naics: str = Query(..., min_length=1),
            desc: str = Query(""),
        ):
            """Confidence for a classification; nothing is recorded."""
            score = self.evaluator.confidence_score(naics, desc)
            return ConfidenceScoreResponse(naics=naics, confidence_score=score, desc=desc)

        @self.app.post("/api/checker/eligibilityCheck", response_model=EligibilityCheckResponse)
        async def eligibility_check(request: EligibilityCheckRequest):
            """Check whether a product is offered for a NAICS code and state."""
            result = self.evaluator.check_eligibility(
                request.product_id, request.naics_code, request.location.state
            )
            return EligibilityCheckResponse(
                submission_id=request.submission_id,
                product_id=request.product_id,
                eligible=result.eligible,
                reason=result.reason,
            )

        @self.app.get("/api/checker/recommendations", response_model=RecommendationsResponse)
        async def recommendations(submission_id: str = Query(..., alias="submissionId")):
            """Alternate classifications or products for a submission."""
            alternatives = self.evaluator.recommendations(submission_id)
            return RecommendationsResponse(
                submission_id=submission_id,
                alternatives=[AlternativeOption.model_validate(a) for a in alternatives],
            )

        @self.app.post("/api/checker/prepareSummary", response_model=PrepareSummaryResponse)
        async def summary(request: PrepareSummaryRequest):
            return PrepareSummaryResponse(
                submission_id=request.submission_id,
                summary=prepare_summary(request.decision, request.confidence, request.reason),
            )

        @self.app.get("/api/checker/result/{submission_id}", response_model=ResultResponse)
        async def get_result(submission_id: str):
            """Most recent evaluation for a submission."""
            submission = self.evaluator.get_result(submission_id)
            return ResultResponse(
                submission_id=submission.submission_id,
                decision=submission.decision,
                confidence=submission.confidence,
                reason=submission.reason,
            )

        @self.app.post("/api/checker/notifyAnalytics", response_model=NotifyAnalyticsResponse)
        async def notify_analytics(request: NotifyAnalyticsRequest):
            """Record a checker evaluation in the analytics log."""
            self.analytics.add_event(AnalyticsEvent(
                event_id=f"evt-{uuid.uuid4()}",
                timestamp=request.timestamp,
                user_id="checker",
                action="checker_evaluation",
                metadata={
                    "submission_id": request.submission_id,
                    "decision": request.decision,
                    "processing_time_ms": request.processing_time_ms,
                },
            ))
            self.metrics.record_business_event("checker_evaluation")
            return NotifyAnalyticsResponse(
                status="ok",
                message="Event logged to analytics",
                submission_id=request.submission_id,
            )

    def _setup_search_routes(self):
        """Set up rule search routes."""

        @self.app.get("/api/search/getRules", response_model=SearchRuleResponse)
        async def get_rules(
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(self.config.default_page_size),
            sort_by: Optional[str] = Query(None, alias="sortBy"),
            q: Optional[str] = Query(None),
        ):
            """All rules, optionally filtered by a free-text query."""
            self.metrics.record_search("all")
            return _search_response(self.search_engine.get_rules(page, page_size, sort_by, q))

        @self.app.get("/api/search/getRulesByKeyword", response_model=SearchRuleResponse)
        async def get_rules_by_keyword(
            keyword: str = Query(""),
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(10),
        ):
            self.metrics.record_search("keyword")
            return _search_response(self.search_engine.get_rules_by_keyword(keyword, page, page_size))

        @self.app.get("/api/search/getRulesByNaics/{naics_code}", response_model=SearchRuleResponse)
        async def get_rules_by_naics(
            naics_code: str,
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(20),
        ):
            self.metrics.record_search("naics")
            return _search_response(self.search_engine.get_rules_by_naics(naics_code, page, page_size))

        @self.app.get("/api/search/getRulesByBusinessType/{business_type}",
                      response_model=SearchRuleResponse)
        async def get_rules_by_business_type(
            business_type: str,
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(20),
        ):
            self.metrics.record_search("business_type")
            return _search_response(
                self.search_engine.get_rules_by_business_type(business_type, page, page_size)
            )

        @self.app.post("/api/search/getRulesByCustomFilter", response_model=SearchRuleResponse)
        async def get_rules_by_custom_filter(request: CustomFilterRequest):
            """Faceted rule search."""
            if request.page_size > self.config.max_page_size:
                raise ValidationError(
                    f"pageSize must not exceed {self.config.max_page_size}",
                    {"page_size": request.page_size, "max_page_size": self.config.max_page_size}
                )
            self.metrics.record_search("custom")
            return _search_response(self.search_engine.get_rules_by_custom_filter(
                carrier=request.carrier,
                product=request.product,
                states=request.states,
                naics_codes=request.naics_codes,
                business_types=request.business_types,
                priority=request.priority,
                include_restricted=request.include_restricted,
                page=request.page,
                page_size=request.page_size,
                sort_by=request.sort_by,
            ))

    def _setup_canvas_routes(self):
        """Set up catalog management routes."""

        # Rules

        @self.app.get("/api/canvas/rules", response_model=RulesResponse)
        async def list_rules(
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(self.config.default_page_size),
            sort_by: Optional[str] = Query(None, alias="sortBy"),
            actor: Actor = Depends(require_roles()),
        ):
            result = self.catalog.list_rules(page, page_size, sort_by)
            return RulesResponse(
                data=[RuleSummary.model_validate(rule) for rule in result.items],
                pagination=PaginationInfo.from_pagination(result.pagination),
            )

        @self.app.post("/api/canvas/rules", response_model=RuleDetails, status_code=201)
        async def create_rule(
            request: RuleWriteRequest,
            actor: Actor = Depends(require_roles(ADMIN, CARRIER)),
        ):
            """Create a rule."""
            fields = request.model_dump()
            fields["created_by"] = fields.get("created_by") or actor.user_id
            rule = self.catalog.create_rule(fields)

            if self.persistence is not None and not await self.persistence.save_rule(rule):
                self.rule_store.remove(rule.rule_id)
                raise PersistenceError("Failed to save rule", {"rule_id": rule.rule_id})

            self.metrics.record_business_event("rule_created")
            return RuleDetails.model_validate(rule)

        @self.app.get("/api/canvas/rule/{rule_id}", response_model=RuleDetails)
        async def get_rule(rule_id: str, actor: Actor = Depends(require_roles())):
            return RuleDetails.model_validate(self.catalog.get_rule(rule_id))

        @self.app.put("/api/canvas/rule/{rule_id}", response_model=RuleDetails)
        async def update_rule(
            rule_id: str,
            request: RuleWriteRequest,
            actor: Actor = Depends(require_roles(ADMIN, CARRIER)),
        ):
            """Replace a rule's mutable fields."""
            previous = self.catalog.get_rule(rule_id)
            fields = request.model_dump()
            fields["created_by"] = fields.get("created_by") or previous.created_by
            rule = self.catalog.update_rule(rule_id, fields)

            if self.persistence is not None and not await self.persistence.save_rule(rule):
                self.rule_store.update(previous)
                raise PersistenceError("Failed to save rule", {"rule_id": rule_id})

            self.metrics.record_business_event("rule_updated")
            return RuleDetails.model_validate(rule)

        @self.app.delete("/api/canvas/rule/{rule_id}")
        async def delete_rule(rule_id: str, actor: Actor = Depends(require_roles(ADMIN))):
            position = self.rule_store.position(rule_id)
            rule = self.catalog.delete_rule(rule_id)

            if self.persistence is not None and not await self.persistence.delete_rule(rule_id):
                self.rule_store.add(rule, position=position)
                raise PersistenceError("Failed to delete rule", {"rule_id": rule_id})

            self.metrics.record_business_event("rule_deleted")
            return {"success": True, "message": "Rule deleted successfully", "ruleId": rule_id}

        # Carriers

        @self.app.get("/api/canvas/carriers", response_model=CarriersResponse)
        async def list_carriers(
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(self.config.default_page_size),
            actor: Actor = Depends(require_roles()),
        ):
            result = self.catalog.list_carriers(page, page_size)
            return CarriersResponse(
                data=[CarrierSummary.model_validate(c) for c in result.items],
                pagination=PaginationInfo.from_pagination(result.pagination),
            )

        @self.app.post("/api/canvas/carriers", response_model=CarrierDetails, status_code=201)
        async def create_carrier(
            request: CarrierWriteRequest,
            actor: Actor = Depends(require_roles(ADMIN)),
        ):
            fields = request.model_dump()
            fields["created_by"] = fields.get("created_by") or actor.user_id
            return CarrierDetails.model_validate(self.catalog.create_carrier(fields))

        @self.app.get("/api/canvas/carrier/{carrier_id}", response_model=CarrierDetails)
        async def get_carrier(carrier_id: str, actor: Actor = Depends(require_roles())):
            return CarrierDetails.model_validate(self.catalog.get_carrier(carrier_id))

        @self.app.put("/api/canvas/carrier/{carrier_id}", response_model=CarrierDetails)
        async def update_carrier(
            carrier_id: str,
            request: CarrierWriteRequest,
            actor: Actor = Depends(require_roles(ADMIN)),
        ):
            fields = request.model_dump()
            fields["created_by"] = fields.get("created_by") or self.catalog.get_carrier(carrier_id).created_by
            carrier = self.catalog.update_carrier(carrier_id, fields)
            return CarrierDetails.model_validate(carrier)

        @self.app.delete("/api/canvas/carrier/{carrier_id}")
        async def delete_carrier(carrier_id: str, actor: Actor = Depends(require_roles(ADMIN))):
            self.catalog.delete_carrier(carrier_id)
            return {"success": True, "message": "Carrier deleted successfully", "carrierId": carrier_id}

        # Products

        @self.app.get("/api/canvas/products", response_model=ProductsResponse)
        async def list_products(
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(self.config.default_page_size),
            carrier: Optional[str] = Query(None),
            actor: Actor = Depends(require_roles()),
        ):
            result = self.catalog.list_products(page, page_size, carrier)
            return ProductsResponse(
                data=[ProductSummary.model_validate(p) for p in result.items],
                pagination=PaginationInfo.from_pagination(result.pagination),
            )

        @self.app.post("/api/canvas/products", response_model=ProductDetails, status_code=201)
        async def create_product(
            request: ProductCreateRequest,
            actor: Actor = Depends(require_roles(ADMIN, CARRIER)),
        ):
            product = self.catalog.create_product(request.model_dump())
            self.metrics.record_business_event("product_created")
            return ProductDetails.model_validate(product)

        @self.app.get("/api/canvas/product/{product_id}", response_model=ProductDetails)
        async def get_product(product_id: str, actor: Actor = Depends(require_roles())):
            return ProductDetails.model_validate(self.catalog.get_product(product_id))

        # Users

        @self.app.get("/api/canvas/users", response_model=UsersResponse)
        async def list_users(
            page: int = Query(1, ge=1),
            page_size: int = self._page_size_query(self.config.default_page_size),
            role: Optional[str] = Query(None),
            actor: Actor = Depends(require_roles(ADMIN)),
        ):
            result = self.catalog.list_users(page, page_size, role)
            return UsersResponse(
                data=[UserSummary.model_validate(u) for u in result.items],
                pagination=PaginationInfo.from_pagination(result.pagination),
            )

        @self.app.post("/api/canvas/users", response_model=UserProfile, status_code=201)
        async def create_user(
            request: UserCreateRequest,
            actor: Actor = Depends(require_roles(ADMIN)),
        ):
            user = self.catalog.create_user(request.model_dump())
            self.metrics.record_business_event("user_created")
            return UserProfile.model_validate(user)

        @self.app.get("/api/canvas/user/{user_id}", response_model=UserProfile)
        async def get_user(user_id: str, actor: Actor = Depends(get_actor)):
            """A user's profile; admins may read any profile, others only their own."""
            if actor.user_id != user_id:
                authorize(actor, ADMIN)
            else:
                authorize(actor)
            return UserProfile.model_validate(self.catalog.get_user(user_id))

        @self.app.get("/api/canvas/analytics", response_model=CanvasAnalyticsResponse)
        async def canvas_analytics(
            since: Optional[datetime] = Query(None),
            actor: Actor = Depends(require_roles()),
        ):
            """Catalog-wide totals and growth."""
            now = datetime.now(timezone.utc)
            return CanvasAnalyticsResponse(
                snapshot_at=now,
                metrics=self.analytics.canvas_snapshot(since=since, now=now),
            )

    def _setup_analytics_routes(self):
        """Set up analytics routes."""

        @self.app.post("/api/analytics/add", response_model=AddEventResponse, status_code=201)
        async def add_event(request: AddEventRequest = Body(...)):
            """Append a telemetry event."""
            event = self.analytics.add_event(AnalyticsEvent(**request.model_dump()))
            self.metrics.record_business_event(event.action)
            return AddEventResponse(
                status="ok",
                message="Event recorded",
                event_id=event.event_id,
            )

        @self.app.get("/api/analytics/fetch", response_model=FetchAnalyticsResponse)
        async def fetch_analytics(
            since: Optional[datetime] = Query(None),
            until: Optional[datetime] = Query(None),
            actor: Actor = Depends(require_roles()),
        ):
            """Aggregate metrics over events and submissions."""
            return FetchAnalyticsResponse(
                snapshot_at=datetime.now(timezone.utc),
                metrics=self.analytics.fetch(since, until),
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check appetite service dependencies."""
        dependencies = {
            "rule_store": "ok",
            "submission_store": "ok",
        }

        if self.persistence is None:
            dependencies["postgres"] = "disabled"
            return dependencies

        try:
            if await self.persistence.health_check():
                dependencies["postgres"] = "ok"
            else:
                dependencies["postgres"] = "error"
        except Exception:
            dependencies["postgres"] = "error"

        return dependencies

    async def start(self):
        """Start persistence and load stored rules and submissions."""
        if self.persistence is None:
            self.logger.info("Appetite service started", rules=self.rule_store.count())
            return

        start_time = time.time()
        await self.persistence.start()

        try:
            rules = await self.persistence.load_all_rules()
            submissions = await self.persistence.load_all_submissions()
        except PersistenceError:
            await self.persistence.stop()
            raise

        # Seed rows are written only to empty tables
        if rules:
            self.rule_store.clear()
            for rule in rules:
                self.rule_store.add(rule)
        else:
            for rule in list(self.rule_store.scan()):
                await self.persistence.save_rule(rule)

        if submissions:
            self.submission_store.clear()
            for submission in submissions:
                self.submission_store.append(submission)
        else:
            for submission in list(self.submission_store.scan()):
                await self.persistence.save_submission(submission)

        self.logger.info(
            "Appetite service started",
            rules=self.rule_store.count(),
            submissions=len(self.submission_store),
            load_time_ms=round((time.time() - start_time) * 1000, 2)
        )

    async def stop(self):
        """Stop appetite service components."""
        if self.persistence is not None:
            await self.persistence.stop()
        self.logger.info("Appetite service stopped")


def create_app():
    """Create appetite service application."""
    service = AppetiteService()
    return service.app


if __name__ == "__main__":
    service = AppetiteService()
    service.run()
