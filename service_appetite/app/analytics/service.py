"""
Analytics event log and aggregate snapshots.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

from shared.errors import ConflictError
from shared.logging import get_logger

from ..catalog.service import CatalogService
from ..checker.models import Decision
from ..checker.store import SubmissionStore
from .models import (
    AnalyticsEvent, AnalyticsMetrics, CanvasMetrics, EligibilityDistribution,
    GrowthPoint, RuleByProduct, SubmissionOverTime
)

GROWTH_WINDOW_DAYS = 7
RECENT_WINDOW_DAYS = 30


def _aware(value: datetime) -> datetime:
    """Normalize to UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _in_window(value: datetime, since: Optional[datetime], until: Optional[datetime]) -> bool:
    value = _aware(value)
    if since is not None and value < _aware(since):
        return False
    if until is not None and value > _aware(until):
        return False
    return True


class InMemoryEventStore:
    """Append-only analytics event log."""

    def __init__(self):
        self.events: List[AnalyticsEvent] = []
        self._ids = set()

    def append(self, event: AnalyticsEvent) -> None:
        if event.event_id in self._ids:
            raise ConflictError(f"Event {event.event_id} already recorded", {"event_id": event.event_id})
        self._ids.add(event.event_id)
        self.events.append(event)

    def scan(self) -> Iterator[AnalyticsEvent]:
        return iter(list(self.events))

    def __len__(self) -> int:
        return len(self.events)


class AnalyticsService:
    """Records events and computes analytics snapshots."""

    def __init__(self, event_store: InMemoryEventStore, submission_store: SubmissionStore,
                 catalog: CatalogService):
        self.event_store = event_store
        self.submission_store = submission_store
        self.catalog = catalog
        self.logger = get_logger("appetite.analytics")

    def add_event(self, event: AnalyticsEvent) -> AnalyticsEvent:
        self.event_store.append(event)
        self.logger.info("Analytics event recorded", event_id=event.event_id, action=event.action)
        return event

    def fetch(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> AnalyticsMetrics:
        """Aggregate metrics over events and submissions inside the window."""
        events = [e for e in self.event_store.scan() if _in_window(e.timestamp, since, until)]
        submissions = [
            s for s in self.submission_store.scan() if _in_window(s.evaluated_at, since, until)
        ]

        decisions = Counter(s.decision for s in submissions)
        distribution = EligibilityDistribution(
            eligible=decisions[Decision.ELIGIBLE],
            ineligible=decisions[Decision.DECLINED],
            conditional=decisions[Decision.RESTRICTED],
        )

        per_day = Counter(_aware(e.timestamp).date().isoformat() for e in events)
        over_time = [SubmissionOverTime(date=day, count=per_day[day]) for day in sorted(per_day)]

        appetite_share = Counter(
            rule.business_type for rule in self.catalog.rule_store.scan() if rule.business_type
        )

        per_product = Counter(e.product_id for e in events if e.product_id)
        by_product = [
            RuleByProduct(product_id=product_id, rule_count=count)
            for product_id, count in sorted(per_product.items(), key=lambda item: (-item[1], item[0]))
        ]

        return AnalyticsMetrics(
            eligibility_distribution=distribution,
            submissions_over_time=over_time,
            appetite_share=dict(appetite_share),
            rules_by_product=by_product,
        )

    def canvas_snapshot(self, since: Optional[datetime] = None,
                        now: Optional[datetime] = None) -> CanvasMetrics:
        """Catalog-wide totals, distributions and a seven-day growth series."""
        now = _aware(now or datetime.now(timezone.utc))
        since = _aware(since) if since else now - timedelta(days=RECENT_WINDOW_DAYS)

        rules = list(self.catalog.rule_store.scan())
        users = list(self.catalog.users.scan())
        carriers = list(self.catalog.carriers.scan())
        products = list(self.catalog.products.scan())

        rules_by_priority = Counter((rule.priority or "medium") for rule in rules)
        users_by_role = Counter(",".join(user.roles) or "user" for user in users)
        products_by_carrier = Counter(product.carrier for product in products)
        recent = sum(1 for rule in rules if _aware(rule.created_at) >= since)

        growth = []
        for offset in range(GROWTH_WINDOW_DAYS - 1, -1, -1):
            day = (now - timedelta(days=offset)).date()
            growth.append(GrowthPoint(
                date=day.isoformat(),
                users=sum(1 for u in users if _aware(u.created_at).date() == day),
                rules=sum(1 for r in rules if _aware(r.created_at).date() == day),
                carriers=sum(1 for c in carriers if _aware(c.created_at).date() == day),
            ))

        return CanvasMetrics(
            total_rules=len(rules),
            rules_by_priority=dict(rules_by_priority),
            products_by_carrier=dict(products_by_carrier),
            recent_uploads=recent,
            total_users=len(users),
            total_carriers=len(carriers),
            total_products=len(products),
            users_by_role=dict(users_by_role),
            growth_data=growth,
        )
