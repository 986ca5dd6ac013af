"""
Sample data loaded into the in-memory stores at startup.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from shared.logging import get_logger

from .catalog.models import Carrier, Product, User
from .catalog.service import CatalogService
from .checker.models import Decision, Location, Submission
from .checker.store import SubmissionStore
from .rules.models import Rule

logger = get_logger("appetite.seed")


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def sample_rules(now: Optional[datetime] = None) -> List[Rule]:
    now = now or datetime.now(timezone.utc)
    return [
        Rule(
            rule_id="rul-1001",
            title="No liquor stores in Zone A",
            description="Blocks appetite for retail liquor locations in high-risk zones.",
            business_type="Retail",
            naics_codes=["445310"],
            states=["CA", "TX"],
            carrier="Acme Insurance",
            product="General Liability",
            restrictions=["no-drive-thru", "no-24hr"],
            priority="high",
            status="Active",
            created_at=_ts("2025-06-15T09:12:00Z"),
            updated_at=_ts("2025-09-01T14:22:00Z"),
        ),
        Rule(
            rule_id="rul-1002",
            title="High-risk restaurants - extra premium",
            description="Restaurants with >100 seats require special underwriting.",
            business_type="Restaurant",
            naics_codes=["722511"],
            states=["NY"],
            carrier="Beta Mutual",
            product="Property & Liability",
            restrictions=["seating-limit"],
            priority="medium",
            status="Active",
            created_at=_ts("2024-11-05T11:00:00Z"),
            updated_at=_ts("2025-02-20T08:30:00Z"),
        ),
        Rule(
            rule_id="rul-1010",
            title="Outdoor dining - location sensitivity",
            description="Outdoor dining near busy highways flagged for extra review.",
            business_type="Restaurant",
            naics_codes=["722511", "722513"],
            states=["CA", "NV"],
            carrier="Acme Insurance",
            product="General Liability",
            restrictions=["no-sidewalk-dining"],
            priority="low",
            status="Active",
            created_at=_ts("2025-01-10T10:00:00Z"),
            updated_at=_ts("2025-03-15T09:45:00Z"),
        ),
        Rule(
            rule_id="rul-1003",
            title="Property coverage restrictions",
            description="Limits property coverage in flood zones.",
            business_type="Property",
            naics_codes=["445110"],
            states=["FL", "LA"],
            carrier="Beta Mutual",
            product="Property",
            restrictions=["flood-zone-restricted"],
            priority="high",
            status="Active",
            created_at=now - timedelta(days=10),
            updated_at=now - timedelta(days=5),
        ),
        Rule(
            rule_id="rul-1004",
            title="Workers comp exclusions",
            description="Excludes certain high-risk activities.",
            business_type="Services",
            naics_codes=["561720"],
            states=["CA", "NY"],
            carrier="Beta Mutual",
            product="Workers Comp",
            restrictions=["no-hazardous-materials"],
            priority="low",
            status="Active",
            created_at=now - timedelta(days=3),
            updated_at=now - timedelta(days=1),
        ),
    ]


def sample_submissions(now: Optional[datetime] = None) -> List[Submission]:
    now = now or datetime.now(timezone.utc)
    return [
        Submission(
            submission_id="sub-001",
            business_desc="Small family restaurant",
            naics_code="722511",
            location=Location(state="CA", zipcode="94016"),
            decision=Decision.ELIGIBLE,
            confidence=0.92,
            reason="Meets appetite guidelines for restaurants in California",
            matched_rule="Restaurant_FoodService_CA_001",
            evaluated_at=now - timedelta(hours=2),
        ),
        Submission(
            submission_id="sub-002",
            business_desc="Grocery store",
            naics_code="445110",
            location=Location(state="NY"),
            decision=Decision.DECLINED,
            confidence=0.85,
            reason="Product not offered for NAICS 445110 in NY",
            matched_rule="Grocery_Retail_NY_002",
            evaluated_at=now - timedelta(hours=1),
        ),
    ]


def sample_carriers(now: Optional[datetime] = None) -> List[Carrier]:
    now = now or datetime.now(timezone.utc)
    return [
        Carrier(
            carrier_id="car-001",
            legal_name="Acme Insurance Company",
            display_name="Acme Insurance",
            country="US",
            products_offered=["prod-001", "prod-002"],
            rule_upload_allowed=True,
            created_at=now - timedelta(days=45),
        ),
        Carrier(
            carrier_id="car-002",
            legal_name="Beta Mutual Insurance",
            display_name="Beta Mutual",
            country="US",
            products_offered=["prod-003"],
            created_at=now - timedelta(days=40),
        ),
    ]


def sample_products(now: Optional[datetime] = None) -> List[Product]:
    now = now or datetime.now(timezone.utc)
    return [
        Product(
            product_id="prod-001",
            name="General Liability - SME",
            carrier="Acme Insurance",
            per_occurrence=1000000,
            aggregate=2000000,
            max_annual_revenue=5000000,
            naics_allowed=["445310", "722511"],
            created_at=now - timedelta(days=30),
        ),
        Product(
            product_id="prod-002",
            name="Property - Retail",
            carrier="Acme Insurance",
            per_occurrence=500000,
            aggregate=1000000,
            max_annual_revenue=2000000,
            naics_allowed=["445110", "445120"],
            created_at=now - timedelta(days=20),
        ),
        Product(
            product_id="prod-003",
            name="Workers Comp - SME",
            carrier="Beta Mutual",
            per_occurrence=1000000,
            aggregate=1000000,
            max_annual_revenue=3000000,
            naics_allowed=["722511", "561720"],
            created_at=now - timedelta(days=15),
        ),
    ]


def sample_users() -> List[User]:
    return [
        User(user_id="usr-001", name="System Admin", email="admin@appetitechecker.com",
             roles=["admin"], organization_id="org-001", organization_name="System Organization"),
        User(user_id="usr-002", name="John Carrier", email="carrier@example.com",
             roles=["carrier"], organization_id="org-002", organization_name="ABC Insurance"),
        User(user_id="usr-003", name="Jane Agent", email="agent@example.com",
             roles=["agent"], organization_id="org-003", organization_name="XYZ Brokerage"),
    ]


def seed_catalog(catalog: CatalogService, submissions: SubmissionStore) -> None:
    """Load sample data into empty stores. Non-empty stores are left alone."""
    now = datetime.now(timezone.utc)

    if catalog.rule_store.count() == 0:
        for rule in sample_rules(now):
            catalog.rule_store.add(rule)
    if next(submissions.scan(), None) is None:
        for submission in sample_submissions(now):
            submissions.append(submission)
    if len(catalog.carriers) == 0:
        for carrier in sample_carriers(now):
            catalog.carriers.add(carrier)
    if len(catalog.products) == 0:
        for product in sample_products(now):
            catalog.products.add(product)
    if len(catalog.users) == 0:
        for user in sample_users():
            catalog.users.add(user)

    logger.info(
        "Sample data seeded",
        rules=catalog.rule_store.count(),
        carriers=len(catalog.carriers),
        products=len(catalog.products),
        users=len(catalog.users)
    )
