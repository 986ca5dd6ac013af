"""
Catalog service: the write path for rules, carriers, products and users.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional

from shared.errors import ConflictError, NotFoundError, ValidationError
from shared.logging import get_logger

from ..pagination import Page, paginate
from ..rules.models import Rule, utcnow
from ..rules.search import sort_rules
from ..rules.store import RuleStore
from .ids import SequentialIdGenerator
from .models import Carrier, Product, User
from .store import InMemoryRepository

DEFAULT_RULE_STATUS = "Draft"

# Fields a rule update may never change
RULE_IMMUTABLE_FIELDS = ("rule_id", "created_at")


def _clean_codes(values: Optional[List[str]], field_name: str) -> List[str]:
    cleaned = []
    for value in values or []:
        value = (value or "").strip()
        if not value:
            raise ValidationError(f"{field_name} must not contain empty values", {"field": field_name})
        cleaned.append(value)
    return cleaned


def _clean_states(values: Optional[List[str]]) -> List[str]:
    states = []
    for value in _clean_codes(values, "states"):
        state = value.upper()
        if len(state) != 2 or not state.isalpha():
            raise ValidationError(f"Invalid state code '{value}'", {"field": "states", "value": value})
        states.append(state)
    return states


def _validate_rule_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    fields = dict(fields)
    fields["naics_codes"] = _clean_codes(fields.get("naics_codes"), "naics_codes")
    fields["states"] = _clean_states(fields.get("states"))
    fields["restrictions"] = list(fields.get("restrictions") or [])
    fields["conditions"] = list(fields.get("conditions") or [])

    start, end = fields.get("effective_from"), fields.get("effective_to")
    if start and end and start > end:
        raise ValidationError("effectiveFrom must not be after effectiveTo")

    low, high = fields.get("min_revenue"), fields.get("max_revenue")
    if low is not None and high is not None and low > high:
        raise ValidationError("minRevenue must not exceed maxRevenue")

    low, high = fields.get("min_years_in_business"), fields.get("max_years_in_business")
    if low is not None and high is not None and low > high:
        raise ValidationError("minYearsInBusiness must not exceed maxYearsInBusiness")

    return fields


class CatalogService:
    """Manages catalog entities and the rule write path."""

    def __init__(
        self,
        rule_store: RuleStore,
        carriers: Optional[InMemoryRepository[Carrier]] = None,
        products: Optional[InMemoryRepository[Product]] = None,
        users: Optional[InMemoryRepository[User]] = None,
    ):
        self.rule_store = rule_store
        self.carriers = carriers or InMemoryRepository("Carrier", "carrier_id")
        self.products = products or InMemoryRepository("Product", "product_id")
        self.users = users or InMemoryRepository("User", "user_id")
        self.logger = get_logger("appetite.catalog")

        self._rule_ids = SequentialIdGenerator("rul")
        self._carrier_ids = SequentialIdGenerator("car")
        self._product_ids = SequentialIdGenerator("prod")
        self._user_ids = SequentialIdGenerator("usr")
        self._org_ids = SequentialIdGenerator("org")

    # Rules

    def get_rule(self, rule_id: str) -> Rule:
        rule = self.rule_store.get_by_id(rule_id)
        if rule is None:
            raise NotFoundError("Rule", rule_id)
        return rule

    def list_rules(self, page: int, page_size: int, sort_by: Optional[str] = None) -> Page[Rule]:
        rules = sort_rules(list(self.rule_store.scan()), sort_by)
        return paginate(rules, page, page_size)

    def create_rule(self, fields: Dict[str, Any]) -> Rule:
        fields = _validate_rule_fields(fields)
        for immutable in RULE_IMMUTABLE_FIELDS:
            fields.pop(immutable, None)
        fields["status"] = fields.get("status") or DEFAULT_RULE_STATUS
        fields.pop("updated_at", None)

        rule_id = self._rule_ids.next_id(
            self.rule_store.count(),
            lambda candidate: self.rule_store.get_by_id(candidate) is not None
        )
        rule = self.rule_store.add(Rule(rule_id=rule_id, **fields))
        self.logger.info("Rule created", rule_id=rule.rule_id, title=rule.title)
        return rule

    def update_rule(self, rule_id: str, fields: Dict[str, Any]) -> Rule:
        existing = self.get_rule(rule_id)
        fields = _validate_rule_fields(fields)
        for immutable in RULE_IMMUTABLE_FIELDS:
            fields.pop(immutable, None)
        fields["updated_at"] = utcnow()

        rule = self.rule_store.update(replace(existing, **fields))
        self.logger.info("Rule updated", rule_id=rule_id, title=rule.title)
        return rule

    def delete_rule(self, rule_id: str) -> Rule:
        rule = self.rule_store.remove(rule_id)
        self.logger.info("Rule deleted", rule_id=rule_id)
        return rule

    # Carriers

    def create_carrier(self, fields: Dict[str, Any]) -> Carrier:
        carrier_id = self._carrier_ids.next_id(len(self.carriers), self.carriers.__contains__)
        carrier = self.carriers.add(Carrier(carrier_id=carrier_id, **fields))
        self.logger.info("Carrier created", carrier_id=carrier_id)
        return carrier

    def get_carrier(self, carrier_id: str) -> Carrier:
        return self.carriers.require(carrier_id)

    def update_carrier(self, carrier_id: str, fields: Dict[str, Any]) -> Carrier:
        existing = self.carriers.require(carrier_id)
        fields = {k: v for k, v in fields.items() if k not in ("carrier_id", "created_at")}
        carrier = self.carriers.update(replace(existing, updated_at=utcnow(), **fields))
        self.logger.info("Carrier updated", carrier_id=carrier_id)
        return carrier

    def delete_carrier(self, carrier_id: str) -> Carrier:
        carrier = self.carriers.remove(carrier_id)
        self.logger.info("Carrier deleted", carrier_id=carrier_id)
        return carrier

    def list_carriers(self, page: int, page_size: int) -> Page[Carrier]:
        return paginate(list(self.carriers.scan()), page, page_size)

    # Products

    def create_product(self, fields: Dict[str, Any]) -> Product:
        fields = dict(fields)
        fields["naics_allowed"] = _clean_codes(fields.get("naics_allowed"), "naics_allowed")
        if fields.get("max_annual_revenue") and fields.get("min_annual_revenue", 0) > fields["max_annual_revenue"]:
            raise ValidationError("minAnnualRevenue must not exceed maxAnnualRevenue")

        product_id = self._product_ids.next_id(len(self.products), self.products.__contains__)
        product = self.products.add(Product(product_id=product_id, **fields))
        self.logger.info("Product created", product_id=product_id, carrier=product.carrier)
        return product

    def get_product(self, product_id: str) -> Product:
        return self.products.require(product_id)

    def list_products(self, page: int, page_size: int, carrier: Optional[str] = None) -> Page[Product]:
        products = list(self.products.scan(lambda p: not carrier or p.carrier == carrier))
        return paginate(products, page, page_size)

    def product_naics(self, product_id: str) -> Optional[List[str]]:
        """Allowed NAICS codes for a product, None when the product is unknown."""
        product = self.products.get(product_id)
        return list(product.naics_allowed) if product else None

    # Users

    def create_user(self, fields: Dict[str, Any]) -> User:
        fields = dict(fields)
        email = fields["email"].strip().lower()
        if any(u.email.lower() == email for u in self.users.scan()):
            raise ConflictError("User with this email already exists", {"email": email})

        user_id = self._user_ids.next_id(len(self.users), self.users.__contains__)
        organization_id = self._org_ids.next_id(
            len(self.users),
            lambda candidate: any(u.organization_id == candidate for u in self.users.scan())
        )
        user = self.users.add(User(
            user_id=user_id,
            organization_id=organization_id,
            **{**fields, "email": email}
        ))
        self.logger.info("User created", user_id=user_id, roles=user.roles)
        return user

    def get_user(self, user_id: str) -> User:
        return self.users.require(user_id)

    def list_users(self, page: int, page_size: int, role: Optional[str] = None) -> Page[User]:
        users = list(self.users.scan(lambda u: not role or any(role in r for r in u.roles)))
        return paginate(users, page, page_size)
