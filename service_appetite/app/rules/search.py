"""
Rule search and filtering engine.

Predicates combine with AND semantics across predicate types and OR
semantics within a multi-valued predicate (any of several states, any of
several NAICS codes). Results are sorted, then paginated.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from shared.logging import get_logger

from ..pagination import Page, paginate
from .models import Rule
from .store import RuleStore


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


@dataclass
class RuleFilter:
    """Optional search predicates. Unset predicates match everything."""
    query: Optional[str] = None
    keyword: Optional[str] = None
    naics_codes: List[str] = field(default_factory=list)
    business_type: Optional[str] = None
    business_types: List[str] = field(default_factory=list)
    carrier: Optional[str] = None
    product: Optional[str] = None
    states: List[str] = field(default_factory=list)
    priority: Optional[str] = None
    include_restricted: bool = True

    def matches(self, rule: Rule) -> bool:
        if self.query:
            q = self.query.lower()
            if not self._matches_text(rule, q):
                return False

        if self.keyword:
            kw = self.keyword.lower()
            in_states = any(kw in state.lower() for state in rule.states)
            if not (self._matches_text(rule, kw) or in_states):
                return False

        if self.naics_codes and not set(self.naics_codes).intersection(rule.naics_codes):
            return False

        if self.business_type and (rule.business_type or "").lower() != self.business_type.lower():
            return False

        if self.business_types and rule.business_type not in self.business_types:
            return False

        if self.carrier and rule.carrier != self.carrier:
            return False

        if self.product and rule.product != self.product:
            return False

        if self.states and not set(self.states).intersection(rule.states):
            return False

        if self.priority and (rule.priority or "").lower() != self.priority.lower():
            return False

        if not self.include_restricted and rule.is_restricted:
            return False

        return True

    @staticmethod
    def _matches_text(rule: Rule, needle: str) -> bool:
        return (
            _contains(rule.title, needle)
            or _contains(rule.description, needle)
            or _contains(rule.business_type, needle)
            or any(needle in r.lower() for r in rule.restrictions)
        )


SortKey = Callable[[Rule], object]

SORT_FIELDS = {
    "priority": lambda rule: rule.priority_rank,
    "createdat": lambda rule: rule.created_at,
}


def parse_sort(sort_by: Optional[str]) -> List[Tuple[SortKey, bool]]:
    """Parse ``field[:direction]`` clauses into (key, descending) pairs.

    Unrecognized fields sort by rule id ascending.
    """
    if not sort_by or not sort_by.strip():
        return [(lambda rule: rule.rule_id, False)]

    clauses = []
    for part in sort_by.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, direction = part.partition(":")
        key = SORT_FIELDS.get(name.strip().lower())
        if key is None:
            clauses.append((lambda rule: rule.rule_id, False))
            continue
        clauses.append((key, direction.strip().lower() == "desc"))

    return clauses or [(lambda rule: rule.rule_id, False)]


def sort_rules(rules: List[Rule], sort_by: Optional[str]) -> List[Rule]:
    """Stable multi-key sort; the first clause is the primary key."""
    ordered = list(rules)
    # Apply the least significant clause first so earlier clauses win
    for key, descending in reversed(parse_sort(sort_by)):
        ordered.sort(key=key, reverse=descending)
    return ordered


class SearchEngine:
    """Paginated, sorted rule search over a RuleStore."""

    def __init__(self, rule_store: RuleStore):
        self.rule_store = rule_store
        self.logger = get_logger("appetite.search")

    def search(
        self,
        filters: Optional[RuleFilter] = None,
        page: int = 1,
        page_size: int = 25,
        sort_by: Optional[str] = None,
    ) -> Page[Rule]:
        """Return one page of rules matching all supplied predicates."""
        filters = filters or RuleFilter()
        matched = list(self.rule_store.scan(filters.matches))
        result = paginate(sort_rules(matched, sort_by), page, page_size)

        self.logger.debug(
            "Rule search",
            total_items=result.pagination.total_items,
            page=page,
            page_size=page_size,
            sort_by=sort_by
        )
        return result

    def get_rules(self, page: int = 1, page_size: int = 25,
                  sort_by: Optional[str] = None, q: Optional[str] = None) -> Page[Rule]:
        """All rules with an optional free-text query."""
        return self.search(RuleFilter(query=q), page, page_size, sort_by)

    def get_rules_by_keyword(self, keyword: str, page: int = 1, page_size: int = 10) -> Page[Rule]:
        """Keyword match across text fields and state codes."""
        return self.search(RuleFilter(keyword=keyword), page, page_size)

    def get_rules_by_naics(self, naics_code: str, page: int = 1, page_size: int = 20) -> Page[Rule]:
        """Rules whose NAICS set contains ``naics_code``."""
        return self.search(RuleFilter(naics_codes=[naics_code]), page, page_size)

    def get_rules_by_business_type(self, business_type: str, page: int = 1,
                                   page_size: int = 20) -> Page[Rule]:
        """Rules for a business type, compared case-insensitively."""
        return self.search(RuleFilter(business_type=business_type), page, page_size)

    def get_rules_by_custom_filter(
        self,
        carrier: Optional[str] = None,
        product: Optional[str] = None,
        states: Optional[List[str]] = None,
        naics_codes: Optional[List[str]] = None,
        business_types: Optional[List[str]] = None,
        priority: Optional[str] = None,
        include_restricted: bool = True,
        page: int = 1,
        page_size: int = 20,
        sort_by: Optional[str] = None,
    ) -> Page[Rule]:
        """Faceted filter by carrier, product, geography, NAICS and business types."""
        filters = RuleFilter(
            carrier=carrier,
            product=product,
            states=list(states or []),
            naics_codes=list(naics_codes or []),
            business_types=list(business_types or []),
            priority=priority,
            include_restricted=include_restricted,
        )
        return self.search(filters, page, page_size, sort_by)
