"""
Rule matching strategies for the eligibility evaluator.

``StaticRuleMatcher`` is the reference decision table. ``StoreRuleMatcher``
looks up stored rules and falls back to the reference table when nothing
in the store applies.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol

from shared.logging import get_logger

from ..rules.models import Rule
from ..rules.store import RuleStore
from .models import Decision, RuleMatch

# NAICS code -> matched rule name template
RULE_NAME_TEMPLATES = {
    "722511": "Restaurant_FoodService_{state}_001",
    "445110": "Grocery_Retail_{state}_002",
    "445310": "Liquor_Retail_{state}_003",
}
DEFAULT_RULE_TEMPLATE = "General_Rule_{state}_999"


class RuleMatcher(Protocol):
    """Capability that maps a (NAICS code, state) pair to a decision."""

    def match(self, naics_code: str, state: str) -> RuleMatch: ...


class StaticRuleMatcher:
    """Reference decision table keyed on (NAICS code, state).

    Unmatched combinations are Eligible.
    """

    def decide(self, naics_code: str, state: str) -> Decision:
        if naics_code == "722511" and state == "CA":
            return Decision.ELIGIBLE
        if naics_code == "445110" and state == "NY":
            return Decision.DECLINED
        if naics_code == "445310":
            return Decision.RESTRICTED
        return Decision.ELIGIBLE

    def rule_name(self, naics_code: str, state: str) -> str:
        template = RULE_NAME_TEMPLATES.get(naics_code, DEFAULT_RULE_TEMPLATE)
        return template.format(state=state)

    def match(self, naics_code: str, state: str) -> RuleMatch:
        return RuleMatch(
            decision=self.decide(naics_code, state),
            rule_id=self.rule_name(naics_code, state),
        )


class StoreRuleMatcher:
    """Match against stored rules, first by creation order.

    A stored rule applies when both its NAICS set and state set contain the
    submission's values and it is inside its effective window. Its outcome
    is the decision when it names one; otherwise the reference table decides.
    """

    def __init__(self, rule_store: RuleStore, fallback: Optional[StaticRuleMatcher] = None):
        self.rule_store = rule_store
        self.fallback = fallback or StaticRuleMatcher()
        self.logger = get_logger("appetite.rule_matcher")

    def _applies(self, rule: Rule, naics_code: str, state: str, now: datetime) -> bool:
        if naics_code not in rule.naics_codes or state not in rule.states:
            return False
        if rule.effective_from and _aware(rule.effective_from) > now:
            return False
        if rule.effective_to and _aware(rule.effective_to) < now:
            return False
        return True

    def match(self, naics_code: str, state: str) -> RuleMatch:
        now = datetime.now(timezone.utc)
        rule = next(
            self.rule_store.scan(lambda r: self._applies(r, naics_code, state, now)),
            None
        )
        if rule is None:
            return self.fallback.match(naics_code, state)

        decision = Decision.parse(rule.outcome) or self.fallback.decide(naics_code, state)
        self.logger.debug("Stored rule matched", rule_id=rule.rule_id, decision=decision.value)
        return RuleMatch(decision=decision, rule_id=rule.rule_id)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
