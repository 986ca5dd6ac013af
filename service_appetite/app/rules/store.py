"""
Rule store for the Appetite Service.

``RuleStore`` is the contract the evaluator and search engine read from.
``InMemoryRuleStore`` keeps rules in creation order and is the working set
loaded from persistence at start-up.
"""

from typing import Callable, Dict, Iterator, List, Optional, Protocol

from shared.errors import ConflictError, NotFoundError
from shared.logging import get_logger

from .models import Rule

RulePredicate = Callable[[Rule], bool]


class RuleStore(Protocol):
    """Read/write access to stored rules."""

    def get_by_id(self, rule_id: str) -> Optional[Rule]: ...

    def scan(self, predicate: Optional[RulePredicate] = None) -> Iterator[Rule]: ...

    def count(self, predicate: Optional[RulePredicate] = None) -> int: ...

    def add(self, rule: Rule, position: Optional[int] = None) -> Rule: ...

    def update(self, rule: Rule) -> Rule: ...

    def remove(self, rule_id: str) -> Rule: ...


class InMemoryRuleStore:
    """Rule store backed by an insertion-ordered dict."""

    def __init__(self, rules: Optional[List[Rule]] = None):
        self.logger = get_logger("appetite.rule_store")
        self.rules: Dict[str, Rule] = {}
        for rule in rules or []:
            self.add(rule)

    def get_by_id(self, rule_id: str) -> Optional[Rule]:
        """Get a rule by ID."""
        return self.rules.get(rule_id)

    def scan(self, predicate: Optional[RulePredicate] = None) -> Iterator[Rule]:
        """Lazily yield rules in creation order, optionally filtered."""
        for rule in list(self.rules.values()):
            if predicate is None or predicate(rule):
                yield rule

    def count(self, predicate: Optional[RulePredicate] = None) -> int:
        """Count rules matching ``predicate``."""
        if predicate is None:
            return len(self.rules)
        return sum(1 for _ in self.scan(predicate))

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self.rules

    def __len__(self) -> int:
        return len(self.rules)

    def position(self, rule_id: str) -> int:
        """Index of a rule in creation order."""
        for index, stored_id in enumerate(self.rules):
            if stored_id == rule_id:
                return index
        raise NotFoundError("Rule", rule_id)

    def add(self, rule: Rule, position: Optional[int] = None) -> Rule:
        """Add a new rule, at the end of creation order unless ``position`` is given."""
        if rule.rule_id in self.rules:
            raise ConflictError(
                f"Rule {rule.rule_id} already exists",
                {"rule_id": rule.rule_id}
            )
        if position is None:
            self.rules[rule.rule_id] = rule
        else:
            ordered = list(self.rules.items())
            ordered.insert(position, (rule.rule_id, rule))
            self.rules = dict(ordered)
        self.logger.info("Rule added", rule_id=rule.rule_id, title=rule.title)
        return rule

    def update(self, rule: Rule) -> Rule:
        """Replace a stored rule, keeping its position in creation order."""
        if rule.rule_id not in self.rules:
            raise NotFoundError("Rule", rule.rule_id)
        self.rules[rule.rule_id] = rule
        self.logger.info("Rule updated", rule_id=rule.rule_id, title=rule.title)
        return rule

    def remove(self, rule_id: str) -> Rule:
        """Remove a rule and return it."""
        rule = self.rules.pop(rule_id, None)
        if rule is None:
            raise NotFoundError("Rule", rule_id)
        self.logger.info("Rule removed", rule_id=rule_id, title=rule.title)
        return rule

    def clear(self):
        """Clear all rules from the store."""
        self.rules.clear()
        self.logger.info("All rules cleared")
