"""
Eligibility evaluator for the Appetite Service.
"""

import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from shared.errors import NotFoundError
from shared.logging import get_logger

from ..rules.store import RuleStore
from .matcher import RuleMatcher
from .models import (
    Alternative, Decision, EligibilityResult, EvaluationResult, Location, Submission
)
from .scoring import confidence_score
from .store import SubmissionStore

REASON_TEMPLATES = {
    Decision.ELIGIBLE: "Meets appetite guidelines for NAICS {naics} in {state}",
    Decision.DECLINED: "Product not offered for NAICS {naics} in {state}",
    Decision.RESTRICTED: "Limited appetite for NAICS {naics} in {state}",
}

# (product id, NAICS code, state) combinations that are never offered
PRODUCT_DENY_LIST = frozenset({
    ("prod-101", "445110", "NY"),
})

# Returned when no stored rule suggests anything better
SAMPLE_ALTERNATIVES = (
    Alternative(naics="445120", product_id="prod-102", desc="Convenience Store"),
    Alternative(naics="445220", product_id="prod-103", desc="Fish Market"),
)

# product id -> allowed NAICS codes, or None when the product is unknown
ProductNaicsLookup = Callable[[str], Optional[List[str]]]


def build_reason(decision: Decision, naics_code: str, state: str) -> str:
    return REASON_TEMPLATES[decision].format(naics=naics_code, state=state)


def confidence_level(confidence: float) -> str:
    if confidence > 0.8:
        return "high"
    if confidence > 0.6:
        return "medium"
    return "low"


def prepare_summary(decision: str, confidence: float, reason: str) -> str:
    """Human-friendly summary of an evaluation outcome."""
    level = confidence_level(confidence)
    return f"This submission is {decision} with {level} confidence. {reason}"


class EligibilityEvaluator:
    """Evaluates submissions and answers eligibility queries.

    ``evaluate`` appends a new Submission record; every other operation is
    free of side effects.
    """

    def __init__(
        self,
        rule_matcher: RuleMatcher,
        submission_store: SubmissionStore,
        rule_store: RuleStore,
        product_naics: Optional[ProductNaicsLookup] = None,
    ):
        self.rule_matcher = rule_matcher
        self.submission_store = submission_store
        self.rule_store = rule_store
        self.product_naics = product_naics
        self.logger = get_logger("appetite.evaluator")

    def evaluate(
        self,
        submission_id: str,
        business_desc: str,
        naics_code: str,
        location: Location,
    ) -> EvaluationResult:
        """Decide appetite for a submission and record it."""
        start_time = time.time()
        state = location.state

        match = self.rule_matcher.match(naics_code, state)
        reason = build_reason(match.decision, naics_code, state)
        confidence = confidence_score(naics_code, business_desc)

        self.submission_store.append(Submission(
            submission_id=submission_id,
            business_desc=business_desc or "",
            naics_code=naics_code,
            location=location,
            decision=match.decision,
            confidence=confidence,
            reason=reason,
            matched_rule=match.rule_id,
            evaluated_at=datetime.now(timezone.utc),
        ))

        self.logger.info(
            "Submission evaluated",
            submission_id=submission_id,
            naics_code=naics_code,
            state=state,
            decision=match.decision.value,
            matched_rule=match.rule_id,
            confidence=confidence,
            evaluation_time_ms=round((time.time() - start_time) * 1000, 3)
        )

        return EvaluationResult(
            submission_id=submission_id,
            decision=match.decision,
            matched_rule=match.rule_id,
            reason=reason,
            confidence=confidence,
        )

    def confidence_score(self, naics_code: str, description: str) -> float:
        """Confidence for a classification, without recording anything."""
        return confidence_score(naics_code, description)

    def check_eligibility(self, product_id: str, naics_code: str, state: str) -> EligibilityResult:
        """Whether ``product_id`` is offered for a NAICS code and state.

        Denied triples are ineligible. A product known to the catalog that
        declares allowed NAICS codes only accepts those codes. Everything
        else is eligible.
        """
        eligible = (product_id, naics_code, state) not in PRODUCT_DENY_LIST

        if eligible and self.product_naics is not None:
            allowed = self.product_naics(product_id)
            if allowed and naics_code not in allowed:
                eligible = False

        if eligible:
            reason = "Product is available for this NAICS code and location"
        else:
            reason = f"Product not offered for NAICS {naics_code} in {state}"

        return EligibilityResult(eligible=eligible, reason=reason)

    def recommendations(self, submission_id: str) -> List[Alternative]:
        """Suggest alternate classifications or products for a submission.

        Looks for stored rules in the same NAICS industry group (first four
        digits) as the submission but with a different code, falling back
        to the sample alternatives.
        """
        submission = self.submission_store.get_by_id(submission_id)
        if submission is not None and len(submission.naics_code) >= 4:
            alternatives = self._alternatives_for(submission.naics_code)
            if alternatives:
                return alternatives
        return list(SAMPLE_ALTERNATIVES)

    def _alternatives_for(self, naics_code: str) -> List[Alternative]:
        group = naics_code[:4]
        alternatives: List[Alternative] = []
        seen = set()

        for rule in self.rule_store.scan(lambda r: bool(r.product)):
            for code in rule.naics_codes:
                if not code.startswith(group) or code == naics_code:
                    continue
                if (code, rule.product) in seen:
                    continue
                seen.add((code, rule.product))
                alternatives.append(Alternative(naics=code, product_id=rule.product, desc=rule.title))

        return alternatives

    def get_result(self, submission_id: str) -> Submission:
        """Most recent evaluation for ``submission_id``."""
        submission = self.submission_store.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        return submission
