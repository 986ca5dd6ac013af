"""
Unit tests for the eligibility evaluator.
"""

from datetime import datetime, timezone

import pytest

from shared.errors import NotFoundError
from service_appetite.app.checker.evaluator import (
    SAMPLE_ALTERNATIVES, EligibilityEvaluator, confidence_level, prepare_summary
)
from service_appetite.app.checker.matcher import StaticRuleMatcher
from service_appetite.app.checker.models import Decision, Location
from service_appetite.app.checker.scoring import confidence_score
from service_appetite.app.checker.store import InMemorySubmissionStore
from service_appetite.app.rules.store import InMemoryRuleStore
from service_appetite.app.seed import sample_rules

NAICS_CODES = ["722511", "722513", "445110", "445120", "445310", "561720", "000000", ""]
STATES = ["CA", "NY", "TX", "FL", "ZZ"]


class TestConfidenceScore:
    """Test cases for confidence scoring."""

    def test_base_confidence(self):
        assert confidence_score("561720", "Janitorial services") == 0.75

    def test_restaurant_bonus(self):
        assert confidence_score("722511", "Small family RESTAURANT") == 0.9

    def test_store_bonus(self):
        assert confidence_score("445110", "Grocery store") == 0.87

    def test_bonus_requires_matching_prefix(self):
        assert confidence_score("445110", "restaurant") == 0.75
        assert confidence_score("722511", "store") == 0.75

    def test_missing_description(self):
        assert confidence_score("722511", None) == 0.75

    @pytest.mark.parametrize("naics", NAICS_CODES)
    def test_always_within_bounds(self, naics):
        score = confidence_score(naics, "restaurant store")
        assert 0.75 <= score <= 0.95


class TestEligibilityEvaluator:
    """Test cases for EligibilityEvaluator."""

    @pytest.fixture
    def submission_store(self):
        return InMemorySubmissionStore()

    @pytest.fixture
    def rule_store(self):
        return InMemoryRuleStore(sample_rules(datetime(2026, 1, 1, tzinfo=timezone.utc)))

    @pytest.fixture
    def product_naics(self):
        catalog = {"prod-001": ["445310", "722511"], "prod-empty": []}
        return catalog.get

    @pytest.fixture
    def evaluator(self, submission_store, rule_store, product_naics):
        return EligibilityEvaluator(
            rule_matcher=StaticRuleMatcher(),
            submission_store=submission_store,
            rule_store=rule_store,
            product_naics=product_naics,
        )

    def test_restaurant_in_california(self, evaluator):
        result = evaluator.evaluate("sub-100", "Small family restaurant", "722511", Location("CA"))

        assert result.decision == Decision.ELIGIBLE
        assert result.matched_rule == "Restaurant_FoodService_CA_001"
        assert result.confidence == 0.9
        assert result.reason == "Meets appetite guidelines for NAICS 722511 in CA"

    def test_grocery_in_new_york(self, evaluator):
        result = evaluator.evaluate("sub-101", "Corner grocery", "445110", Location("NY"))

        assert result.decision == Decision.DECLINED
        assert result.matched_rule == "Grocery_Retail_NY_002"
        assert result.reason == "Product not offered for NAICS 445110 in NY"

    def test_liquor_is_restricted_everywhere(self, evaluator):
        result = evaluator.evaluate("sub-102", "Liquor store", "445310", Location("TX"))

        assert result.decision == Decision.RESTRICTED
        assert result.matched_rule == "Liquor_Retail_TX_003"
        assert "445310" in result.reason and "TX" in result.reason

    def test_unmatched_combination_defaults_to_eligible(self, evaluator):
        result = evaluator.evaluate("sub-103", "", "999999", Location("ZZ"))

        assert result.decision == Decision.ELIGIBLE
        assert result.matched_rule == "General_Rule_ZZ_999"

    def test_restaurant_outside_california_uses_default(self, evaluator):
        result = evaluator.evaluate("sub-104", "restaurant", "722511", Location("NY"))

        assert result.decision == Decision.ELIGIBLE
        assert result.matched_rule == "Restaurant_FoodService_NY_001"

    @pytest.mark.parametrize("naics", NAICS_CODES)
    @pytest.mark.parametrize("state", STATES)
    def test_every_pair_yields_a_valid_decision(self, evaluator, naics, state):
        result = evaluator.evaluate("sub-x", "some business", naics, Location(state))

        assert result.decision in set(Decision)
        assert 0.75 <= result.confidence <= 0.95
        assert naics in result.reason and state in result.reason

    def test_evaluate_records_submission(self, evaluator, submission_store):
        result = evaluator.evaluate("sub-100", "Small family restaurant", "722511", Location("CA", "94016"))
        stored = evaluator.get_result("sub-100")

        assert len(submission_store) == 1
        assert stored.decision == result.decision
        assert stored.confidence == result.confidence
        assert stored.reason == result.reason
        assert stored.matched_rule == result.matched_rule
        assert stored.location.zipcode == "94016"

    def test_reevaluation_appends(self, evaluator, submission_store):
        evaluator.evaluate("sub-100", "Corner store", "445110", Location("NY"))
        evaluator.evaluate("sub-100", "Corner store", "445110", Location("NJ"))

        assert len(submission_store.history("sub-100")) == 2
        assert evaluator.get_result("sub-100").location.state == "NJ"
        assert evaluator.get_result("sub-100").decision == Decision.ELIGIBLE

    def test_confidence_score_has_no_side_effect(self, evaluator, submission_store):
        first = evaluator.confidence_score("722511", "restaurant")
        second = evaluator.confidence_score("722511", "restaurant")

        assert first == second == 0.9
        assert len(submission_store) == 0

    def test_get_result_unknown(self, evaluator):
        with pytest.raises(NotFoundError) as exc_info:
            evaluator.get_result("missing")

        assert exc_info.value.code == "NOT_FOUND"

    def test_check_eligibility_deny_list(self, evaluator):
        result = evaluator.check_eligibility("prod-101", "445110", "NY")

        assert result.eligible is False
        assert result.reason == "Product not offered for NAICS 445110 in NY"

    def test_check_eligibility_unknown_product_defaults_to_allow(self, evaluator):
        result = evaluator.check_eligibility("prod-404", "123456", "CA")

        assert result.eligible is True
        assert result.reason == "Product is available for this NAICS code and location"

    def test_check_eligibility_uses_allowed_naics(self, evaluator):
        assert evaluator.check_eligibility("prod-001", "722511", "CA").eligible is True
        assert evaluator.check_eligibility("prod-001", "445110", "CA").eligible is False

    def test_check_eligibility_empty_allowed_set_accepts_all(self, evaluator):
        assert evaluator.check_eligibility("prod-empty", "445110", "CA").eligible is True

    def test_check_eligibility_without_catalog(self, submission_store, rule_store):
        evaluator = EligibilityEvaluator(StaticRuleMatcher(), submission_store, rule_store)
        assert evaluator.check_eligibility("prod-001", "445110", "CA").eligible is True

    def test_recommendations_from_stored_rules(self, evaluator):
        evaluator.evaluate("sub-100", "restaurant", "722511", Location("CA"))
        alternatives = evaluator.recommendations("sub-100")

        assert [(a.naics, a.product_id) for a in alternatives] == [("722513", "General Liability")]
        assert alternatives[0].desc == "Outdoor dining - location sensitivity"

    def test_recommendations_fall_back_to_samples(self, evaluator):
        assert evaluator.recommendations("unknown") == list(SAMPLE_ALTERNATIVES)

        evaluator.evaluate("sub-101", "cleaning", "561720", Location("CA"))
        assert evaluator.recommendations("sub-101") == list(SAMPLE_ALTERNATIVES)


class TestSummary:
    """Test cases for summary helpers."""

    @pytest.mark.parametrize("confidence,level", [
        (0.95, "high"),
        (0.81, "high"),
        (0.8, "medium"),
        (0.61, "medium"),
        (0.6, "low"),
        (0.1, "low"),
    ])
    def test_confidence_level(self, confidence, level):
        assert confidence_level(confidence) == level

    def test_prepare_summary(self):
        summary = prepare_summary("Eligible", 0.9, "Meets appetite guidelines.")
        assert summary == "This submission is Eligible with high confidence. Meets appetite guidelines."
