"""
Unit tests for the Appetite service HTTP surface.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.errors import PersistenceError
from service_appetite.app.main import AppetiteService, create_app
from service_appetite.app.rules.models import Rule

ADMIN = {"X-User-Id": "usr-001", "X-User-Roles": "admin"}
CARRIER = {"X-User-Id": "usr-002", "X-User-Roles": "carrier"}
AGENT = {"X-User-Id": "usr-003", "X-User-Roles": "agent"}


class TestAppetiteService:
    """Test cases for AppetiteService."""

    @pytest.fixture
    def service(self):
        return AppetiteService(get_config("appetite", 8011, persistence_enabled=False))

    @pytest.fixture
    def client(self, service):
        return TestClient(service.app)

    @pytest.fixture
    def rule_request(self):
        return {
            "title": "Florist appetite",
            "businessType": "Retail",
            "naicsCodes": ["453110"],
            "states": ["CA", "OR"],
            "carrier": "Acme Insurance",
            "product": "General Liability",
            "priority": "medium",
        }

    def test_create_app(self):
        assert create_app() is not None

    def test_service_initialization(self, service):
        assert service.service_name == "appetite"
        assert service.port == 8011
        assert service.persistence is None
        assert service.rule_store.count() == 5
        assert len(service.submission_store) == 2

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "appetite"
        assert "evaluation" in data["capabilities"]

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"]["postgres"] == "disabled"

    def test_request_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_metrics_endpoint(self, client):
        client.post("/api/checker/evaluate", json={
            "submissionId": "sub-100",
            "businessDesc": "Small family restaurant",
            "naicsCode": "722511",
            "location": {"state": "CA"},
        })
        response = client.get("/metrics")

        assert response.status_code == 200
        assert 'appetite_evaluations_total{decision="Eligible"} 1.0' in response.text

    # Checker

    def test_evaluate_and_get_result(self, client):
        response = client.post("/api/checker/evaluate", json={
            "submissionId": "sub-100",
            "businessDesc": "Small family restaurant",
            "naicsCode": "722511",
            "location": {"state": "CA", "zipcode": "94016"},
        })

        assert response.status_code == 200
        assert response.json() == {
            "submissionId": "sub-100",
            "decision": "Eligible",
            "matchedRule": "Restaurant_FoodService_CA_001",
            "reason": "Meets appetite guidelines for NAICS 722511 in CA",
        }

        result = client.get("/api/checker/result/sub-100").json()
        assert result["decision"] == "Eligible"
        assert result["confidence"] == 0.9
        assert result["reason"] == "Meets appetite guidelines for NAICS 722511 in CA"

    def test_evaluate_declined(self, client):
        response = client.post("/api/checker/evaluate", json={
            "submissionId": "sub-101",
            "naicsCode": "445110",
            "location": {"state": "NY"},
        })

        assert response.json()["decision"] == "Declined"
        assert response.json()["matchedRule"] == "Grocery_Retail_NY_002"

    def test_evaluate_requires_location(self, client):
        response = client.post("/api/checker/evaluate", json={"submissionId": "s", "naicsCode": "1"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_seeded_result(self, client):
        response = client.get("/api/checker/result/sub-002")

        assert response.status_code == 200
        assert response.json()["decision"] == "Declined"

    def test_result_not_found(self, client):
        response = client.get("/api/checker/result/missing")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_confidence_score_has_no_side_effect(self, client, service):
        response = client.get("/api/checker/confidenceScore",
                              params={"naics": "445110", "desc": "Grocery store"})

        assert response.status_code == 200
        assert response.json() == {"naics": "445110", "confidenceScore": 0.87, "desc": "Grocery store"}
        assert len(service.submission_store) == 2

    def test_eligibility_check(self, client):
        payload = {
            "submissionId": "sub-100",
            "productId": "prod-101",
            "naicsCode": "445110",
            "location": {"state": "NY"},
        }
        assert client.post("/api/checker/eligibilityCheck", json=payload).json()["eligible"] is False

        payload["location"] = {"state": "NJ"}
        assert client.post("/api/checker/eligibilityCheck", json=payload).json()["eligible"] is True

        payload["productId"] = "prod-001"
        assert client.post("/api/checker/eligibilityCheck", json=payload).json()["eligible"] is False

    def test_recommendations(self, client):
        response = client.get("/api/checker/recommendations", params={"submissionId": "sub-001"})

        assert response.status_code == 200
        alternatives = response.json()["alternatives"]
        assert alternatives[0]["naics"] == "722513"
        assert alternatives[0]["productId"] == "General Liability"

    def test_prepare_summary(self, client):
        response = client.post("/api/checker/prepareSummary", json={
            "submissionId": "sub-001",
            "decision": "Eligible",
            "confidence": 0.7,
            "reason": "Meets appetite guidelines.",
        })

        assert response.json()["summary"] == (
            "This submission is Eligible with medium confidence. Meets appetite guidelines."
        )

    def test_notify_analytics(self, client, service):
        response = client.post("/api/checker/notifyAnalytics", json={
            "submissionId": "sub-001",
            "decision": "Eligible",
            "processingTimeMs": 12,
            "timestamp": "2026-03-01T10:00:00Z",
        })

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "message": "Event logged to analytics",
            "submissionId": "sub-001",
        }
        assert service.event_store.events[0].action == "checker_evaluation"

    # Search

    def test_get_rules(self, client):
        data = client.get("/api/search/getRules", params={"sortBy": "priority:desc"}).json()

        assert [r["ruleId"] for r in data["data"]] == [
            "rul-1001", "rul-1003", "rul-1002", "rul-1010", "rul-1004"
        ]
        assert data["pagination"] == {"page": 1, "pageSize": 25, "totalPages": 1, "totalItems": 5}

    def test_get_rules_invalid_page(self, client):
        assert client.get("/api/search/getRules", params={"page": 0}).status_code == 400
        assert client.get("/api/search/getRules", params={"pageSize": 0}).status_code == 400

    def test_get_rules_out_of_range_page(self, client):
        data = client.get("/api/search/getRules", params={"page": 9}).json()

        assert data["data"] == []
        assert data["pagination"]["totalItems"] == 5

    def test_get_rules_by_naics(self, client):
        data = client.get("/api/search/getRulesByNaics/445310").json()

        assert [r["ruleId"] for r in data["data"]] == ["rul-1001"]
        assert data["pagination"]["pageSize"] == 20

    def test_get_rules_by_keyword(self, client):
        data = client.get("/api/search/getRulesByKeyword", params={"keyword": "NV"}).json()

        assert [r["ruleId"] for r in data["data"]] == ["rul-1010"]
        assert data["pagination"]["pageSize"] == 10

    def test_get_rules_by_business_type(self, client):
        data = client.get("/api/search/getRulesByBusinessType/restaurant").json()
        assert data["pagination"]["totalItems"] == 2

    def test_custom_filter(self, client):
        data = client.post("/api/search/getRulesByCustomFilter", json={
            "states": ["NV", "TX"],
            "carrier": "Acme Insurance",
        }).json()
        assert [r["ruleId"] for r in data["data"]] == ["rul-1001", "rul-1010"]

        data = client.post("/api/search/getRulesByCustomFilter", json={"includeRestricted": False}).json()
        assert data["data"] == []
        assert data["pagination"]["totalItems"] == 0

    def test_custom_filter_page_size_limit(self, client):
        response = client.post("/api/search/getRulesByCustomFilter", json={"pageSize": 101})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_custom_filter_page_size_follows_config(self):
        service = AppetiteService(
            get_config("appetite", 8011, persistence_enabled=False, max_page_size=500)
        )
        client = TestClient(service.app)

        response = client.post("/api/search/getRulesByCustomFilter", json={"pageSize": 250})

        assert response.status_code == 200
        assert response.json()["pagination"]["pageSize"] == 250
        assert client.get("/api/search/getRules", params={"pageSize": 250}).status_code == 200

    # Canvas

    def test_canvas_requires_identity(self, client):
        response = client.get("/api/canvas/rules")

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_ERROR"

    def test_canvas_rules_list(self, client):
        data = client.get("/api/canvas/rules", headers=AGENT).json()
        assert data["pagination"]["totalItems"] == 5

    def test_agent_cannot_create_rule(self, client, rule_request):
        response = client.post("/api/canvas/rules", json=rule_request, headers=AGENT)

        assert response.status_code == 403
        assert response.json()["code"] == "AUTHORIZATION_ERROR"

    def test_rule_lifecycle(self, client, rule_request):
        created = client.post("/api/canvas/rules", json=rule_request, headers=CARRIER)
        assert created.status_code == 201
        rule = created.json()
        assert rule["ruleId"] == "rul-006"
        assert rule["status"] == "Draft"
        assert rule["createdBy"] == "usr-002"

        rule_request["title"] = "Florists and nurseries"
        updated = client.put("/api/canvas/rule/rul-006", json=rule_request, headers=CARRIER)
        assert updated.status_code == 200
        assert updated.json()["title"] == "Florists and nurseries"
        assert updated.json()["createdAt"] == rule["createdAt"]
        assert updated.json()["updatedAt"] is not None

        assert client.delete("/api/canvas/rule/rul-006", headers=CARRIER).status_code == 403
        assert client.delete("/api/canvas/rule/rul-006", headers=ADMIN).status_code == 200
        assert client.get("/api/canvas/rule/rul-006", headers=ADMIN).status_code == 404

    def test_invalid_rule_rejected(self, client, rule_request):
        rule_request["states"] = ["California"]
        response = client.post("/api/canvas/rules", json=rule_request, headers=ADMIN)
        assert response.status_code == 400

    def test_rule_write_rolls_back_on_persistence_failure(self, service, client, rule_request):
        service.persistence = MagicMock()
        service.persistence.save_rule = AsyncMock(return_value=False)

        response = client.post("/api/canvas/rules", json=rule_request, headers=ADMIN)

        assert response.status_code == 503
        assert response.json()["code"] == "PERSISTENCE_ERROR"
        assert service.rule_store.count() == 5

    def test_rule_delete_rollback_keeps_creation_order(self, service, client):
        order = [rule.rule_id for rule in service.rule_store.scan()]
        service.persistence = MagicMock()
        service.persistence.delete_rule = AsyncMock(return_value=False)

        response = client.delete(f"/api/canvas/rule/{order[1]}", headers=ADMIN)

        assert response.status_code == 503
        assert [rule.rule_id for rule in service.rule_store.scan()] == order

    def test_carriers(self, client):
        assert client.post("/api/canvas/carriers", json={
            "legalName": "Gamma Re LLC", "displayName": "Gamma Re"
        }, headers=CARRIER).status_code == 403

        created = client.post("/api/canvas/carriers", json={
            "legalName": "Gamma Re LLC", "displayName": "Gamma Re"
        }, headers=ADMIN)
        assert created.status_code == 201
        assert created.json()["carrierId"] == "car-003"

        listing = client.get("/api/canvas/carriers", headers=AGENT).json()
        assert listing["pagination"]["totalItems"] == 3

        assert client.delete("/api/canvas/carrier/car-003", headers=ADMIN).status_code == 200
        assert client.get("/api/canvas/carrier/car-003", headers=ADMIN).status_code == 404

    def test_products(self, client):
        created = client.post("/api/canvas/products", json={
            "name": "Cyber - SME", "carrier": "Beta Mutual", "naicsAllowed": ["541511"]
        }, headers=CARRIER)
        assert created.status_code == 201
        assert created.json()["productId"] == "prod-004"

        listing = client.get("/api/canvas/products", params={"carrier": "Beta Mutual"}, headers=AGENT).json()
        assert [p["productId"] for p in listing["data"]] == ["prod-003", "prod-004"]

        assert client.get("/api/canvas/product/prod-404", headers=AGENT).status_code == 404

    def test_users(self, client):
        assert client.get("/api/canvas/users", headers=AGENT).status_code == 403

        created = client.post("/api/canvas/users", json={
            "name": "Ann Broker", "email": "ann@example.com"
        }, headers=ADMIN)
        assert created.status_code == 201
        assert created.json()["roles"] == ["agent"]

        duplicate = client.post("/api/canvas/users", json={
            "name": "Ann Again", "email": "ANN@example.com"
        }, headers=ADMIN)
        assert duplicate.status_code == 409

        listing = client.get("/api/canvas/users", params={"role": "agent"}, headers=ADMIN).json()
        assert listing["pagination"]["totalItems"] == 2

    def test_user_profile_access(self, client):
        assert client.get("/api/canvas/user/usr-003", headers=AGENT).status_code == 200
        assert client.get("/api/canvas/user/usr-001", headers=AGENT).status_code == 403
        assert client.get("/api/canvas/user/usr-003", headers=ADMIN).json()["email"] == "agent@example.com"

    def test_canvas_analytics(self, client):
        data = client.get("/api/canvas/analytics", headers=AGENT).json()

        assert data["metrics"]["totalRules"] == 5
        assert data["metrics"]["totalProducts"] == 3
        assert len(data["metrics"]["growthData"]) == 7

    # Analytics

    def test_analytics_add_and_fetch(self, client):
        event = {
            "eventId": "evt-1",
            "timestamp": "2026-03-01T10:00:00Z",
            "userId": "usr-003",
            "action": "rule_view",
            "ruleId": "rul-1001",
            "productId": "prod-001",
        }
        assert client.post("/api/analytics/add", json=event).status_code == 201
        assert client.post("/api/analytics/add", json=event).status_code == 409

        assert client.get("/api/analytics/fetch").status_code == 401

        metrics = client.get("/api/analytics/fetch", headers=AGENT).json()["metrics"]
        assert metrics["eligibilityDistribution"] == {"eligible": 1, "ineligible": 1, "conditional": 0}
        assert metrics["submissionsOverTime"] == [{"date": "2026-03-01", "count": 1}]
        assert metrics["rulesByProduct"] == [{"productId": "prod-001", "ruleCount": 1}]


class TestAppetiteServiceLifecycle:
    """Test cases for startup with persistence."""

    @pytest.fixture
    def persistence(self):
        persistence = MagicMock()
        persistence.start = AsyncMock()
        persistence.stop = AsyncMock()
        persistence.load_all_rules = AsyncMock(return_value=[])
        persistence.load_all_submissions = AsyncMock(return_value=[])
        persistence.save_rule = AsyncMock(return_value=True)
        persistence.save_submission = AsyncMock(return_value=True)
        persistence.health_check = AsyncMock(return_value=True)
        return persistence

    @pytest.mark.asyncio
    async def test_start_writes_seed_data_to_empty_database(self, persistence):
        with patch("service_appetite.app.main.PostgreSQLPersistence", return_value=persistence):
            service = AppetiteService(get_config("appetite", 8011, persistence_enabled=True))

        await service.start()

        persistence.start.assert_awaited_once()
        assert persistence.save_rule.await_count == 5
        assert persistence.save_submission.await_count == 2

    @pytest.mark.asyncio
    async def test_start_replaces_seed_data_with_stored_rules(self, persistence):
        persistence.load_all_rules.return_value = [Rule(rule_id="rul-001", title="Stored")]

        with patch("service_appetite.app.main.PostgreSQLPersistence", return_value=persistence):
            service = AppetiteService(get_config("appetite", 8011, persistence_enabled=True))

        await service.start()

        assert [r.rule_id for r in service.rule_store.scan()] == ["rul-001"]
        assert await service._check_dependencies() == {
            "rule_store": "ok", "submission_store": "ok", "postgres": "ok"
        }

        await service.stop()
        persistence.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_fails_without_overwriting_on_load_error(self, persistence):
        persistence.load_all_rules.side_effect = PersistenceError(
            "Failed to load rules", {"error": "connection reset"}
        )

        with patch("service_appetite.app.main.PostgreSQLPersistence", return_value=persistence):
            service = AppetiteService(get_config("appetite", 8011, persistence_enabled=True))

        with pytest.raises(PersistenceError):
            await service.start()

        assert persistence.save_rule.await_count == 0
        assert persistence.save_submission.await_count == 0
        persistence.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_writes_nothing_when_submission_load_fails(self, persistence):
        persistence.load_all_submissions.side_effect = PersistenceError("Failed to load submissions")

        with patch("service_appetite.app.main.PostgreSQLPersistence", return_value=persistence):
            service = AppetiteService(get_config("appetite", 8011, persistence_enabled=True))

        with pytest.raises(PersistenceError):
            await service.start()

        assert persistence.save_rule.await_count == 0
        assert persistence.save_submission.await_count == 0
