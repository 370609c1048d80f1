"""
HTTP tests for the API routers, run against the in-memory database.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from reseller_portal.core.database import get_db
from reseller_portal.core.security import create_access_token
from reseller_portal.main import create_app
from reseller_portal.models import AutoApprovalRule, Commission, CommissionStatus, CustomerStatus


@pytest.fixture
def client(db):
    app = create_app(run_init_db=False)
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as client:
        yield client


def auth(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


def close_deal(client, admin, customer, value="12000", duration=3):
    return client.post(
        f"/api/v1/admin/customers/{customer.id}/close-deal",
        json={"contract_value": value, "contract_duration": duration},
        headers=auth(admin),
    )


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


class TestAuth:

    def test_missing_token(self, client):
        response = client.get("/api/v1/users/me")

        assert response.status_code == 401
        assert response.json()["error"] == "AUTH_ERROR"

    def test_garbage_token(self, client):
        response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_me(self, client, reseller):
        response = client.get("/api/v1/users/me", headers=auth(reseller))

        assert response.status_code == 200
        assert response.json()["role"] == "reseller"

    def test_reseller_cannot_close_deal(self, client, reseller, customer):
        response = close_deal(client, reseller, customer)

        assert response.status_code == 403
        assert response.json()["error"] == "AUTHZ_ERROR"


class TestCloseDealFlow:

    def test_close_deal_creates_schedule(self, client, admin, customer):
        response = close_deal(client, admin, customer)

        assert response.status_code == 200
        body = response.json()
        assert body["commissions_created"] == 3
        assert Decimal(body["total_commission_value"]) == Decimal("7200")
        assert body["customer"]["status"] == "ACTIVE"
        assert [Decimal(c["amount"]) for c in body["commissions"]] == [Decimal("2400")] * 3
        assert {c["status"] for c in body["commissions"]} == {"PENDING"}

    def test_close_deal_with_rule(self, client, db, admin, customer):
        db.add(AutoApprovalRule(name="small", priority=10, max_amount=Decimal("3000")))
        db.commit()

        body = close_deal(client, admin, customer).json()

        assert {c["status"] for c in body["commissions"]} == {"APPROVED"}
        assert all(c["auto_approved"] for c in body["commissions"])

    def test_second_close_is_conflict(self, client, admin, customer):
        close_deal(client, admin, customer)

        response = close_deal(client, admin, customer)

        assert response.status_code == 409
        assert response.json()["error"] == "DEAL_ALREADY_CLOSED"

    def test_invalid_terms(self, client, admin, customer):
        response = close_deal(client, admin, customer, value="-10")

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_CONTRACT_TERMS"

    def test_unknown_customer(self, client, admin):
        response = client.post(
            "/api/v1/admin/customers/missing/close-deal",
            json={"contract_value": "1000", "contract_duration": 1},
            headers=auth(admin),
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": "NOT_FOUND",
            "message": "Customer not found",
            "details": {"customer_id": "missing"},
        }

    def test_end_contract(self, client, admin, customer):
        close_deal(client, admin, customer)

        response = client.post(f"/api/v1/admin/customers/{customer.id}/end-contract", headers=auth(admin))

        assert response.status_code == 200
        assert response.json()["commissions_ended"] == 3
        assert response.json()["customer"]["status"] == CustomerStatus.NO_DEAL.value

    def test_close_after_end_contract_is_conflict(self, client, db, admin, customer):
        close_deal(client, admin, customer)
        client.post(f"/api/v1/admin/customers/{customer.id}/end-contract", headers=auth(admin))

        response = close_deal(client, admin, customer, value="5000", duration=2)

        assert response.status_code == 409
        assert response.json()["error"] == "DEAL_ALREADY_CLOSED"
        assert db.query(Commission).filter(Commission.customer_id == customer.id).count() == 3

    def test_end_contract_requires_active(self, client, admin, customer):
        response = client.post(f"/api/v1/admin/customers/{customer.id}/end-contract", headers=auth(admin))

        assert response.status_code == 409
        assert response.json()["error"] == "NOT_ACTIVE_CONTRACT"


class TestCommissionEndpoints:

    @pytest.fixture
    def commission_ids(self, client, admin, customer):
        return [c["id"] for c in close_deal(client, admin, customer).json()["commissions"]]

    def test_reseller_lists_only_own(self, client, commission_ids, reseller, other_reseller):
        assert len(client.get("/api/v1/commissions/", headers=auth(reseller)).json()) == 3
        assert client.get("/api/v1/commissions/", headers=auth(other_reseller)).json() == []

    def test_reseller_cannot_read_others_commission(self, client, commission_ids, other_reseller):
        response = client.get(f"/api/v1/commissions/{commission_ids[0]}", headers=auth(other_reseller))

        assert response.status_code == 403

    def test_admin_approves_then_pays(self, client, commission_ids, admin):
        url = f"/api/v1/commissions/{commission_ids[0]}"

        approved = client.patch(url, json={"action": "APPROVE"}, headers=auth(admin))
        paid = client.patch(url, json={"action": "MARK_PAID", "payment_reference": "INV-9"}, headers=auth(admin))

        assert approved.json()["status"] == "APPROVED"
        assert approved.json()["approved_by_id"] == admin.id
        assert paid.json()["status"] == "PAID"
        assert paid.json()["payment_reference"] == "INV-9"

    def test_invalid_transition_is_conflict(self, client, commission_ids, admin):
        response = client.patch(
            f"/api/v1/commissions/{commission_ids[0]}", json={"action": "MARK_PAID"}, headers=auth(admin)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_STATE_TRANSITION"
        assert response.json()["details"] == {"from": "PENDING", "to": "PAID"}

    def test_reject_without_reason(self, client, commission_ids, admin):
        response = client.patch(
            f"/api/v1/commissions/{commission_ids[0]}", json={"action": "REJECT"}, headers=auth(admin)
        )

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_bulk_reports_partial_failure(self, client, db, commission_ids, admin):
        response = client.post(
            "/api/v1/admin/bulk-operations/commissions",
            json={"commission_ids": commission_ids[:2] + ["missing"], "action": "approve"},
            headers=auth(admin),
        )

        body = response.json()
        assert response.status_code == 200
        assert body["succeeded"] == 2
        assert body["failed"] == 1
        assert body["results"][2] == {
            "commission_id": "missing",
            "ok": False,
            "reason": "Commission not found",
            "error_code": "NOT_FOUND",
        }
        db.expire_all()
        assert db.get(Commission, commission_ids[0]).status == CommissionStatus.APPROVED

    def test_bulk_rejects_empty_list(self, client, admin):
        response = client.post(
            "/api/v1/admin/bulk-operations/commissions",
            json={"commission_ids": [], "action": "approve"},
            headers=auth(admin),
        )

        assert response.status_code == 422

    def test_summary(self, client, commission_ids, reseller):
        body = client.get("/api/v1/commissions/summary", headers=auth(reseller)).json()

        assert Decimal(body["total_pending"]) == Decimal("7200")
        assert set(body["by_period"]) == {"Year 1", "Year 2", "Year 3"}


class TestCustomerAndAdminEndpoints:

    def test_reseller_creates_customer(self, client, reseller):
        response = client.post(
            "/api/v1/customers/",
            json={"company_name": "Initech", "email": "info@initech.example.com"},
            headers=auth(reseller),
        )

        assert response.status_code == 201
        assert response.json()["status"] == "LEAD"
        assert response.json()["reseller_id"] == reseller.id

    def test_reseller_cannot_touch_other_customer(self, client, customer, other_reseller):
        response = client.patch(
            f"/api/v1/customers/{customer.id}/status", json={"status": "NO_DEAL"}, headers=auth(other_reseller)
        )

        assert response.status_code == 403

    def test_rule_crud(self, client, admin):
        created = client.post(
            "/api/v1/admin/auto-approval-rules/",
            json={"name": "Trusted", "priority": 5, "trusted_resellers_only": True},
            headers=auth(admin),
        )
        rule_id = created.json()["id"]

        updated = client.patch(
            f"/api/v1/admin/auto-approval-rules/{rule_id}", json={"enabled": False}, headers=auth(admin)
        )
        deleted = client.delete(f"/api/v1/admin/auto-approval-rules/{rule_id}", headers=auth(admin))

        assert created.status_code == 201
        assert updated.json()["enabled"] is False
        assert deleted.status_code == 204
        assert client.get("/api/v1/admin/auto-approval-rules/", headers=auth(admin)).json() == []

    def test_toggle_trusted_and_terms(self, client, admin, reseller):
        trusted = client.patch(f"/api/v1/admin/users/{reseller.id}/toggle-trusted", headers=auth(admin))
        terms = client.patch(
            f"/api/v1/admin/users/{reseller.id}/commission-terms",
            json={"commission_rate": "12.5", "commission_years": 4},
            headers=auth(admin),
        )

        assert trusted.json()["is_trusted"] is True
        assert Decimal(terms.json()["commission_rate"]) == Decimal("12.5")
        assert terms.json()["commission_years"] == 4

    def test_notifications_for_current_user(self, client, admin, reseller, customer):
        close_deal(client, admin, customer)
        client.post(f"/api/v1/admin/customers/{customer.id}/end-contract", headers=auth(admin))

        notifications = client.get("/api/v1/notifications/", headers=auth(reseller)).json()

        assert [n["type"] for n in notifications] == ["CUSTOMER_STATUS_CHANGED"]
        read = client.patch(f"/api/v1/notifications/{notifications[0]['id']}/read", headers=auth(reseller))
        assert read.json()["read"] is True

    def test_commission_export_is_csv(self, client, admin, reseller, customer):
        close_deal(client, admin, customer)

        response = client.get("/api/v1/reports/commissions", headers=auth(reseller))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert len(response.text.strip().splitlines()) == 4

    def test_admin_exports_need_admin(self, client, reseller):
        assert client.get("/api/v1/reports/customers", headers=auth(reseller)).status_code == 403
