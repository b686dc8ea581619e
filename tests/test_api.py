from fastapi.testclient import TestClient

from marketplace.models.appointment import AppointmentStatus
from marketplace.services.quality import quality_reports


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert client.head("/health").status_code == 200


def test_metrics_exposes_request_counters(client):
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text


class TestAuthApi:
    def test_register_login_me(self, client):
        body = {"name": "Ada Customer", "email": "ada@example.com", "password": "secret123"}
        created = client.post("/api/auth/register", json=body)
        assert created.status_code == 201
        assert created.json()["user"]["role"] == "user"

        login = client.post("/api/v1/auth/login", json={"email": "ADA@example.com", "password": "secret123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["success"] is True
        assert me.json()["data"]["email"] == "ada@example.com"

    def test_admin_self_registration_refused(self, client):
        body = {"name": "Mallory", "email": "mallory@example.com", "password": "secret123", "role": "admin"}
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_bad_credentials(self, client, customer):
        response = client.post("/api/auth/login", json={"email": customer.email, "password": "wrong-one"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    def test_validation_envelope(self, client):
        response = client.post("/api/auth/register", json={"name": "A", "email": "nope", "password": "x"})
        assert response.status_code == 400
        payload = response.json()
        assert payload["success"] is False
        assert payload["message"] == "Validation errors"
        fields = {error["field"] for error in payload["errors"]}
        assert {"name", "email", "password"} <= fields


class TestQualityApi:
    def test_requires_token(self, client, provider):
        response = client.get(f"/api/quality/scores/current/{provider.id}")
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, no token"

    def test_rejects_customer_role(self, client, customer, provider, auth_headers):
        response = client.get(f"/api/quality/scores/current/{provider.id}", headers=auth_headers(customer))
        assert response.status_code == 403

    def test_calculate_then_current(self, client, provider, provider_user, auth_headers, make_appointment):
        make_appointment(status=AppointmentStatus.completed)
        headers = auth_headers(provider_user)

        missing = client.get(f"/api/v1/quality/scores/current/{provider.id}", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "No quality score found for the specified period"

        calculated = client.post(
            f"/api/quality/scores/calculate/{provider.id}", json={"period": "monthly"}, headers=headers
        )
        assert calculated.status_code == 200
        data = calculated.json()["data"]
        assert data["total_appointments"] == 1
        assert data["appointment_completion_rate"] == 100.0
        assert data["classification"] in {"excellent", "good", "average", "poor"}

        current = client.get(f"/api/v1/quality/scores/current/{provider.id}", headers=headers)
        assert current.status_code == 200
        assert current.json()["data"]["id"] == data["id"]

        history = client.get(f"/api/quality/scores/history/{provider.id}", headers=headers)
        assert [row["id"] for row in history.json()["data"]] == [data["id"]]

        listed = client.get("/api/quality/scores", headers=headers)
        assert listed.json()["pagination"]["total"] == 1

    def test_calculate_without_body_uses_default_period(self, client, provider, admin_user, auth_headers):
        response = client.post(f"/api/quality/scores/calculate/{provider.id}", headers=auth_headers(admin_user))
        assert response.status_code == 200
        assert response.json()["data"]["period"] == "monthly"

    def test_foreign_provider_forbidden(self, client, provider_user, other_provider, auth_headers):
        response = client.post(
            f"/api/quality/scores/calculate/{other_provider.id}", headers=auth_headers(provider_user)
        )
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_invalid_period(self, client, provider, admin_user, auth_headers):
        response = client.get(
            f"/api/quality/scores/current/{provider.id}",
            params={"period": "fortnightly"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 400

    def test_recommendations(self, client, provider, provider_user, auth_headers):
        headers = auth_headers(provider_user)
        assert client.get(f"/api/quality/recommendations/{provider.id}", headers=headers).status_code == 404

        client.post(f"/api/quality/scores/calculate/{provider.id}", headers=headers)
        response = client.get(f"/api/quality/recommendations/{provider.id}", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"]["total"] == len(data["recommendations"])
        assert data["current_score"]["provider_id"] == str(provider.id)

    def test_benchmarks_admin_only(self, client, provider, provider_user, admin_user, auth_headers):
        denied = client.get("/api/quality/benchmarks", headers=auth_headers(provider_user))
        assert denied.status_code == 403

        client.post(f"/api/quality/scores/calculate/{provider.id}", headers=auth_headers(admin_user))
        allowed = client.get("/api/quality/benchmarks", headers=auth_headers(admin_user))
        assert allowed.status_code == 200
        assert allowed.json()["data"]["overall"]["provider_count"] == 1

    def test_analytics(self, client, provider, admin_user, auth_headers):
        headers = auth_headers(admin_user)
        client.post(f"/api/quality/scores/calculate/{provider.id}", headers=headers)
        response = client.get("/api/v1/quality/analytics", params={"period": "monthly"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["top_providers"][0]["provider_id"] == str(provider.id)

    def test_unexpected_error_is_hidden(self, client, admin_user, auth_headers, monkeypatch):
        def _boom(*_args, **_kwargs):
            raise RuntimeError("database exploded")

        monkeypatch.setattr(quality_reports, "benchmarks", _boom)
        quiet_client = TestClient(client.app, raise_server_exceptions=False)
        response = quiet_client.get("/api/quality/benchmarks", headers=auth_headers(admin_user))
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Server error"}


class TestMarketplaceApi:
    def test_public_provider_listing(self, client, provider):
        response = client.get("/api/providers")
        assert response.status_code == 200
        ids = [item["id"] for item in response.json()["data"]]
        assert str(provider.id) in ids

    def test_book_and_confirm(self, client, customer, provider, provider_user, auth_headers):
        booking = client.post(
            "/api/appointments",
            json={
                "provider_id": str(provider.id),
                "scheduled_at": "2099-01-05T10:00:00Z",
                "service_type": "Boiler service",
            },
            headers=auth_headers(customer),
        )
        assert booking.status_code == 201
        appointment_id = booking.json()["data"]["id"]

        confirmed = client.patch(
            f"/api/appointments/{appointment_id}/status",
            json={"status": "confirmed"},
            headers=auth_headers(provider_user),
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["data"]["responded_at"] is not None

        unread = client.get("/api/notifications/unread-count", headers=auth_headers(customer))
        assert unread.json()["unread_count"] == 1

    def test_admin_moderates_review(self, client, customer, admin_user, provider, auth_headers, make_appointment):
        appointment = make_appointment(status=AppointmentStatus.completed)
        created = client.post(
            "/api/reviews",
            json={"appointment_id": str(appointment.id), "rating": 4, "comment": "Fixed the leak quickly."},
            headers=auth_headers(customer),
        )
        review_id = created.json()["data"]["id"]
        url = f"/api/reviews/{review_id}/moderation"

        denied = client.patch(url, json={"is_visible": False}, headers=auth_headers(customer))
        assert denied.status_code == 403

        hidden = client.patch(
            url, json={"is_visible": False, "reason": "Contains personal data"}, headers=auth_headers(admin_user)
        )
        assert hidden.status_code == 200
        assert hidden.json()["message"] == "Review hidden successfully"
        assert hidden.json()["data"]["is_visible"] is False

        listed = client.get(f"/api/v1/reviews/provider/{provider.id}")
        assert review_id not in [item["id"] for item in listed.json()["data"]]

        restored = client.patch(
            f"/api/v1/reviews/{review_id}/moderation", json={"is_visible": True}, headers=auth_headers(admin_user)
        )
        assert restored.json()["data"]["is_visible"] is True


class TestUsersApi:
    def test_admin_lists_and_deactivates(self, client, admin_user, customer, auth_headers):
        headers = auth_headers(admin_user)
        listed = client.get("/api/users", params={"role": "user"}, headers=headers)
        assert listed.status_code == 200
        assert str(customer.id) in [item["id"] for item in listed.json()["data"]]

        updated = client.patch(f"/api/users/{customer.id}", json={"is_active": False}, headers=headers)
        assert updated.status_code == 200
        assert updated.json()["data"]["is_active"] is False

        locked_out = client.get("/api/auth/me", headers=auth_headers(customer))
        assert locked_out.status_code == 401

    def test_admin_cannot_demote_self(self, client, admin_user, auth_headers):
        response = client.patch(f"/api/users/{admin_user.id}", json={"role": "user"}, headers=auth_headers(admin_user))
        assert response.status_code == 400

    def test_customer_cannot_list_users(self, client, customer, auth_headers):
        assert client.get("/api/users", headers=auth_headers(customer)).status_code == 403

    def test_update_own_profile(self, client, customer, auth_headers):
        response = client.put("/api/v1/users/me", json={"name": "Renamed Customer"}, headers=auth_headers(customer))
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed Customer"
