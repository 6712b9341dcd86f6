from fastapi.testclient import TestClient

from loancrm.main import create_app
from tests.fakes import customer_payload


def register(client, **overrides):
    return client.post("/api/customers/register", json=customer_payload(**overrides))


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "Server running"}
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_register_then_fetch_profile(client):
    resp = register(client, status="approved")
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Customer registered successfully"
    customer = body["customer"]
    assert customer["status"] == "pending"
    assert customer["_id"]
    assert customer["createdAt"] == customer["updatedAt"]

    profile = client.get("/api/customers/profile", params={"email": "asha@example.com", "phone": "9876543210"})
    assert profile.status_code == 200
    assert profile.json()["_id"] == customer["_id"]

    by_id = client.get(f"/api/customers/{customer['_id']}")
    assert by_id.json()["email"] == "asha@example.com"


def test_registration_confirmation_is_sent_after_response(app, notifier):
    with TestClient(app) as client:
        resp = register(client)
        assert resp.status_code == 201
    # Shutdown drains the notification queue
    assert [c.email for c in notifier.confirmations] == ["asha@example.com"]


def test_failed_confirmation_does_not_affect_registration(app, notifier, customer_store):
    notifier.fail = True
    with TestClient(app) as client:
        resp = register(client)
        assert resp.status_code == 201
    assert len(customer_store.records) == 1
    failures = list(app.state.notification_worker.recent_errors)
    assert [f.step for f in failures] == ["email"]


def test_duplicate_registration_is_rejected(client, customer_store):
    assert register(client).status_code == 201
    resp = register(client, phone="1231231234")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Customer already registered"
    assert len(customer_store.records) == 1


def test_missing_account_number_is_rejected(client, customer_store):
    payload = customer_payload()
    del payload["accountnumber"]
    resp = client.post("/api/customers/register", json=payload)
    assert resp.status_code == 400
    assert "accountnumber" in resp.json()["error"]
    assert customer_store.records == {}


def test_malformed_body_is_a_400(client):
    resp = register(client, loanamount=-5)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Request validation failed"


def test_profile_requires_email_and_phone(client):
    resp = client.get("/api/customers/profile", params={"email": "asha@example.com"})
    assert resp.status_code == 400


def test_unknown_customer_is_404(client):
    assert client.get("/api/customers/64b7f0c2a1b2c3d4e5f60718").status_code == 404
    resp = client.delete("/api/customers/delete/64b7f0c2a1b2c3d4e5f60718")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Customer not found"}


def test_delete_is_open_by_default(client, customer_store):
    customer_id = register(client).json()["customer"]["_id"]
    resp = client.delete(f"/api/customers/delete/{customer_id}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Customer deleted successfully"}
    assert customer_store.records == {}


def test_delete_can_require_admin(settings, customer_store, admin_store, notifier, auth_headers):
    guarded = settings.model_copy(update={"REQUIRE_ADMIN_FOR_DELETE": True})
    app = create_app(guarded, customer_store=customer_store, admin_store=admin_store, notifier=notifier)
    with TestClient(app) as client:
        customer_id = register(client).json()["customer"]["_id"]
        assert client.delete(f"/api/customers/delete/{customer_id}").status_code == 401
        assert client.delete(f"/api/customers/delete/{customer_id}", headers=auth_headers).status_code == 200


def test_stats_requires_admin(client):
    resp = client.get("/api/customers/stats")
    assert resp.status_code == 401
    assert resp.json() == {"message": "No token, authorization denied"}

    resp = client.get("/api/customers/stats", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token is not valid"


def test_stats_on_empty_store(client, auth_headers):
    resp = client.get("/api/customers/stats", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {
        "totalCustomers": 0,
        "approvedCount": 0,
        "pendingCount": 0,
        "rejectedCount": 0,
        "totalLoanAmount": 0,
        "monthwise": [],
    }


def test_stats_reflect_status_changes(client, auth_headers):
    first = register(client).json()["customer"]["_id"]
    register(client, email="b@example.com", phone="5550001111", loanamount=1000)

    resp = client.put(f"/api/customers/update/{first}", json={"status": "approved"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["customer"]["status"] == "approved"

    stats = client.get("/api/customers/stats", headers=auth_headers).json()
    assert (stats["totalCustomers"], stats["approvedCount"], stats["pendingCount"]) == (2, 1, 1)
    assert stats["totalLoanAmount"] == 251000
    assert sum(m["count"] for m in stats["monthwise"]) == 2


def test_store_failure_is_a_500(client, customer_store, auth_headers):
    customer_store.fail_with = "server selection timeout"
    resp = client.get("/api/customers/stats", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json()["error"] == "server selection timeout"


def test_update_requires_admin_and_valid_status(client, auth_headers):
    customer_id = register(client).json()["customer"]["_id"]
    assert client.put(f"/api/customers/update/{customer_id}", json={"status": "approved"}).status_code == 401
    resp = client.put(f"/api/customers/update/{customer_id}", json={"status": "archived"}, headers=auth_headers)
    assert resp.status_code == 400


def test_list_all_is_paginated(client, auth_headers):
    for n in range(3):
        register(client, email=f"c{n}@example.com", phone=f"90000000{n:02d}")

    resp = client.get("/api/customers/all", params={"page": 1, "limit": 2}, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["customers"]) == 2
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2, "hasNext": True, "hasPrev": False}

    resp = client.get("/api/customers/all", params={"sortBy": "ssn"}, headers=auth_headers)
    assert resp.status_code == 400


def test_search_and_filter(client):
    register(client)
    register(client, firstname="Ravi", email="ravi@example.com", phone="9123456780", loantype="Car Loan")

    assert client.get("/api/customers/search").status_code == 400
    names = [c["firstname"] for c in client.get("/api/customers/search", params={"q": "ravi"}).json()]
    assert names == ["Ravi"]

    found = client.get("/api/customers/filter", params={"loantype": "Car Loan", "status": "pending"}).json()
    assert [c["firstname"] for c in found] == ["Ravi"]
    assert len(client.get("/api/customers/filter").json()) == 2
    assert client.get("/api/customers/filter", params={"minAmount": "abc"}).status_code == 200


def test_filter_rejects_bad_month(client):
    resp = client.get("/api/customers/filter", params={"month": "13", "year": "2025"})
    assert resp.status_code == 400
    assert "month" in resp.json()["error"]


def test_new_customer_is_pushed_to_dashboards(client):
    with client.websocket_connect("/ws/customers") as ws:
        assert ws.receive_json() == {"type": "welcome", "message": "connected"}
        customer_id = register(client).json()["customer"]["_id"]
        event = ws.receive_json()
    assert event["type"] == "new_customer"
    assert event["data"]["_id"] == customer_id
