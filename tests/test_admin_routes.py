import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient

from loancrm.core.config import Settings
from loancrm.core.errors import AuthError, ServiceError
from loancrm.core.security import verify_password
from loancrm.schemas.admin_schemas import ResetPasswordRequest
from loancrm.main import create_app
from loancrm.services.admin_service import AdminService
from tests.fakes import ADMIN_EMAIL, ADMIN_PASSWORD, InMemoryCustomerStore


def test_register_and_login(client, admin_store):
    resp = client.post("/api/admin/register", json={
        "username": "ops",
        "email": "ops@example.com",
        "password": "longenough",
    })
    assert resp.status_code == 201
    assert resp.json() == {"message": "Admin registered successfully"}
    stored = next(iter(admin_store.records.values()))
    assert stored.hashed_password != "longenough"

    resp = client.post("/api/admin/login", json={"email": "ops@example.com", "password": "longenough"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["admin"] == {"username": "ops", "email": "ops@example.com"}

    stats = client.get("/api/customers/stats", headers={"Authorization": f"Bearer {body['token']}"})
    assert stats.status_code == 200


def test_register_rejects_duplicate_and_short_password(client, admin):
    resp = client.post("/api/admin/register", json={"username": "x", "email": ADMIN_EMAIL, "password": "longenough"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Admin already exists"

    resp = client.post("/api/admin/register", json={"username": "x", "email": "new@example.com", "password": "short"})
    assert resp.status_code == 400


def test_login_with_wrong_password(client, admin):
    resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid credentials"}

    resp = client.post("/api/admin/login", json={"email": "nobody@example.com", "password": ADMIN_PASSWORD})
    assert resp.status_code == 400


def test_token_for_deleted_admin_is_rejected(client, admin, admin_store, auth_headers):
    admin_store.records.clear()
    resp = client.get("/api/customers/stats", headers=auth_headers)
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token"


def test_password_reset_flow(client, admin, admin_store, notifier):
    resp = client.post("/api/admin/forgot-password", json={"email": ADMIN_EMAIL})
    assert resp.status_code == 200
    assert resp.json() == {"message": "OTP sent to email"}
    otp = notifier.otps[-1]["otp"]
    assert admin_store.records[admin.id].otp == otp

    resp = client.post("/api/admin/reset-password", json={"email": ADMIN_EMAIL, "otp": otp, "newPassword": "brand-new-pass"})
    assert resp.status_code == 200
    stored = admin_store.records[admin.id]
    assert stored.otp is None and stored.otp_expires is None
    assert verify_password("brand-new-pass", stored.hashed_password)
    assert client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "brand-new-pass"}).status_code == 200
    assert client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}).status_code == 400

    # The passcode is single-use
    resp = client.post("/api/admin/reset-password", json={"email": ADMIN_EMAIL, "otp": otp, "newPassword": "another-pass"})
    assert resp.status_code == 400


def test_forgot_password_falls_back_to_recovery_address(client, admin, notifier):
    resp = client.post("/api/admin/forgot-password")
    assert resp.status_code == 200
    assert notifier.otps[-1]["email"] == ADMIN_EMAIL


def test_forgot_password_unknown_admin(client):
    resp = client.post("/api/admin/forgot-password", json={"email": "ghost@example.com"})
    assert resp.status_code == 404


def test_forgot_password_delivery_failure_is_reported(client, admin, admin_store, notifier):
    notifier.fail = True
    resp = client.post("/api/admin/forgot-password", json={"email": ADMIN_EMAIL})
    assert resp.status_code == 500
    assert resp.json()["message"] == "Failed to send email"
    stored = admin_store.records[admin.id]
    assert stored.otp is None and stored.otp_expires is None


def test_forgot_password_with_unconfigured_mailer_stores_no_otp(admin_store, admin):
    settings = Settings(JWT_SECRET_KEY="test-secret-key", ADMIN_RECOVERY_EMAIL=ADMIN_EMAIL)
    app = create_app(settings, customer_store=InMemoryCustomerStore(), admin_store=admin_store)
    with TestClient(app) as client:
        resp = client.post("/api/admin/forgot-password")
    assert resp.status_code == 500
    assert resp.json()["message"] == "Mail service is not available"
    assert admin_store.records[admin.id].otp is None


def test_wrong_otp_is_rejected(client, admin):
    client.post("/api/admin/forgot-password", json={"email": ADMIN_EMAIL})
    resp = client.post("/api/admin/reset-password", json={"email": ADMIN_EMAIL, "otp": "000000", "newPassword": "brand-new-pass"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid or expired OTP"


@pytest.mark.asyncio
async def test_expired_otp_is_cleared(settings, admin_store, admin, notifier):
    now = [datetime(2025, 5, 1, 12, 0)]
    service = AdminService(admin_store, settings, notifier=notifier, clock=lambda: now[0])

    await service.forgot_password(ADMIN_EMAIL)
    otp = notifier.otps[-1]["otp"]
    assert admin_store.records[admin.id].otp_expires == datetime(2025, 5, 1, 12, 10)

    now[0] += timedelta(minutes=11)
    with pytest.raises(AuthError) as exc:
        await service.reset_password(ResetPasswordRequest(email=ADMIN_EMAIL, otp=otp, new_password="brand-new-pass"))
    assert exc.value.status_code == 400
    assert admin_store.records[admin.id].otp is None


@pytest.mark.asyncio
async def test_forgot_password_without_mailer_leaves_no_otp(settings, admin_store, admin):
    service = AdminService(admin_store, settings, notifier=None)
    with pytest.raises(ServiceError):
        await service.forgot_password(ADMIN_EMAIL)
    assert admin_store.records[admin.id].otp is None
