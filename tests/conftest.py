import pytest
from fastapi.testclient import TestClient

from loancrm.core.config import Settings
from loancrm.core.security import create_access_token, hash_password
from loancrm.main import create_app
from loancrm.schemas.admin_schemas import AdminRecord
from tests.fakes import ADMIN_EMAIL, ADMIN_PASSWORD, FakeNotifier, InMemoryAdminStore, InMemoryCustomerStore


@pytest.fixture
def settings():
    return Settings(
        JWT_SECRET_KEY="test-secret-key",
        MAIL_API_URL="https://mail.test/send",
        MAIL_API_TOKEN="mail-token",
        ADMIN_RECOVERY_EMAIL=ADMIN_EMAIL,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def customer_store():
    return InMemoryCustomerStore()


@pytest.fixture
def admin_store():
    return InMemoryAdminStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def app(settings, customer_store, admin_store, notifier):
    return create_app(settings, customer_store=customer_store, admin_store=admin_store, notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin(admin_store):
    record = AdminRecord(
        _id="64b7f0c2a1b2c3d4e5f60718",
        username="root",
        email=ADMIN_EMAIL,
        hashed_password=hash_password(ADMIN_PASSWORD),
    )
    admin_store.records[record.id] = record
    return record


@pytest.fixture
def auth_headers(admin, settings):
    token = create_access_token({"id": admin.id}, settings)
    return {"Authorization": f"Bearer {token}"}
