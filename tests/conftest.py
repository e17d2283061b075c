import os
import itertools

import pytest

# Configuration is read at import time, so it has to be in place first.
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RESEND_API_KEY"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["ADMIN_SECRET"] = "test-admin-secret"
os.environ["RECORD_STORE_BACKEND"] = "json"
os.environ["FRONTEND_BASE_URL"] = "http://frontend.test"

from fastapi.testclient import TestClient

from nexar.services import accounts
from nexar.services.notifications import EmailService
from nexar.services.payments import CheckoutSession, PaymentGateway, SessionStatus
from nexar.store import JsonFileRecordStore, SqlRecordStore


class FakePaymentGateway(PaymentGateway):
    publishable_key = "pk_test_nexar"

    def __init__(self, enabled=True):
        self._enabled = enabled
        self._ids = itertools.count(1)
        self.created = []
        self.sessions = {}
        self.cancelled = []

    def enabled(self):
        return self._enabled

    def create_checkout_session(self, line_item, metadata, success_url, cancel_url, customer_email=None):
        self.require_enabled()
        session_id = f"cs_test_{next(self._ids)}"
        self.created.append(
            {
                "id": session_id,
                "line_item": line_item,
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
            }
        )
        self.sessions[session_id] = SessionStatus(id=session_id, paid=False, metadata=dict(metadata))
        return CheckoutSession(id=session_id, url=f"https://checkout.test/{session_id}")

    def complete(self, session_id, **changes):
        session = self.sessions[session_id]
        session.paid = True
        for key, value in changes.items():
            setattr(session, key, value)
        return session

    def retrieve_session(self, session_id):
        self.require_enabled()
        return self.sessions[session_id]

    def cancel_subscription(self, subscription_ref):
        self.require_enabled()
        self.cancelled.append(subscription_ref)


class RecordingEmailService(EmailService):
    def __init__(self):
        super().__init__(api_key="re_test", base_url="http://frontend.test")
        self.sent = []

    def _send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


@pytest.fixture()
def json_store(tmp_path):
    return JsonFileRecordStore(tmp_path / "data")


@pytest.fixture()
def sql_store(tmp_path):
    store = SqlRecordStore(f"sqlite:///{(tmp_path / 'nexar.db').as_posix()}")
    yield store
    store.dispose()


@pytest.fixture(params=["json", "sql"])
def store(request, tmp_path):
    if request.param == "json":
        yield JsonFileRecordStore(tmp_path / "data")
        return
    sql = SqlRecordStore(f"sqlite:///{(tmp_path / 'nexar.db').as_posix()}")
    yield sql
    sql.dispose()


@pytest.fixture()
def gateway():
    return FakePaymentGateway()


@pytest.fixture()
def offline_gateway():
    return FakePaymentGateway(enabled=False)


@pytest.fixture()
def mailer():
    return RecordingEmailService()


@pytest.fixture()
def make_account(store):
    """Register and verify an account, returning the stored ``Account``."""
    counter = itertools.count(1)

    def _make(username=None, password="secret123"):
        name = username or f"player{next(counter)}"
        account, _ = accounts.register(store, f"{name}@example.com", name, password)
        return accounts.verify_email(store, account.verification_token)

    return _make


@pytest.fixture()
def api(json_store, gateway, mailer):
    from nexar.main import app
    from nexar.routes import deps

    app.dependency_overrides[deps.get_store] = lambda: json_store
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_email_service] = lambda: mailer
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def signup(api, json_store):
    """Register, verify and log in through the API; returns (account_id, headers)."""

    def _signup(username, password="secret123"):
        email = f"{username}@example.com"
        res = api.post("/auth/register", json={"email": email, "username": username, "password": password})
        assert res.status_code == 201, res.text
        account = accounts.find_account_by_email(json_store, email)
        api.get("/auth/verify", params={"token": account.verification_token})
        res = api.post("/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        body = res.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}

    return _signup
