"""
Shared test fixtures — SQLite test database, test client, fakes for the
notifier, DNS, clock and Paystack.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set config before importing app modules
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["ENVIRONMENT"] = "development"
os.environ["PAYSTACK_SECRET_KEY"] = ""
os.environ["EMAIL_MX_CHECK"] = "true"
os.environ["ADMIN_API_KEY"] = "test-admin-key"

from mjengo.challenge_store import InMemoryChallengeStore
from mjengo.config import settings
from mjengo.database import Base, get_db
from mjengo.dependencies import get_identity_verifier, get_paystack_client
from mjengo.identity import IdentityVerifier
from mjengo.main import app
from mjengo.payments import ChargeInit


# File-backed so concurrent sessions in the race tests share one database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeClock:
    """Manually advanced time source (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0) -> None:
        self.now += seconds + minutes * 60


class FakeNotifier:
    """Records sent codes instead of emailing them."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[tuple[str, str]] = []

    def send(self, identity: str, code: str) -> bool:
        if not self.succeed:
            return False
        self.sent.append((identity, code))
        return True

    def last_code(self, identity: str) -> str:
        return [code for email, code in self.sent if email == identity][-1]


def fake_resolver(domain: str) -> list[str]:
    """Every domain has one MX record."""
    return [f"mx.{domain}"]


class FakePaystack:
    def __init__(self):
        self.charges: list[dict] = []

    def initialize_charge(self, email, amount, metadata=None, callback_url=None):
        reference = f"ref_{len(self.charges) + 1}"
        self.charges.append({
            "email": email,
            "amount": amount,
            "metadata": metadata,
            "callback_url": callback_url,
            "reference": reference,
        })
        return ChargeInit(authorization_url=f"https://checkout.paystack.test/{reference}", reference=reference)

    def verify(self, reference):
        return {"status": "success", "amount": 50000, "currency": "KES", "reference": reference}


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def verifier(notifier, clock):
    return IdentityVerifier(
        notifier=notifier,
        store=InMemoryChallengeStore(clock=clock),
        resolver=fake_resolver,
        clock=clock,
    )


@pytest.fixture
def paystack():
    return FakePaystack()


@pytest.fixture
def client(verifier, paystack):
    """FastAPI test client with fake verifier and Paystack."""
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_paystack_client] = lambda: paystack
    yield TestClient(app)
    app.dependency_overrides.pop(get_identity_verifier, None)
    app.dependency_overrides.pop(get_paystack_client, None)


@pytest.fixture
def login(client, notifier):
    """Run the email-code flow and return Bearer headers for `email`."""
    def _login(email: str = "builder@gmail.com") -> dict:
        sent = client.post("/api/auth/send-code", json={"email": email})
        assert sent.status_code == 200, sent.json()
        normalized = sent.json()["email"]
        verified = client.post("/api/auth/verify-code", json={
            "email": email,
            "code": notifier.last_code(normalized),
        })
        assert verified.status_code == 200, verified.json()
        return {"Authorization": f"Bearer {verified.json()['session_token']}"}
    return _login


@pytest.fixture
def auth_headers(login):
    return login("builder@gmail.com")


@pytest.fixture
def free_limit():
    return settings.FREE_CALCULATIONS
