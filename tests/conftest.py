import os
import sys
import tempfile
from pathlib import Path

# Ensure repository root is on sys.path so 'import palavraviva' works uninstalled
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read once and the engine is bound at import time, so the test
# database must be configured before anything imports palavraviva.
_TMP_DIR = tempfile.mkdtemp(prefix="palavraviva-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["AUTH_SECRET"] = "test-secret"
os.environ["CRON_SECRET"] = "cron-test-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ELEVENLABS_API_KEY"] = ""
os.environ["APP_URL"] = "http://app.test"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from palavraviva.core.security import create_session_token, get_password_hash  # noqa: E402
from palavraviva.db.base import Base, SessionLocal, engine  # noqa: E402
from palavraviva.models import sql_models  # noqa: E402,F401
from palavraviva.models.sql_models import Account, User, utcnow  # noqa: E402

PASSWORD = "senha-segura-123"
# Hashing is slow; all fixture users share one hash
_PASSWORD_HASH = get_password_hash(PASSWORD)

# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
@pytest.fixture
def anyio_backend():
    return "asyncio"

@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    SessionLocal.remove()

@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def make_user(db):
    """Factory for users with an account, defaulting to an active trial."""
    from datetime import timedelta

    counter = {"n": 0}

    def _make(email=None, status="trialing", trial_days=7, **fields):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        user = User(
            email=email,
            name=fields.pop("name", f"User {counter['n']}"),
            password_hash=_PASSWORD_HASH,
            trial_end_date=utcnow() + timedelta(days=trial_days),
            **fields,
        )
        user.account = Account(name=f"{email}'s Account", plan_name="free", subscription_status=status)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make

@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_session_token(user.id)}"}

    return _headers


@pytest.fixture()
async def client():
    from palavraviva.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
