import pytest
from fastapi.testclient import TestClient

from marketplace.config import Settings
from marketplace.database import Database, latest
from marketplace.main import create_app
from marketplace.models.otp import OTPChallenge
from marketplace.services.tokens import TokenService


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        jwt_secret_key="test-secret",
        jwt_issuer="marketplace-test",
        password_pepper="test-pepper",
        bcrypt_rounds=4,
        twilio_account_sid="",
        twilio_auth_token="",
        twilio_from_phone_number="",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def app(settings, database):
    return create_app(settings=settings, database=database)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def token_service(settings):
    return TokenService(settings.jwt_secret_key, settings.jwt_algorithm, settings.jwt_issuer)


@pytest.fixture
def latest_otp(database):
    """Reads the newest OTP code for an account straight from the database."""
    def _read(account_uuid):
        session = database.session()
        try:
            challenge = latest(session, OTPChallenge, account_uuid=account_uuid)
            return challenge.code if challenge else None
        finally:
            session.close()
    return _read


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="auth")
def auth_fixture():
    return auth


@pytest.fixture
def register_customer(client):
    def _register(phone="5551234567", email=None, password="Secret123!"):
        payload = {"phone_number": phone, "first_name": "Ada", "last_name": "Lovelace", "password": password}
        if email:
            payload["email"] = email
        r = client.post("/register", json=payload)
        assert r.status_code == 201, r.text
        return r.json()
    return _register


@pytest.fixture
def register_merchant(client):
    def _register(phone="5559876543", email=None, password="Secret123!"):
        payload = {"phone_number": phone, "password": password}
        if email:
            payload["email"] = email
        r = client.post("/merchant/register", json=payload)
        assert r.status_code == 201, r.text
        return r.json()
    return _register


@pytest.fixture
def verified_customer(client, register_customer, token_service, latest_otp):
    """(full token, account_uuid) for a customer who completed OTP verification."""
    body = register_customer()
    account_uuid = token_service.parse(body["access_token"]).account_uuid
    r = client.post(
        "/authenticate/verify_account",
        json={"otp": latest_otp(account_uuid)},
        headers=auth(body["access_token"]),
    )
    assert r.status_code == 202, r.text
    return r.json()["access_token"], account_uuid


@pytest.fixture
def verified_merchant(client, register_merchant, token_service, latest_otp):
    body = register_merchant()
    account_uuid = token_service.parse(body["access_token"]).account_uuid
    r = client.post(
        "/authenticate/verify_account",
        json={"otp": latest_otp(account_uuid)},
        headers=auth(body["access_token"]),
    )
    assert r.status_code == 202, r.text
    return r.json()["access_token"], account_uuid
