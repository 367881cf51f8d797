from marketplace.models.account import Account
from marketplace.models.audit_log import AuditLog
from marketplace.models.customer import Customer
from marketplace.models.merchant import Merchant, MerchantOnboardingState
from marketplace.models.otp import OTPChallenge
from marketplace.services.tokens import TrustLevel


def _wrong(code):
    return "000000" if code != "000000" else "111111"


def test_customer_register_verify_end_to_end(client, register_customer, token_service, latest_otp, auth):
    body = register_customer(phone="555-123-4567")
    assert body["user_id"].startswith("acc_")
    partial = token_service.parse(body["access_token"])
    assert partial.trust_level == TrustLevel.partial

    # full-only route refuses the partial token
    assert client.get("/profile", headers=auth(body["access_token"])).status_code == 403

    r = client.post(
        "/authenticate/verify_account",
        json={"otp": latest_otp(partial.account_uuid)},
        headers=auth(body["access_token"]),
    )
    assert r.status_code == 202
    full_token = r.json()["access_token"]
    assert token_service.parse(full_token).trust_level == TrustLevel.full

    r = client.get("/profile", headers=auth(full_token))
    assert r.status_code == 200
    profile = r.json()
    assert profile["phone_number"] == "5551234567"
    assert profile["phone_number_verified"] is True
    assert profile["role"] == "customer"
    assert profile["customer_id"].startswith("C_")


def test_registration_writes_everything_in_one_go(db, register_customer, token_service):
    body = register_customer(email="ada@example.com")
    account_uuid = token_service.parse(body["access_token"]).account_uuid
    account = db.query(Account).filter_by(uuid=account_uuid).one()
    assert account.primary_email.email == "ada@example.com"
    assert {c.type.value for c in account.credentials} == {"password", "otp_secret"}
    assert db.query(Customer).filter_by(account_uuid=account_uuid).count() == 1
    assert db.query(OTPChallenge).filter_by(account_uuid=account_uuid).count() == 1


def test_merchant_register_and_verify_moves_onboarding_state(
    client, db, register_merchant, token_service, latest_otp, auth
):
    body = register_merchant()
    assert body["user_id"].startswith("acc_")
    claims = token_service.parse(body["access_token"])
    assert claims.account_uuid == body["user_id"]
    assert claims.merchant_uuid.startswith("m_")

    r = client.post(
        "/authenticate/verify_account",
        json={"otp": latest_otp(claims.account_uuid)},
        headers=auth(body["access_token"]),
    )
    assert r.status_code == 202
    full = token_service.parse(r.json()["access_token"])
    assert full.merchant_uuid == claims.merchant_uuid

    merchant = db.query(Merchant).filter_by(account_uuid=body["user_id"]).one()
    assert merchant.application_current_status == MerchantOnboardingState.update_merchant_details


def test_duplicate_phone_is_conflict(client, register_customer):
    register_customer()
    r = client.post(
        "/register",
        json={"phone_number": "5551234567", "first_name": "A", "last_name": "B", "password": "x"},
    )
    assert r.status_code == 409
    assert r.json()["code"] == 1006


def test_duplicate_email_is_conflict(client, register_customer):
    register_customer(email="ada@example.com")
    r = client.post(
        "/merchant/register",
        json={"phone_number": "5550001111", "email": "ada@example.com", "password": "x"},
    )
    assert r.status_code == 409


def test_missing_field_is_400(client):
    r = client.post("/register", json={"phone_number": "5551234567", "first_name": "A", "password": "x"})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == 1001
    assert "Field 'last_name' is required" in body["data"]


def test_invalid_phone_is_400(client):
    r = client.post("/merchant/register", json={"phone_number": "12345", "password": "x"})
    assert r.status_code == 400
    assert r.json()["code"] == 1001


def test_login_by_phone_and_email(client, register_customer, token_service):
    register_customer(email="ada@example.com", password="Secret123!")
    for identifier in ({"phone_number": "(555) 123-4567"}, {"email": "ada@example.com"}):
        r = client.post("/login", json={**identifier, "password": "Secret123!"})
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["goto"] == "continue"
        assert token_service.parse(body["access_token"]).trust_level == TrustLevel.full


def test_login_unknown_user_is_400(client, db):
    r = client.post("/login", json={"phone_number": "5550000000", "password": "x"})
    assert r.status_code == 400
    assert r.json()["code"] == 1008
    assert db.query(AuditLog).filter_by(category="failed_attempt").count() == 1


def test_login_wrong_password_is_401(client, register_customer):
    register_customer(password="Secret123!")
    r = client.post("/login", json={"phone_number": "5551234567", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["code"] == 1009


def test_login_needs_exactly_one_identifier(client):
    r = client.post("/login", json={"password": "x"})
    assert r.status_code == 400
    r = client.post("/login", json={"phone_number": "5551234567", "email": "a@example.com", "password": "x"})
    assert r.status_code == 400


def test_otp_cannot_be_replayed(client, register_customer, token_service, latest_otp, auth):
    token = register_customer()["access_token"]
    code = latest_otp(token_service.parse(token).account_uuid)
    assert client.post("/authenticate/verify_account", json={"otp": code}, headers=auth(token)).status_code == 202
    r = client.post("/authenticate/verify_account", json={"otp": code}, headers=auth(token))
    assert r.status_code == 403
    assert r.json()["code"] == 1005


def test_wrong_otp_is_403_with_attempts_left(client, register_customer, token_service, latest_otp, auth):
    token = register_customer()["access_token"]
    code = latest_otp(token_service.parse(token).account_uuid)
    r = client.post("/authenticate/verify_account", json={"otp": _wrong(code)}, headers=auth(token))
    assert r.status_code == 403
    body = r.json()
    assert body["code"] == 1005
    assert body["data"] == {"reason": "mismatch", "attempts_left": 4}


def test_attempt_cap_then_resend(client, register_customer, token_service, latest_otp, auth):
    token = register_customer()["access_token"]
    account_uuid = token_service.parse(token).account_uuid
    code = latest_otp(account_uuid)
    for _ in range(5):
        r = client.post("/authenticate/verify_account", json={"otp": _wrong(code)}, headers=auth(token))
    assert r.json()["data"]["reason"] == "exhausted"
    r = client.post("/authenticate/verify_account", json={"otp": code}, headers=auth(token))
    assert r.status_code == 403

    r = client.post("/authenticate/resend_otp", headers=auth(token))
    assert r.status_code == 200
    assert r.json()["expires_in"] == 50
    new_code = latest_otp(account_uuid)
    r = client.post("/authenticate/verify_account", json={"otp": new_code}, headers=auth(token))
    assert r.status_code == 202


def test_change_password(client, verified_customer, auth):
    token, _ = verified_customer
    r = client.put(
        "/profile/password",
        json={"current_password": "wrong", "new_password": "NewSecret1"},
        headers=auth(token),
    )
    assert r.status_code == 401
    r = client.put(
        "/profile/password",
        json={"current_password": "Secret123!", "new_password": "NewSecret1"},
        headers=auth(token),
    )
    assert r.status_code == 200
    assert client.post("/login", json={"phone_number": "5551234567", "password": "NewSecret1"}).status_code == 200
    assert client.post("/login", json={"phone_number": "5551234567", "password": "Secret123!"}).status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
