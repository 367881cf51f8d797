from datetime import timedelta

import jwt
import pytest

from marketplace.models.account import Role
from marketplace.services.tokens import InvalidToken, TokenClaims, TokenExpired, TokenService, TrustLevel


@pytest.fixture
def service():
    return TokenService("secret", issuer="marketplace-test")


def _claims(**overrides):
    values = {"role": Role.merchant, "trust_level": TrustLevel.partial, "account_uuid": "acc_1", "merchant_uuid": "m_1"}
    values.update(overrides)
    return TokenClaims(**values)


def test_round_trip_keeps_claims(service):
    token = service.issue(_claims(), timedelta(minutes=5))
    assert isinstance(token, str)
    claims = service.parse(token)
    assert claims.role == Role.merchant
    assert claims.trust_level == TrustLevel.partial
    assert claims.is_partial
    assert claims.account_uuid == "acc_1"
    assert claims.merchant_uuid == "m_1"
    assert claims.issuer == "marketplace-test"


def test_customer_token_has_no_merchant_claim(service):
    token = service.issue(_claims(role=Role.customer, merchant_uuid=None), timedelta(minutes=5))
    payload = jwt.decode(token, options={"verify_signature": False})
    assert "merchant_uuid" not in payload


def test_expired_token_rejected(service):
    token = service.issue(_claims(), timedelta(seconds=-10))
    with pytest.raises(TokenExpired):
        service.parse(token)


def test_expiry_waiver_still_checks_signature(service):
    token = service.issue(_claims(), timedelta(seconds=-10))
    assert service.parse(token, allow_expired=True).account_uuid == "acc_1"

    other = TokenService("another-secret", issuer="marketplace-test")
    forged = other.issue(_claims(), timedelta(seconds=-10))
    with pytest.raises(InvalidToken):
        service.parse(forged, allow_expired=True)


def test_tampered_payload_rejected(service):
    token = service.issue(_claims(trust_level=TrustLevel.partial), timedelta(minutes=5))
    header, payload, signature = token.split(".")
    forged_payload = jwt.encode(
        {"iss": "marketplace-test", "exp": 9999999999, "role": "merchant", "trust_level": "full", "account_uuid": "acc_1"},
        "whatever",
        algorithm="HS256",
    ).split(".")[1]
    with pytest.raises(InvalidToken):
        service.parse(".".join([header, forged_payload, signature]))


def test_wrong_issuer_rejected(service):
    token = TokenService("secret", issuer="someone-else").issue(_claims(), timedelta(minutes=5))
    with pytest.raises(InvalidToken):
        service.parse(token)


def test_unknown_role_is_malformed(service):
    token = jwt.encode(
        {"iss": "marketplace-test", "exp": 9999999999, "role": "superuser", "trust_level": "full", "account_uuid": "acc_1"},
        "secret",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        service.parse(token)


def test_garbage_token_rejected(service):
    with pytest.raises(InvalidToken):
        service.parse("not.a.token")
    with pytest.raises(InvalidToken):
        service.parse("")


def test_empty_secret_not_allowed():
    with pytest.raises(ValueError):
        TokenService("")
