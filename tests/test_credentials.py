import pytest

from marketplace.errors import HashingError
from marketplace.models.account import Account, Role
from marketplace.models.credential import Credential, CredentialType
from marketplace.services.credentials import CredentialStore, check_password, hash_password


@pytest.fixture
def account(db):
    acc = Account(uuid="acc_test00000001", role=Role.customer, phone_number="5550000001")
    db.add(acc)
    db.commit()
    return acc


@pytest.fixture
def store(db):
    return CredentialStore(db, pepper="pepper", rounds=4)


def test_verify_after_store(store, account):
    store.hash_and_store(account.id, "correct horse")
    assert store.verify(account.id, "correct horse")
    assert not store.verify(account.id, "correct horse ")
    assert not store.verify(account.id, "wrong")


def test_verify_without_credential_is_false(store, account):
    assert store.verify(account.id, "anything") is False


def test_store_updates_in_place(db, store, account):
    store.hash_and_store(account.id, "first")
    store.hash_and_store(account.id, "second")
    db.commit()
    rows = db.query(Credential).filter_by(account_id=account.id, type=CredentialType.password).all()
    assert len(rows) == 1
    assert store.verify(account.id, "second")
    assert not store.verify(account.id, "first")


def test_pepper_is_part_of_the_hash():
    hashed = hash_password("pw", "pepper-a", rounds=4)
    assert check_password("pw", hashed, "pepper-a")
    assert not check_password("pw", hashed, "pepper-b")
    assert "pw" not in hashed


def test_malformed_stored_hash_does_not_verify():
    assert check_password("pw", "not-a-bcrypt-hash", "pepper") is False


def test_invalid_rounds_raise_hashing_error():
    with pytest.raises(HashingError) as exc:
        hash_password("pw", "pepper", rounds=2)
    assert exc.value.code == 1007
    assert exc.value.status_code == 500


def test_otp_secret_is_issued_once(db, store, account):
    first = store.issue_otp_secret(account.id, account.phone_number)
    second = store.issue_otp_secret(account.id, account.phone_number)
    assert first == second
    assert db.query(Credential).filter_by(account_id=account.id, type=CredentialType.otp_secret).count() == 1


def test_long_multibyte_passwords_stay_distinct():
    # 36 two-byte characters already fill bcrypt's 72-byte input
    first = "é" * 36 + "a"
    second = "é" * 36 + "b"
    hashed = hash_password(first, "server-pepper", rounds=4)
    assert check_password(first, hashed, "server-pepper")
    assert not check_password(second, hashed, "server-pepper")
    assert not check_password(first, hashed, "some-other-pepper")
