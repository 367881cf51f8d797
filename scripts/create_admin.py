"""
Create an admin account (phone number + password). Admins have no role profile and
cannot self-register; this script is the only way to make one.

Run from project root:
  python scripts/create_admin.py <phone_number> <password>
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from marketplace.config import get_settings
from marketplace.database import Database, latest
from marketplace.models.account import Account, Role
from marketplace.services.credentials import CredentialStore
from marketplace.utils import generate_nano_id, is_valid_phone_number, normalize_phone


def main():
    if len(sys.argv) != 3:
        print("Usage: python scripts/create_admin.py <phone_number> <password>")
        sys.exit(1)
    phone, password = sys.argv[1], sys.argv[2]
    if not is_valid_phone_number(phone):
        print(f"Not a valid 10-digit phone number: {phone}")
        sys.exit(1)
    phone = normalize_phone(phone)

    settings = get_settings()
    database = Database(settings.database_url)
    database.create_all()
    db = database.session()
    try:
        if latest(db, Account, phone_number=phone) is not None:
            print(f"An account already exists for {phone}")
            sys.exit(1)
        account = Account(
            uuid=generate_nano_id(12, "acc_"),
            role=Role.admin,
            phone_number=phone,
            phone_number_verified=True,
        )
        db.add(account)
        db.flush()
        CredentialStore(db, pepper=settings.password_pepper, rounds=settings.bcrypt_rounds).hash_and_store(
            account.id, password
        )
        db.commit()
        print(f"Created admin {account.uuid} for {phone}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
