"""Small helpers shared by models and services."""
import re
import secrets
import string
from datetime import datetime, timezone

_NANO_ID_CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits
_PHONE_SEPARATORS = re.compile(r"[\s\-()]")
_PHONE_PATTERN = re.compile(r"^[0-9]{10}$")


def generate_nano_id(length: int, prefix: str = "") -> str:
    if length <= 0:
        raise ValueError("Invalid length specified, must be greater than 0")
    return prefix + "".join(secrets.choice(_NANO_ID_CHARSET) for _ in range(length))


def normalize_phone(value: str | None) -> str:
    """Strip spaces, dashes and parentheses."""
    return _PHONE_SEPARATORS.sub("", value or "")


def is_valid_phone_number(value: str | None) -> bool:
    return bool(_PHONE_PATTERN.match(normalize_phone(value)))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
