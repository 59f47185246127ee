import re
from phonenumbers import parse, is_valid_number, NumberParseException, format_number, PhoneNumberFormat
from pydantic import SecretStr

DEFAULT_PHONE_REGION = "GB"

_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a digit"),
)


def check_password_strength(password: SecretStr) -> None:
    value = password.get_secret_value()
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(value)]
    if missing:
        raise ValueError(f"Password must contain: {', '.join(missing)}")
    if value != value.strip():
        raise ValueError("Password must not start or end with whitespace")


def normalize_phone_or_none(v: str | None, default_region: str = DEFAULT_PHONE_REGION) -> str | None:
    """UK numbers may be entered in national format; everything is stored as E.164."""
    if v is None or not v.strip():
        return None
    try:
        number = parse(v, default_region)
    except NumberParseException as e:
        raise ValueError("Invalid phone number") from e
    if not is_valid_number(number):
        raise ValueError("Invalid phone number")
    return format_number(number, PhoneNumberFormat.E164)
