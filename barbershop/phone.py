# barbershop/phone.py

import re

from .errors import ValidationError

PHONE_PATTERN = re.compile(r"^\+905[0-9]{9}$")


def normalize_phone(phone: str) -> str:
    """Bring a national mobile number to the +90XXXXXXXXXX form used as the customer key."""
    if not phone:
        return ""
    digits = re.sub(r"[^\d+]", "", phone.strip())
    if digits.startswith("+90"):
        return digits
    if digits.startswith("90"):
        return f"+{digits}"
    if digits.startswith("0"):
        return f"+90{digits[1:]}"
    return f"+90{digits}"


def validate_phone(phone: str) -> str:
    normalized = normalize_phone(phone)
    if not PHONE_PATTERN.match(normalized):
        raise ValidationError("Enter a valid mobile phone number")
    return normalized
