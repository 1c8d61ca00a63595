from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException

from .base import InvalidAddressError

WHATSAPP_SCHEME = "whatsapp:"


def to_e164(raw: Optional[str], default_region: Optional[str] = None) -> str:
    """
    Coerce a stored phone number into E.164 (``+<country><number>``).

    Numbers written without an international prefix are read as national
    numbers of ``default_region`` (ISO 3166 code, e.g. "IN"). Without a
    default region only internationally written numbers are accepted.
    """
    if raw is None or not raw.strip():
        raise InvalidAddressError("phone number is missing")

    number = raw.strip()
    if number.lower().startswith(WHATSAPP_SCHEME):
        number = number[len(WHATSAPP_SCHEME):]

    try:
        parsed = phonenumbers.parse(number, default_region.upper() if default_region else None)
    except NumberParseException as e:
        raise InvalidAddressError(f"cannot parse phone number {raw!r}: {e}") from e

    if not phonenumbers.is_valid_number(parsed):
        raise InvalidAddressError(f"{raw!r} is not a valid phone number")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
