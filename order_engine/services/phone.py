"""
Phone number validation for French contact numbers.

Accepted after removing spaces, dots and dashes:
    0XXXXXXXXX          national, 10 digits
    +33XXXXXXXXX        international, first digit 1-9
    0033XXXXXXXXX       international with 00 prefix
"""

import re

from order_engine.core.exceptions import InvalidPhoneError

_SEPARATORS = re.compile(r"[\s.\-]")
_NATIONAL = re.compile(r"^0[0-9]{9}$")
_INTERNATIONAL = re.compile(r"^(?:\+33|0033)[1-9][0-9]{8}$")


def strip_separators(phone: str) -> str:
    return _SEPARATORS.sub("", phone or "")


def is_valid_phone(phone: str) -> bool:
    cleaned = strip_separators(phone)
    return bool(_NATIONAL.match(cleaned) or _INTERNATIONAL.match(cleaned))


def normalize_phone(phone: str) -> str:
    """
    Return the number without separators.

    Raises:
        InvalidPhoneError: If the number matches none of the formats
    """
    cleaned = strip_separators(phone)
    if not (_NATIONAL.match(cleaned) or _INTERNATIONAL.match(cleaned)):
        raise InvalidPhoneError()
    return cleaned


def to_e164(phone: str) -> str:
    """+33XXXXXXXXX form required by SMS gateways."""
    cleaned = normalize_phone(phone)
    if cleaned.startswith("+33"):
        return cleaned
    if cleaned.startswith("0033"):
        return "+33" + cleaned[4:]
    return "+33" + cleaned[1:]
