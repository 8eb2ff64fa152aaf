"""Phone number normalization for the WhatsApp Cloud API.

The provider wants digits only, country code first, no ``+``.
"""

import re

from ordernotify.config import DEFAULT_COUNTRY_CODE, DEFAULT_LOCAL_NUMBER_LENGTH

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(
    raw: str | None,
    country_code: str = DEFAULT_COUNTRY_CODE,
    local_length: int = DEFAULT_LOCAL_NUMBER_LENGTH,
) -> str:
    """Canonicalize a customer-supplied phone number.

    Strips every non-digit. Digits that already start with ``country_code``
    are returned as-is; otherwise a bare local number (exactly
    ``local_length`` digits) gets ``country_code`` prepended. Anything else is
    returned cleaned, so malformed input passes through and fails at the
    provider. Never raises.

    Examples:
        >>> normalize_phone("(55) 1234-5678")
        '525512345678'
        >>> normalize_phone("+52 55 1234 5678")
        '525512345678'
    """
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", str(raw))
    if digits.startswith(country_code):
        return digits
    if len(digits) == local_length:
        return f"{country_code}{digits}"
    return digits
