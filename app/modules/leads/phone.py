"""
Brazilian mobile number normalization used to match leads across channels.
"""

import re
from typing import Optional

ORIGIN_MARKER = "_origin"


def _is_preserved(phone: str) -> bool:
    # Origin-suffixed numbers and WhatsApp JIDs are stored verbatim
    return ORIGIN_MARKER in phone or "@" in phone


def only_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def format_phone_number(phone: str) -> str:
    """Digits only; a 10-digit number gets the mobile 9 after the area code."""
    if _is_preserved(phone):
        return phone
    digits = only_digits(phone)
    if len(digits) == 10 and digits[2] != "9":
        digits = f"{digits[:2]}9{digits[2:]}"
    return digits


def alternative_phone_number(phone: str) -> Optional[str]:
    """The same number with the mobile 9 toggled, or None when not applicable."""
    if _is_preserved(phone):
        return None
    digits = only_digits(phone)
    if len(digits) == 11 and digits[2] == "9":
        return f"{digits[:2]}{digits[3:]}"
    if len(digits) == 10:
        return f"{digits[:2]}9{digits[2:]}"
    return None


def origin_phone(phone: str, origin_id: str) -> str:
    return f"{phone}{ORIGIN_MARKER}{origin_id}"


def add_country_mobile_nine(phone: str) -> str:
    """55 + area code + 8 digits gets the mobile 9: 551187654321 -> 5511987654321."""
    digits = only_digits(phone)
    if digits.startswith("55") and len(digits) == 12:
        return f"{digits[:4]}9{digits[4:]}"
    return digits
