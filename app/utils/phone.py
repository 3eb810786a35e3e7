"""
Phone number helpers, tuned for Brazilian numbers.

Normalization never raises: malformed input degrades to "+<digits>" so a
webhook is never rejected because of an odd phone format.
"""

from __future__ import annotations

import re
from typing import Optional

DEFAULT_COUNTRY_CODE = "55"
LOCAL_LENGTHS = (10, 11)  # DDD + 8/9 digit subscriber number
INTERNATIONAL_LENGTHS = (12, 13)  # country code + local

_NON_DIGITS = re.compile(r"\D")
_JID_PHONE = re.compile(r"^(\d+)@")


def digits_only(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


def normalize_phone(
    raw: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE
) -> str:
    """
    Canonical display form: "+" followed by the international number.

    Returns "" when the input has no digits at all.
    """
    digits = digits_only(raw)
    if not digits:
        return ""
    full_lengths = tuple(len(country_code) + n for n in LOCAL_LENGTHS)
    if digits.startswith(country_code) and len(digits) in full_lengths:
        return f"+{digits}"
    if len(digits) in LOCAL_LENGTHS:
        return f"+{country_code}{digits}"
    return f"+{digits}"


def phone_dedup_key(
    raw: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE
) -> str:
    """Digits-only form of the normalized phone, used as contacts.phone_normalized."""
    return digits_only(normalize_phone(raw, country_code))


def extract_phone_from_jid(jid: Optional[str]) -> Optional[str]:
    """5511999999999@s.whatsapp.net -> 5511999999999."""
    if not jid:
        return None
    match = _JID_PHONE.match(jid)
    return match.group(1) if match else None


def format_phone(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """+5511999999999 -> (11) 99999-9999. Unknown shapes are returned unchanged."""
    digits = digits_only(phone)
    local = digits[len(country_code):] if digits.startswith(country_code) else digits
    if len(local) == 11:
        return f"({local[:2]}) {local[2:7]}-{local[7:]}"
    if len(local) == 10:
        return f"({local[:2]}) {local[2:6]}-{local[6:]}"
    return phone


def is_valid_brazilian_phone(phone: str) -> bool:
    digits = digits_only(phone)
    if len(digits) < 10 or len(digits) > 13:
        return False
    if len(digits) >= 12 and not digits.startswith(DEFAULT_COUNTRY_CODE):
        return False
    return True


def extract_ddd(phone: str) -> Optional[str]:
    """Area code (DDD) of a Brazilian number, or None."""
    digits = digits_only(phone)
    local = digits[2:] if digits.startswith(DEFAULT_COUNTRY_CODE) else digits
    if len(local) >= 10:
        return local[:2]
    return None
