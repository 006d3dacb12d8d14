"""Shared validation utilities"""

import re
from typing import Optional

from ..utils.timezone import parse_time_to_minutes


def validate_br_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a Brazilian phone number.

    Args:
        phone: Phone number string in various formats, e.g. "(11) 98765-4321"

    Returns:
        Digits only, with area code (10 digits landline, 11 digits mobile)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    # Drop +55 country code
    if digits.startswith("55") and len(digits) in (12, 13):
        digits = digits[2:]

    if len(digits) not in (10, 11):
        raise ValueError("Telefone deve ter 10 ou 11 dígitos")

    return digits


def validate_time_string(value: Optional[str]) -> Optional[str]:
    """
    Validate an "HH:MM" or "HH:MM:SS" wall-clock time.

    Raises:
        ValueError: If the time is malformed
    """
    if value is None:
        return value
    if parse_time_to_minutes(value) is None:
        raise ValueError("Horário inválido, use HH:MM")
    return value
