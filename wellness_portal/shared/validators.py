"""Shared validation utilities"""

import re
from typing import Optional


def normalize_email(email: Optional[str]) -> str:
    """Lower-case and trim an email for exact-match lookups"""
    return (email or "").strip().lower()


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = normalize_email(email)

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a phone number and strip formatting characters.

    Accepts local (0821234567) and international (+27821234567) forms.

    Raises:
        ValueError: If the number has too few or too many digits
    """
    if not phone:
        return phone

    cleaned = re.sub(r"[\s\-\(\)\.]+", "", phone.strip())

    if not re.match(r"^\+?\d{9,15}$", cleaned):
        raise ValueError("Phone number must contain 9 to 15 digits")

    return cleaned
