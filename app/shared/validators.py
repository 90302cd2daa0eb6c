"""Shared validation utilities"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


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

    email = email.strip().lower()

    if len(email) > 254:
        raise ValueError("Email address is too long")

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Please provide a valid email address")

    return email


def validate_name(name: str) -> str:
    """Trim a display name and enforce 2..50 characters"""
    name = (name or "").strip()
    if not 2 <= len(name) <= 50:
        raise ValueError("Name must be between 2 and 50 characters")
    return name


def validate_title(title: str) -> str:
    """Trim an event title and enforce 1..100 characters"""
    title = (title or "").strip()
    if not 1 <= len(title) <= 100:
        raise ValueError("Title must be between 1 and 100 characters")
    return title


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted to UTC first; naive values are taken as UTC.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach the UTC zone to a stored naive timestamp for output"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
