"""
Validation and sanitization utilities.

This module contains the checks applied to memory submissions before anything
is sent to the backend, and the redirect-path guard used by the auth callback.
"""

from typing import Any, Optional


class ValidationError(ValueError):
    """Raised when user input cannot be accepted."""


def sanitise_content(value: Any) -> str:
    """Sanitize and validate memory text.

    Args:
        value: Raw memory content.

    Returns:
        Stripped content.

    Raises:
        ValidationError: If content is missing or blank.
    """
    if not isinstance(value, str):
        raise ValidationError("Memory content must be text")
    value = value.strip()
    if not value:
        raise ValidationError("Memory content is required")
    return value


def sanitise_coordinate(value: Any, *, limit: float, name: str) -> float:
    """Sanitize a latitude or longitude value.

    Args:
        value: Value to convert to float.
        limit: Absolute bound (90 for latitude, 180 for longitude).
        name: Field name used in error messages.

    Returns:
        Coordinate as float.

    Raises:
        ValidationError: If value is not numeric or out of range.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}")
    if number != number or not -limit <= number <= limit:
        raise ValidationError(f"{name.capitalize()} out of range")
    return number


def sanitise_latitude(value: Any) -> float:
    return sanitise_coordinate(value, limit=90.0, name="latitude")


def sanitise_longitude(value: Any) -> float:
    return sanitise_coordinate(value, limit=180.0, name="longitude")


def file_extension(filename: str) -> str:
    """Return the text after the last dot of a filename.

    A name without a dot is returned unchanged.
    """
    return filename.rsplit(".", 1)[-1]


def safe_redirect_path(next_path: Optional[str], default: str = "/") -> str:
    """Only allow same-origin relative paths as redirect targets."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return default
    if "\\" in next_path:
        return default
    return next_path
