"""Boundary parsing for closed enumerations and required text."""

import enum
from typing import Optional, Type, TypeVar

from knowledge_base.core.exceptions import KnowledgeBaseError, ValidationError

E = TypeVar("E", bound=enum.Enum)


def parse_choice(
    enum_cls: Type[E],
    value,
    label: str,
    error_cls: Type[KnowledgeBaseError] = ValidationError,
) -> E:
    """Convert ``value`` to a member of ``enum_cls`` or raise ``error_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise error_cls(f"Invalid {label} '{value}'. Expected one of: {allowed}")


def _check_length(value: str, label: str, max_length: Optional[int]) -> str:
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters")
    return value


def require_text(value: Optional[str], label: str, max_length: Optional[int] = None) -> str:
    """Strip ``value`` and reject it when empty or longer than ``max_length``."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return _check_length(value.strip(), label, max_length)


def optional_text(
    value: Optional[str], label: str = "Value", max_length: Optional[int] = None,
) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    return _check_length(value, label, max_length)
