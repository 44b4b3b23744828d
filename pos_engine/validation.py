"""Validation helpers for precondition checks.

Each helper raises the given ValidationError instance (or a plain
ValidationError built from a message) when its condition fails.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any, Union

from .errors import ValidationError

Failure = Union[str, ValidationError]


def _fail(failure: Failure) -> None:
    if isinstance(failure, ValidationError):
        raise failure
    raise ValidationError(failure)


def require_not_blank(value: str | None, failure: Failure) -> None:
    """Require that a text value has something besides whitespace."""
    if value is None or not str(value).strip():
        _fail(failure)


def is_whole_number(value: Any) -> bool:
    """True for ints; bools and floats are not whole numbers here."""
    return isinstance(value, int) and not isinstance(value, bool)


def require_whole_number(value: Any, minimum: int, failure: Failure) -> None:
    """Require an int (not a bool) of at least ``minimum``."""
    if not is_whole_number(value) or value < minimum:
        _fail(failure)


def require_non_negative(value: Decimal | int, failure: Failure) -> None:
    """Require that a value is zero or greater."""
    if value < 0:
        _fail(failure)


def require_not_empty(items: Sequence[Any], failure: Failure) -> None:
    """Require that a sequence has at least one element."""
    if not items:
        _fail(failure)


def require_in_range(value: int, low: int, high: int, failure: Failure) -> None:
    """Require ``low <= value <= high``."""
    if value < low or value > high:
        _fail(failure)
