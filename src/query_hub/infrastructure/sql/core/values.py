"""
Value classification for clause payloads.

A value supplied for a column is one of:
- a literal to bind (implicit ``=`` operator)
- an ``[operator, value]`` comparison pair
- a raw SQL fragment, produced by ``raw()`` and inlined verbatim
"""

from dataclasses import dataclass
from typing import Any, Union

from ..exceptions import ConditionFormatError, RawFragmentError

RAW_PREFIX = "{RAW}"
RAW_SUFFIX = "{/RAW}"

DEFAULT_OPERATOR = "="


def raw(sql: str) -> str:
    """
    Mark SQL text to be inlined verbatim instead of bound.

    Args:
        sql: SQL fragment, e.g. ``NOW()`` or ``deleted_at IS NULL``

    Returns:
        The fragment wrapped in raw markers

    Examples:
        >>> raw("NOW()")
        '{RAW}NOW(){/RAW}'
    """
    if not isinstance(sql, str) or not sql.strip():
        raise RawFragmentError("Raw SQL fragment must be a non-empty string")
    if RAW_PREFIX in sql or RAW_SUFFIX in sql:
        raise RawFragmentError("Raw SQL fragment must not contain raw markers")
    return f"{RAW_PREFIX}{sql}{RAW_SUFFIX}"


def is_raw(value: Any) -> bool:
    """Return True if ``value`` carries the raw marker prefix."""
    return isinstance(value, str) and value.startswith(RAW_PREFIX)


def decode_raw(value: str) -> str:
    """
    Unwrap a raw-marked value.

    Raises:
        RawFragmentError: If the opening or closing marker is missing, or the
            wrapped fragment is empty

    Examples:
        >>> decode_raw(raw("NOW()"))
        'NOW()'
    """
    if not is_raw(value) or not value.endswith(RAW_SUFFIX):
        raise RawFragmentError(f"Malformed raw SQL marker: {value!r}")
    sql = value[len(RAW_PREFIX) : -len(RAW_SUFFIX)]
    if not sql.strip():
        raise RawFragmentError("Raw SQL marker wraps an empty fragment")
    return sql


@dataclass(frozen=True)
class LiteralValue:
    """A value bound through a placeholder with the ``=`` operator."""

    value: Any
    operator: str = DEFAULT_OPERATOR


@dataclass(frozen=True)
class ComparisonValue:
    """A value bound through a placeholder with an explicit operator."""

    operator: str
    value: Any


@dataclass(frozen=True)
class RawValue:
    """SQL text inlined verbatim; never bound."""

    sql: str
    operator: str = DEFAULT_OPERATOR


ClassifiedValue = Union[LiteralValue, ComparisonValue, RawValue]


def classify_value(value: Any) -> ClassifiedValue:
    """
    Classify a clause value.

    Args:
        value: Scalar, ``[operator, value]`` pair, or ``raw()`` output

    Returns:
        LiteralValue, ComparisonValue or RawValue

    Raises:
        ConditionFormatError: For a list/tuple whose length is not 2, or
            whose operator is not a non-empty string
        RawFragmentError: For a malformed raw marker

    Examples:
        >>> classify_value(5)
        LiteralValue(value=5, operator='=')
        >>> classify_value([">", 3])
        ComparisonValue(operator='>', value=3)
        >>> classify_value(["<", raw("NOW()")])
        RawValue(sql='NOW()', operator='<')
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ConditionFormatError(
                f"Invalid condition format: expected [operator, value], "
                f"got {len(value)} elements"
            )
        operator, operand = value
        if not isinstance(operator, str) or not operator.strip():
            raise ConditionFormatError(
                f"Invalid condition format: operator must be a non-empty "
                f"string, got {operator!r}"
            )
        operator = operator.strip()
        if is_raw(operand):
            return RawValue(decode_raw(operand), operator)
        return ComparisonValue(operator, operand)

    if is_raw(value):
        return RawValue(decode_raw(value))

    return LiteralValue(value)
