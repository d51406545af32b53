"""
Exception hierarchy for the SQL builder.

Every error here signals a mistake in how the builder was called. They are
raised at the offending call (or at render time) so malformed input never
reaches an executor, and they are never retried.
"""

from typing import Any, Dict, Optional


class QueryBuilderError(Exception):
    """
    Base exception for all builder usage errors.

    Args:
        message: Error description
        clause: Clause or operation the error relates to (optional)
        key: Input key that triggered the error (optional)
    """

    def __init__(
        self,
        message: str,
        clause: Optional[str] = None,
        key: Optional[Any] = None,
    ):
        self.clause = clause
        self.key = key

        context_parts = []
        if clause:
            context_parts.append(f"clause='{clause}'")
        if key is not None:
            context_parts.append(f"key={key!r}")

        if context_parts:
            full_message = f"{message} ({', '.join(context_parts)})"
        else:
            full_message = message

        super().__init__(full_message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to structured dict for logging."""
        return {
            "error_type": type(self).__name__,
            "clause": self.clause,
            "key": self.key,
            "message": str(self),
        }


class UnknownClauseError(QueryBuilderError):
    """Raised when a clause slot name is not one of the fixed slots."""

    pass


class MissingFromError(QueryBuilderError):
    """Raised when count mode is requested before a FROM clause is set."""

    pass


class ConditionFormatError(QueryBuilderError):
    """Raised for a comparison that is not an ``[operator, value]`` pair."""

    pass


class RawFragmentError(QueryBuilderError):
    """Raised when a raw SQL marker is malformed."""

    pass


class InvalidLimitError(QueryBuilderError):
    """Raised when LIMIT or OFFSET receives a non-numeric or negative value."""

    pass


class PlaceholderCollisionError(QueryBuilderError):
    """
    Raised when one placeholder would be bound to two different values.

    Qualified columns are normalized by replacing ``.`` with ``_``, so
    ``a.b_c`` and ``a_b.c`` both map to ``:a_b_c``.

    Args:
        message: Error description
        placeholder: The colliding placeholder token
        existing: Value (or source key) already bound to the placeholder
        incoming: Value (or source key) that tried to overwrite it
    """

    def __init__(
        self,
        message: str,
        placeholder: str,
        existing: Any = None,
        incoming: Any = None,
        clause: Optional[str] = None,
    ):
        self.placeholder = placeholder
        self.existing = existing
        self.incoming = incoming
        super().__init__(message, clause=clause, key=placeholder)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            placeholder=self.placeholder,
            existing=repr(self.existing),
            incoming=repr(self.incoming),
        )
        return data


class BatchShapeError(QueryBuilderError):
    """
    Raised when a multi-row insert batch is malformed.

    Args:
        message: Error description
        row_index: Index of the offending row (optional)
    """

    def __init__(self, message: str, row_index: Optional[int] = None):
        self.row_index = row_index
        if row_index is not None:
            message = f"{message} (row_index={row_index})"
        super().__init__(message, clause="insert_multi")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["row_index"] = self.row_index
        return data
