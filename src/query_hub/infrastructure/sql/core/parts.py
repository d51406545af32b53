"""
Clause slot model and statement rendering.

A statement is a fixed, ordered set of clause slots. Builders fill slots in
any order; rendering always emits them in declaration order and skips the
empty ones.
"""

import re
from enum import Enum
from typing import Dict, Optional, Union

from ..exceptions import MissingFromError, UnknownClauseError


class ClausePart(str, Enum):
    """Clause slots, in rendering order."""

    SELECT = "SELECT"
    FROM = "FROM"
    WHERE = "WHERE"
    GROUP = "GROUP"
    HAVING = "HAVING"
    ORDER = "ORDER"
    LIMIT = "LIMIT"
    OFFSET = "OFFSET"


# Slots dropped from a count query
COUNT_SUPPRESSED_PARTS = frozenset(
    {ClausePart.ORDER, ClausePart.LIMIT, ClausePart.OFFSET}
)


def replace_prefix(prefix: str, text: str, set_if_not_exists: bool = True) -> str:
    """
    Normalize the leading keyword of a clause.

    A leading ``prefix`` is matched case-insensitively as whole words and
    removed; with ``set_if_not_exists`` the upper-case keyword is then
    prepended.

    Examples:
        >>> replace_prefix("SELECT", "seLect * FROM users")
        'SELECT * FROM users'
        >>> replace_prefix("FROM", "users")
        'FROM users'
        >>> replace_prefix("FROM", "fromage")
        'FROM fromage'
        >>> replace_prefix("GROUP BY", "group   by id", set_if_not_exists=False)
        'id'
    """
    text = text.strip()
    words = [re.escape(word) for word in prefix.split()]
    pattern = re.compile(r"\s+".join(words) + r"(?:\s+|$)", re.IGNORECASE)
    match = pattern.match(text)
    if match:
        text = text[match.end() :].lstrip()

    if set_if_not_exists:
        keyword = " ".join(prefix.split()).upper()
        text = f"{keyword} {text}" if text else keyword

    return text


class StatementParts:
    """
    Ordered clause slots plus the count-mode flag.

    Example:
        >>> parts = StatementParts()
        >>> _ = parts.set_part("FROM", "FROM users").set_part("SELECT", "SELECT *")
        >>> parts.render()
        'SELECT * FROM users'
    """

    def __init__(self) -> None:
        self._parts: Dict[ClausePart, Optional[str]] = {part: None for part in ClausePart}
        self._count_column: Optional[str] = None

    @staticmethod
    def _resolve(name: Union[ClausePart, str]) -> ClausePart:
        try:
            return ClausePart(name)
        except ValueError:
            raise UnknownClauseError(f"Part: {name} not exists", clause=str(name)) from None

    def set_part(self, name: Union[ClausePart, str], value: Optional[str]) -> "StatementParts":
        """
        Set (or clear, with ``None``) one clause slot.

        Raises:
            UnknownClauseError: If ``name`` is not a ClausePart
        """
        self._parts[self._resolve(name)] = value
        return self

    def get_part(self, name: Union[ClausePart, str]) -> Optional[str]:
        return self._parts[self._resolve(name)]

    @property
    def parts(self) -> Dict[str, Optional[str]]:
        """Snapshot of the slots keyed by slot name."""
        return {part.value: value for part, value in self._parts.items()}

    @property
    def count_column(self) -> Optional[str]:
        return self._count_column

    @property
    def is_count(self) -> bool:
        return self._count_column is not None

    def to_count(self, column: str = "*") -> "StatementParts":
        """
        Switch rendering to a ``SELECT COUNT(<column>)`` query.

        The slots themselves are untouched; the rewrite happens in render().

        Raises:
            MissingFromError: If the FROM slot is not set
        """
        if not self._parts[ClausePart.FROM]:
            raise MissingFromError("FROM not found", clause=ClausePart.FROM.value)
        self._count_column = column
        return self

    def render(self) -> str:
        """Join the non-empty slots in declaration order with single spaces."""
        rendered = []
        for part, value in self._parts.items():
            if self._count_column is not None:
                if part is ClausePart.SELECT:
                    value = f"SELECT COUNT({self._count_column})"
                elif part in COUNT_SUPPRESSED_PARTS:
                    value = None

            if value:
                rendered.append(value)

        return " ".join(rendered)

    def copy(self) -> "StatementParts":
        clone = StatementParts()
        clone._parts = dict(self._parts)
        clone._count_column = self._count_column
        return clone
