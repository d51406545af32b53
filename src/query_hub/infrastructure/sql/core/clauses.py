"""
Clause data preparation.

One normalization pass backs three SQL shapes: WHERE conditions (fragments
joined with AND), UPDATE SET lists (fragments joined with commas) and INSERT
column/value lists (fields and values joined with commas).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

from ..exceptions import ConditionFormatError, PlaceholderCollisionError
from .parameters import build_placeholder
from .values import RawValue, classify_value

ClauseKey = Union[str, int]


@dataclass(frozen=True)
class PreparedClauseData:
    """
    Normalized clause payload.

    Attributes:
        fields: Column keys, in input order
        values: Placeholder tokens, or inlined SQL for raw values.
            ``fields`` and ``values`` count every string-keyed entry, keyed
            raw ones included; only ``bindings`` excludes raw entries.
        fragments: ``"<column> <operator> <placeholder-or-sql>"`` entries,
            plus bare raw conditions
        bindings: Placeholder to value map for every bound entry
    """

    fields: List[str] = field(default_factory=list)
    values: List[str] = field(default_factory=list)
    fragments: List[str] = field(default_factory=list)
    bindings: Dict[str, Any] = field(default_factory=dict)

    def joined_fragments(self, separator: str) -> str:
        return separator.join(self.fragments)


def prepare_clause_data(data: Mapping[ClauseKey, Any]) -> PreparedClauseData:
    """
    Normalize a column-to-value mapping into fields, values, fragments and bindings.

    Integer keys mark bare raw conditions (``{0: raw("deleted_at IS NULL")}``);
    they contribute a fragment only. String keys contribute to every list;
    raw values are inlined and never bound.

    Args:
        data: Ordered mapping of column key to value. Iteration order
            determines fragment order.

    Returns:
        PreparedClauseData

    Raises:
        ConditionFormatError: For a malformed comparison, or an integer key
            whose value is not raw
        RawFragmentError: For a malformed raw marker
        PlaceholderCollisionError: When two keys normalize to one placeholder

    Examples:
        >>> prepared = prepare_clause_data({"id": 110, "age": [">", 18]})
        >>> prepared.fragments
        ['id = :id', 'age > :age']
        >>> prepared.bindings
        {':id': 110, ':age': 18}
    """
    fields: List[str] = []
    values: List[str] = []
    fragments: List[str] = []
    bindings: Dict[str, Any] = {}
    sources: Dict[str, str] = {}

    for key, value in data.items():
        classified = classify_value(value)

        if isinstance(key, int) and not isinstance(key, bool):
            if not isinstance(classified, RawValue) or classified.operator != "=":
                raise ConditionFormatError(
                    "Positional condition must be a bare raw() fragment", key=key
                )
            fragments.append(classified.sql)
            continue

        if not isinstance(key, str) or not key.strip():
            raise ConditionFormatError("Column key must be a non-empty string", key=key)

        if isinstance(classified, RawValue):
            fields.append(key)
            values.append(classified.sql)
            fragments.append(f"{key} {classified.operator} {classified.sql}")
            continue

        placeholder = build_placeholder(key)
        if placeholder in sources:
            raise PlaceholderCollisionError(
                f"Columns {sources[placeholder]!r} and {key!r} share placeholder {placeholder}",
                placeholder=placeholder,
                existing=sources[placeholder],
                incoming=key,
            )
        sources[placeholder] = key

        fields.append(key)
        values.append(placeholder)
        fragments.append(f"{key} {classified.operator} {placeholder}")
        bindings[placeholder] = classified.value

    return PreparedClauseData(
        fields=fields, values=values, fragments=fragments, bindings=bindings
    )
