"""Core SQL assembly: value classification, clause preparation, slot rendering."""

from .clauses import PreparedClauseData, prepare_clause_data
from .parameters import build_placeholder, merge_bindings, normalize_params
from .parts import ClausePart, StatementParts, replace_prefix
from .values import (
    ComparisonValue,
    LiteralValue,
    RawValue,
    classify_value,
    decode_raw,
    is_raw,
    raw,
)

__all__ = [
    "ClausePart",
    "StatementParts",
    "replace_prefix",
    "PreparedClauseData",
    "prepare_clause_data",
    "build_placeholder",
    "merge_bindings",
    "normalize_params",
    "LiteralValue",
    "ComparisonValue",
    "RawValue",
    "classify_value",
    "decode_raw",
    "is_raw",
    "raw",
]
