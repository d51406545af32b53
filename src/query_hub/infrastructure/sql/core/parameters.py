"""
SQL parameter binding utilities.

Named placeholders use the ``:name`` form. Qualified column names are
normalized by replacing ``.`` with ``_`` so they form valid bind names.
"""

from typing import Any, Dict, Mapping, Optional

from ..exceptions import PlaceholderCollisionError

PLACEHOLDER_PREFIX = ":"


def build_placeholder(key: str) -> str:
    """
    Build the named placeholder for a column key.

    Args:
        key: Column name, optionally table-qualified

    Returns:
        Placeholder token

    Examples:
        >>> build_placeholder("username")
        ':username'
        >>> build_placeholder("t.name")
        ':t_name'
    """
    return PLACEHOLDER_PREFIX + key.replace(".", "_")


def normalize_param_key(key: str) -> str:
    """
    Ensure a caller-supplied parameter key has the ``:`` prefix.

    Examples:
        >>> normalize_param_key("id")
        ':id'
        >>> normalize_param_key(":id")
        ':id'
    """
    key = str(key)
    if key.startswith(PLACEHOLDER_PREFIX):
        return key
    return PLACEHOLDER_PREFIX + key


def strip_placeholder(key: str) -> str:
    """
    Remove the ``:`` prefix, giving the name drivers expect in a params dict.

    Examples:
        >>> strip_placeholder(":t_name")
        't_name'
    """
    return key[len(PLACEHOLDER_PREFIX) :] if key.startswith(PLACEHOLDER_PREFIX) else key


def normalize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Normalize every key of a caller-supplied parameter mapping.

    Raises:
        PlaceholderCollisionError: If ``id`` and ``:id`` are both supplied
            with different values
    """
    normalized: Dict[str, Any] = {}
    if not params:
        return normalized
    for key, value in params.items():
        merge_bindings(normalized, {normalize_param_key(key): value}, clause="params")
    return normalized


def merge_bindings(
    target: Dict[str, Any],
    source: Mapping[str, Any],
    clause: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Merge ``source`` bindings into ``target`` in place.

    Re-binding a placeholder to an equal value is accepted; binding it to a
    different value raises instead of silently overwriting.

    Args:
        target: Bind map being assembled
        source: Bind map fragment to merge
        clause: Clause name used in the error context

    Returns:
        ``target``, for chaining

    Raises:
        PlaceholderCollisionError: If a placeholder is bound to two different
            values
    """
    for key, value in source.items():
        if key in target and target[key] != value:
            raise PlaceholderCollisionError(
                f"Placeholder {key} is already bound to a different value",
                placeholder=key,
                existing=target[key],
                incoming=value,
                clause=clause,
            )
        target[key] = value
    return target
