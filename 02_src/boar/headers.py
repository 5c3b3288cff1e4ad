"""Header and query-parameter rules applied when a Record is finalized."""

import re
from typing import Mapping, Sequence, Union

# Case-sensitive: "x-trace" is kept, "X-Trace" is dropped.
EXCLUDED_HEADERS = re.compile(r"^(X-|Cookie|Authorization|If-)")

MultiValue = Union[str, Sequence[str]]


def _first(value: MultiValue) -> str | None:
    if isinstance(value, str):
        return value
    return value[0] if value else None


def filter_headers(headers: Mapping[str, MultiValue] | None) -> dict[str, str]:
    """Drop excluded headers, keeping the first value of the rest."""
    filtered: dict[str, str] = {}
    if not headers:
        return filtered

    for name, value in headers.items():
        if EXCLUDED_HEADERS.match(name):
            continue
        first = _first(value)
        if first is not None:
            filtered[name] = first
    return filtered


def first_values(params: Mapping[str, MultiValue] | None) -> dict[str, str]:
    """Collapse multi-valued query parameters to their first value."""
    collapsed: dict[str, str] = {}
    if not params:
        return collapsed

    for key, value in params.items():
        first = _first(value)
        if first is not None:
            collapsed[key] = first
    return collapsed


def canonical_header_key(name: str) -> str:
    """Return the canonical form of a header name: content-type -> Content-Type."""
    return "-".join(part.capitalize() for part in name.split("-"))
