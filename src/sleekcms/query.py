"""JMESPath evaluation shared by local and server-side queries.

The content API accepts the same expression language as a ``search`` query
parameter, so an expression evaluated here over a cached document must give
the same answer as the server would. Nothing in this module holds state other
than the compiled-expression memo.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Optional

import jmespath
from jmespath.exceptions import JMESPathError
from jmespath.parser import ParsedResult

from .errors import QueryError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@lru_cache(maxsize=256)
def compile_query(expression: str) -> ParsedResult:
    """Compile an expression, raising :class:`QueryError` when it is malformed."""
    try:
        return jmespath.compile(expression)
    except JMESPathError as exc:
        raise QueryError(expression, str(exc)) from exc


def evaluate(value: Any, expression: Optional[str] = None) -> Any:
    """Apply ``expression`` to ``value``.

    Args:
        value: Decoded JSON tree.
        expression: JMESPath expression; ``None`` or ``""`` returns ``value``.
    Returns:
        The projected value, which may have a different shape than the input.
    Raises:
        QueryError: If the expression does not parse or fails at evaluation
            time (e.g. a function applied to the wrong type).
    """
    if not expression:
        return value
    compiled = compile_query(expression)
    try:
        return compiled.search(value)
    except JMESPathError as exc:
        raise QueryError(expression, str(exc)) from exc


def quote_key(key: str) -> str:
    """Quote ``key`` as a JMESPath identifier when it is not a bare one."""
    if _IDENTIFIER.match(key):
        return key
    escaped = key.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def facet_selector(facet: str, key: Optional[str] = None) -> str:
    """Build a field selector such as ``pages`` or ``entries.team``."""
    if key is None:
        return facet
    return f"{facet}.{quote_key(key)}"
