"""
jsontools/operations/query_engine.py

JMESPath evaluation over a Tree.

match_count rule:
- list result      -> len(result)
- null result      -> 0
- anything else    -> 1
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jmespath
from jmespath.exceptions import JMESPathError

from jsontools.operations.errors import QueryError


@dataclass
class QueryResult:
    result: Any
    query: str
    match_count: int


def match_count(result: Any) -> int:
    if isinstance(result, list):
        return len(result)
    return 0 if result is None else 1


def execute_query(data: Any, expression: str) -> QueryResult:
    try:
        result = jmespath.search(expression, data)
    except JMESPathError as exc:
        raise QueryError(f"Invalid JMESPath query: {exc}") from exc

    return QueryResult(result=result, query=expression, match_count=match_count(result))
