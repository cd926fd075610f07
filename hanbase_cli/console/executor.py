"""Query execution against the service's single ``/query`` endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from hanbase_cli.shared.exceptions import ExecutionError, ValidationError
from hanbase_cli.shared.logging import Logger
from hanbase_cli.shared.session import Session, extract_error

from .builder import DEFAULT_SELECT_LIMIT, build_select_all
from .types import QueryResult, Statement

QUERY_PATH = "/query"
GENERIC_FAILURE = "Query failed"


class QueryExecutor:
    """Sends statement text to the service and normalizes what comes back.

    The executor has no notion of statement kind: builder output and
    free-form console input take the same path, and syntax errors are whatever
    the service says they are.
    """

    def __init__(self, session: Session, *, logger: Logger | None = None) -> None:
        self.session = session
        self.logger = logger or session.logger

    async def execute(self, statement: str | Statement) -> QueryResult:
        if isinstance(statement, Statement):
            text, params = statement.text, statement.params
        else:
            text, params = statement, ()
        if not text or not text.strip():
            raise ValidationError("Query text must not be empty.")

        body: dict[str, Any] = {"query": text}
        if params:
            body["params"] = list(params)

        self.logger.debug(f"Executing SQL: {text}")
        response = await self.session.request("POST", QUERY_PATH, json=body)
        if not response.is_success:
            raise ExecutionError(extract_error(response, GENERIC_FAILURE))

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExecutionError("Service returned a response that is not JSON.") from exc
        return QueryResult(rows=normalise_rows(payload))

    async def fetch_rows(
        self,
        project: str,
        table: str,
        *,
        limit: int = DEFAULT_SELECT_LIMIT,
    ) -> QueryResult:
        """Data-grid query for one table, flagged as truncated when the limit was hit."""
        result = await self.execute(build_select_all(project, table, limit))
        return replace(
            result,
            limit_value=limit,
            truncated=len(result.rows) >= limit,
        )


def normalise_rows(payload: Any) -> tuple[Mapping[str, Any], ...]:
    """Collapse the endpoint's response shapes into a sequence of rows.

    A JSON array is already a row sequence; a single object (the acknowledgment
    returned for statements that produce no rows) becomes a one-row result.
    """
    if payload is None:
        return ()
    if isinstance(payload, list):
        return tuple(_as_row(item) for item in payload)
    return (_as_row(payload),)


def _as_row(item: Any) -> Mapping[str, Any]:
    if isinstance(item, Mapping):
        return dict(item)
    return {"value": item}
