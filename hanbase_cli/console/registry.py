"""Schema registry: table listings and column metadata per project."""

from __future__ import annotations

from hanbase_cli.shared.exceptions import ExecutionError, TransportError, ValidationError
from hanbase_cli.shared.logging import Logger
from hanbase_cli.shared.session import Session, extract_error

from .types import Column


class SchemaRegistry:
    """Fetches and caches remote schema metadata.

    Listing is best-effort: a failed table listing yields an empty list and an
    entry in ``errors`` instead of an exception. Column metadata is only served
    for tables that appeared in the project's last successful listing.
    """

    def __init__(self, session: Session, *, logger: Logger | None = None) -> None:
        self.session = session
        self.logger = logger or session.logger
        self.errors: dict[str, str] = {}
        self._tables: dict[str, tuple[str, ...]] = {}
        self._columns: dict[tuple[str, str], tuple[Column, ...]] = {}

    def known_tables(self, project: str) -> tuple[str, ...]:
        """Tables from the last successful listing (empty if never listed)."""
        return self._tables.get(project, ())

    async def list_tables(self, project: str) -> list[str]:
        path = f"/meta/{project}/tables"
        try:
            response = await self.session.request("GET", path)
        except TransportError as exc:
            return self._listing_failed(project, str(exc))

        if not response.is_success:
            return self._listing_failed(project, extract_error(response, f"HTTP {response.status_code}"))

        try:
            payload = response.json()
        except ValueError:
            return self._listing_failed(project, "response is not JSON")

        tables = tuple(str(name) for name in payload) if isinstance(payload, list) else ()
        self._tables[project] = tables
        self.errors.pop(project, None)
        for key in [key for key in self._columns if key[0] == project and key[1] not in tables]:
            del self._columns[key]
        return list(tables)

    async def get_columns(self, project: str, table: str) -> list[Column]:
        if table not in self.known_tables(project):
            raise ValidationError(f"Table '{table}' is not part of project '{project}'.")

        cached = self._columns.get((project, table))
        if cached is not None:
            return list(cached)

        response = await self.session.request("GET", f"/meta/{project}/tables/{table}")
        if not response.is_success:
            raise ExecutionError(extract_error(response, f"Could not load columns for '{table}'."))
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExecutionError(f"Column metadata for '{table}' is not JSON.") from exc

        columns = tuple(Column.from_catalog(item) for item in payload or () if isinstance(item, dict))
        # The listing may have been refreshed while this request was in flight.
        if table in self.known_tables(project):
            self._columns[(project, table)] = columns
        return list(columns)

    async def refresh_after_create(self, project: str, new_table: str) -> tuple[list[str], str | None]:
        """Re-list tables after a create; return the listing and the table to select.

        The new table wins when the service lists it; otherwise the first listed
        table, or None when the project has no tables (or the listing failed).
        """
        tables = await self.list_tables(project)
        if new_table in tables:
            return tables, new_table
        if new_table:
            self.logger.warning(f"Table '{new_table}' was not listed after creation; selecting the first table.")
        return tables, (tables[0] if tables else None)

    def invalidate(self, project: str | None = None) -> None:
        if project is None:
            self._tables.clear()
            self._columns.clear()
            self.errors.clear()
            return
        self._tables.pop(project, None)
        self.errors.pop(project, None)
        for key in [key for key in self._columns if key[0] == project]:
            del self._columns[key]

    def _listing_failed(self, project: str, reason: str) -> list[str]:
        self.errors[project] = reason
        self.logger.warning(f"Failed to fetch tables for '{project}': {reason}")
        return []
