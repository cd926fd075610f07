"""Navigation state: which project and table the console is looking at.

The navigator is the only writer of the selection. Every change of selection
starts a fetch chain (tables, then columns, then rows) whose stages run one
after another. Chains are never cancelled; instead each one is tagged with the
generation current when it started, and a stage whose generation is no longer
current drops its result on the floor.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Sequence

from hanbase_cli.shared.exceptions import ExecutionError, TransportError, ValidationError
from hanbase_cli.shared.logging import Logger, get_logger

from .builder import DEFAULT_SELECT_LIMIT
from .executor import QueryExecutor
from .projects import ProjectService
from .registry import SchemaRegistry
from .types import Column, Project, QueryResult


class NavigationPhase(str, enum.Enum):
    NO_PROJECT = "no_project"
    PROJECT_SELECTED = "project_selected"
    PROJECT_AND_TABLE_SELECTED = "project_and_table_selected"


@dataclass(frozen=True, slots=True)
class TableView:
    """Latest schema and rows fetched for the selected table."""

    project: str
    table: str
    columns: tuple[Column, ...] = ()
    result: QueryResult | None = None
    error: str | None = None


def preferred_selection(options: Sequence[str], current: str | None) -> str | None:
    """Keep ``current`` while it is still offered, else fall back to the first option."""
    if current in options:
        return current
    return options[0] if options else None


class NavigationState:
    """Long-lived selection state machine for one console session."""

    def __init__(
        self,
        projects: ProjectService,
        registry: SchemaRegistry,
        executor: QueryExecutor,
        *,
        row_limit: int = DEFAULT_SELECT_LIMIT,
        logger: Logger | None = None,
    ) -> None:
        self.project_service = projects
        self.registry = registry
        self.executor = executor
        self.row_limit = row_limit
        self.logger = logger or get_logger()
        self.projects: tuple[Project, ...] = ()
        self.tables: tuple[str, ...] = ()
        self.project: str | None = None
        self.table: str | None = None
        self.view: TableView | None = None
        self.generation = 0

    @property
    def phase(self) -> NavigationPhase:
        if self.project is None:
            return NavigationPhase.NO_PROJECT
        if self.table is None:
            return NavigationPhase.PROJECT_SELECTED
        return NavigationPhase.PROJECT_AND_TABLE_SELECTED

    @property
    def project_slugs(self) -> list[str]:
        return [project.slug for project in self.projects]

    async def load_projects(self) -> list[Project]:
        """Fetch the project list and auto-select (or repair) the project selection."""
        generation = self.generation
        projects = await self.project_service.list_projects()
        if not self._is_current(generation):
            return list(projects)
        self.projects = tuple(projects)

        preferred = preferred_selection(self.project_slugs, self.project)
        if preferred is None:
            self._bump()
            self._clear_project()
        elif preferred != self.project:
            await self._enter_project(preferred)
        return list(projects)

    async def select_project(self, slug: str) -> None:
        if slug not in self.project_slugs:
            raise ValidationError(f"Unknown project '{slug}'.")
        await self._enter_project(slug)

    async def select_table(self, name: str) -> None:
        if self.project is None:
            raise ValidationError("Select a project first.")
        if name not in self.tables:
            raise ValidationError(f"Table '{name}' does not exist in project '{self.project}'.")
        generation = self._bump()
        self.table = name
        self.view = None
        await self._load_table(generation)

    async def reload_tables(self) -> list[str]:
        """Re-list tables for the current project, repairing a stale table selection."""
        if self.project is None:
            return []
        generation = self._bump()
        tables = await self.registry.list_tables(self.project)
        if not self._is_current(generation):
            return tables
        previous = self.table
        self._apply_tables(tables)
        if self.table is not None and self.table != previous:
            await self._load_table(generation)
        elif self.table is None:
            self.view = None
        return tables

    async def table_created(self, name: str) -> None:
        """Refresh after a successful create, preferring the new table as the selection."""
        if self.project is None:
            return
        generation = self._bump()
        tables, preferred = await self.registry.refresh_after_create(self.project, name)
        if not self._is_current(generation):
            return
        self.tables = tuple(tables)
        self.table = preferred
        self.view = None
        if self.table is not None:
            await self._load_table(generation)

    async def refresh(self) -> None:
        """Re-fetch schema and rows for the current table."""
        if self.phase is not NavigationPhase.PROJECT_AND_TABLE_SELECTED:
            return
        generation = self._bump()
        await self._load_table(generation)

    async def resync(self) -> None:
        """Re-fetch projects, tables and the table view, keeping the selection where it survives.

        Used after the schema caches were dropped (for example on re-authentication),
        when the selection may point at tables the registry no longer lists.
        """
        previous = self.project
        await self.load_projects()
        if self.project is None or self.project != previous:
            return
        generation = self._bump()
        tables = await self.registry.list_tables(self.project)
        if not self._is_current(generation):
            return
        self._apply_tables(tables)
        self.view = None
        await self._load_table(generation)

    async def _enter_project(self, slug: str) -> None:
        generation = self._bump()
        self.project = slug
        self.table = None
        self.tables = ()
        self.view = None

        tables = await self.registry.list_tables(slug)
        if not self._is_current(generation):
            return
        self._apply_tables(tables)
        if self.table is not None:
            await self._load_table(generation)

    def _apply_tables(self, tables: Sequence[str]) -> None:
        self.tables = tuple(tables)
        self.table = preferred_selection(self.tables, self.table)

    async def _load_table(self, generation: int, *, relist: bool = True) -> None:
        project, table = self.project, self.table
        if project is None or table is None:
            return

        try:
            columns = await self.registry.get_columns(project, table)
        except ValidationError as exc:
            if not relist:
                if self._is_current(generation):
                    self.view = TableView(project=project, table=table, error=str(exc))
                return
            # The registry no longer lists this table; list again, then retry once.
            tables = await self.registry.list_tables(project)
            if not self._is_current(generation):
                return
            self._apply_tables(tables)
            self.view = None
            await self._load_table(generation, relist=False)
            return
        except (ExecutionError, TransportError) as exc:
            if self._is_current(generation):
                self.view = TableView(project=project, table=table, error=str(exc))
            return
        if not self._is_current(generation):
            return
        view = TableView(project=project, table=table, columns=tuple(columns))
        self.view = view

        try:
            result = await self.executor.fetch_rows(project, table, limit=self.row_limit)
        except (ExecutionError, TransportError) as exc:
            if self._is_current(generation):
                self.view = replace(view, error=str(exc))
            return
        if not self._is_current(generation):
            return
        self.view = replace(view, result=result)

    def _clear_project(self) -> None:
        self.project = None
        self.table = None
        self.tables = ()
        self.view = None

    def _bump(self) -> int:
        self.generation += 1
        return self.generation

    def _is_current(self, generation: int) -> bool:
        if generation == self.generation:
            return True
        self.logger.debug(f"Discarding stale fetch (generation {generation}, current {self.generation}).")
        return False
