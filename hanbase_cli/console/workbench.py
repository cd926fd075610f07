"""Wiring of one console session's collaborators."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from hanbase_cli.shared.config import AppConfig
from hanbase_cli.shared.exceptions import ExecutionError, ValidationError
from hanbase_cli.shared.logging import Logger
from hanbase_cli.shared.session import Session

from .executor import QueryExecutor
from .navigation import NavigationState, preferred_selection
from .projects import ProjectService, TenantUserService
from .registry import SchemaRegistry


@dataclass(slots=True)
class Workbench:
    """Everything a command needs, all sharing one session."""

    config: AppConfig
    session: Session
    projects: ProjectService
    users: TenantUserService
    registry: SchemaRegistry
    executor: QueryExecutor
    navigation: NavigationState

    @classmethod
    def create(cls, config: AppConfig, session: Session, logger: Logger) -> Workbench:
        projects = ProjectService(session, logger=logger)
        registry = SchemaRegistry(session, logger=logger)
        executor = QueryExecutor(session, logger=logger)
        navigation = NavigationState(
            projects,
            registry,
            executor,
            row_limit=config.console.row_limit,
            logger=logger,
        )
        return cls(
            config=config,
            session=session,
            projects=projects,
            users=TenantUserService(session),
            registry=registry,
            executor=executor,
            navigation=navigation,
        )

    async def resolve_project(self, requested: str | None = None) -> str:
        """Return ``requested`` if it exists, else the project auto-selection would pick."""
        projects = await self.projects.list_projects()
        if self.projects.last_error:
            raise ExecutionError(f"Could not load projects: {self.projects.last_error}")
        slugs = [project.slug for project in projects]
        if requested:
            if requested not in slugs:
                raise ValidationError(f"Unknown project '{requested}'.")
            return requested
        selected = preferred_selection(slugs, None)
        if selected is None:
            raise ValidationError("No projects yet. Create one with `hanbase projects create`.")
        return selected

    async def require_table(self, project: str, table: str) -> list[str]:
        """List the project's tables and insist ``table`` is among them."""
        tables = await self.registry.list_tables(project)
        if project in self.registry.errors:
            raise ExecutionError(f"Could not load tables: {self.registry.errors[project]}")
        if table not in tables:
            raise ValidationError(f"Table '{table}' does not exist in project '{project}'.")
        return tables


@asynccontextmanager
async def open_workbench(
    config: AppConfig,
    logger: Logger,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[Workbench]:
    session = Session(config, logger=logger, transport=transport)
    try:
        yield Workbench.create(config, session, logger)
    finally:
        await session.aclose()
