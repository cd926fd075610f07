"""Interactive browsing loop on top of the navigation state."""

from __future__ import annotations

import shlex
from dataclasses import replace
from typing import TYPE_CHECKING, Awaitable, Callable

import click

from hanbase_cli.shared.exceptions import HanbaseError, SessionExpiredError, ValidationError
from hanbase_cli.shared.logging import Logger

from . import render
from .builder import (
    build_create_table,
    build_insert,
    parse_column_spec,
    sanitize_identifier,
    with_id_column,
)
from .navigation import NavigationPhase, TableView
from .types import RowForm

if TYPE_CHECKING:
    from .workbench import Workbench

Prompt = Callable[..., str]

HELP_TEXT = """\
Commands:
  projects              list projects (* marks the selection)
  use SLUG              select a project
  tables                list tables of the selected project
  open TABLE            select a table and show its rows
  describe              show the selected table's columns
  rows                  show the selected table's rows again
  refresh               re-fetch columns and rows of the selected table
  insert                add a row to the selected table
  create NAME COL...    create a table; columns as NAME:TYPE[:pk][:default=EXPR]
  sql STATEMENT         run free-form SQL
  login                 sign in again
  help                  show this message
  quit                  leave the shell"""


class ConsoleShell:
    """Reads commands line by line and drives a ``NavigationState``.

    Errors from a single command are reported and the loop continues. When the
    service rejects the token the user is asked to sign in again on the spot.
    """

    def __init__(self, workbench: Workbench, *, logger: Logger, prompt: Prompt = click.prompt) -> None:
        self.wb = workbench
        self.nav = workbench.navigation
        self.logger = logger
        self.prompt = prompt
        # Schema caches are dropped once the token is rejected.
        self.wb.session.on_invalidated(lambda _session: self.wb.registry.invalidate())
        self._commands: dict[str, Callable[[list[str]], Awaitable[None]]] = {
            "projects": self.cmd_projects,
            "use": self.cmd_use,
            "tables": self.cmd_tables,
            "open": self.cmd_open,
            "describe": self.cmd_describe,
            "rows": self.cmd_rows,
            "refresh": self.cmd_refresh,
            "insert": self.cmd_insert,
            "create": self.cmd_create,
            "sql": self.cmd_sql,
            "login": self.cmd_login,
        }

    async def run(self) -> None:
        await self._guarded(self._start)
        while True:
            try:
                line = self.prompt(self._prompt_label(), default="", show_default=False, prompt_suffix="> ")
            except click.Abort:
                click.echo()
                return
            if not line.strip():
                continue
            head, _, rest = line.strip().partition(" ")
            if head == "sql":
                # Statement text is passed through verbatim, quotes included.
                command, args = head, [rest.strip()]
            else:
                try:
                    command, *args = shlex.split(line)
                except ValueError as exc:
                    self.logger.error(f"Could not parse input: {exc}")
                    continue
            if command in {"quit", "exit"}:
                return
            if command == "help":
                click.echo(HELP_TEXT)
                continue
            handler = self._commands.get(command)
            if handler is None:
                self.logger.error(f"Unknown command '{command}'. Type 'help' for a list.")
                continue
            await self._guarded(lambda: handler(args))

    async def _start(self) -> None:
        if not self.wb.session.authenticated:
            await self.cmd_login([])
        await self.cmd_projects([])

    async def _guarded(self, action: Callable[[], Awaitable[None]]) -> None:
        try:
            await action()
        except SessionExpiredError as exc:
            self.logger.warning(str(exc))
            await self._relogin()
        except HanbaseError as exc:
            self.logger.error(str(exc))

    async def _relogin(self) -> None:
        try:
            await self.cmd_login([])
            # The schema caches were dropped with the old token; rebuild the selection.
            await self.nav.resync()
        except HanbaseError as exc:
            self.logger.error(str(exc))

    def _prompt_label(self) -> str:
        parts = ["hanbase"]
        if self.nav.project:
            parts.append(self.nav.project)
        if self.nav.table:
            parts.append(self.nav.table)
        return ":".join(parts)

    # --- commands ----------------------------------------------------------

    async def cmd_login(self, args: list[str]) -> None:
        email = args[0] if args else self.prompt("Email")
        password = self.prompt("Password", hide_input=True)
        await self.wb.session.sign_in(email, password)
        self.logger.success(f"Signed in as {email}.")

    async def cmd_projects(self, args: list[str]) -> None:
        await self.nav.load_projects()
        render.render_projects(self.nav.projects, selected=self.nav.project)
        self._show_view()

    async def cmd_use(self, args: list[str]) -> None:
        if len(args) != 1:
            raise ValidationError("Usage: use SLUG")
        await self.nav.select_project(args[0])
        render.render_tables(self.nav.tables, project=args[0], selected=self.nav.table)
        self._show_view()

    async def cmd_tables(self, args: list[str]) -> None:
        project = self._require_project()
        await self.nav.reload_tables()
        render.render_tables(self.nav.tables, project=project, selected=self.nav.table)

    async def cmd_open(self, args: list[str]) -> None:
        if len(args) != 1:
            raise ValidationError("Usage: open TABLE")
        await self.nav.select_table(args[0])
        self._show_view()

    async def cmd_describe(self, args: list[str]) -> None:
        view = self._require_view()
        render.render_columns(
            view.columns,
            output_format="table",
            logger=self.logger,
            title=f"{view.project}.{view.table}",
        )

    async def cmd_rows(self, args: list[str]) -> None:
        self._require_view()
        self._show_view()

    async def cmd_refresh(self, args: list[str]) -> None:
        self._require_view()
        await self.nav.refresh()
        self._show_view()

    async def cmd_insert(self, args: list[str]) -> None:
        view = self._require_view()
        form = render.build_row_form(
            view.project,
            view.table,
            view.columns,
            system_columns=self.wb.config.console.system_columns,
        )
        values = render.collect_row_values(form, prompt_row_form(form, self.prompt))
        statement = build_insert(
            view.project,
            view.table,
            values,
            parameterized=self.wb.config.console.parameterized_queries,
        )
        await self.wb.executor.execute(statement)
        self.logger.success("Row inserted.")
        await self.nav.refresh()
        self._show_view()

    async def cmd_create(self, args: list[str]) -> None:
        project = self._require_project()
        if len(args) < 2:
            raise ValidationError("Usage: create NAME NAME:TYPE [NAME:TYPE ...]")
        table = sanitize_identifier(args[0])
        if not table:
            raise ValidationError("Table name must contain letters, digits or underscores.")
        columns = with_id_column([parse_column_spec(spec) for spec in args[1:]])

        await self.wb.executor.execute(build_create_table(project, table, columns))
        self.logger.success(f"Table '{table}' created.")
        await self.nav.table_created(table)
        render.render_tables(self.nav.tables, project=project, selected=self.nav.table)
        self._show_view()

    async def cmd_sql(self, args: list[str]) -> None:
        statement = args[0] if args else ""
        result = await self.wb.executor.execute(statement)
        render.render_query_result(result, output_format="table", logger=self.logger)

    # --- helpers -----------------------------------------------------------

    def _require_project(self) -> str:
        if self.nav.project is None:
            raise ValidationError("No project selected. Create one or run 'use SLUG'.")
        return self.nav.project

    def _require_view(self) -> TableView:
        if self.nav.phase is not NavigationPhase.PROJECT_AND_TABLE_SELECTED or self.nav.view is None:
            raise ValidationError("No table selected. Run 'open TABLE' first.")
        return self.nav.view

    def _show_view(self) -> None:
        view = self.nav.view
        if view is None:
            return
        if view.error:
            self.logger.error(view.error)
            return
        if view.result is not None:
            render.render_query_result(
                replace(view.result, description=f"{view.project}.{view.table}"),
                output_format="table",
                logger=self.logger,
            )


async def run_shell(workbench: Workbench, *, logger: Logger, prompt: Prompt = click.prompt) -> None:
    await ConsoleShell(workbench, logger=logger, prompt=prompt).run()


def prompt_row_form(form: RowForm, prompt: Prompt = click.prompt) -> dict[str, str]:
    """Ask for every form field; blank answers are left to the service."""
    answers: dict[str, str] = {}
    for field in form.fields:
        label = f"{field.name} ({field.type_label})"
        if field.placeholder:
            label += f" [{field.placeholder}]"
        answers[field.name] = prompt(label, default="", show_default=False)
    return answers
