"""hanbase CLI entrypoint."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from pathlib import Path
from typing import Any, TypeVar

import click

from hanbase_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from hanbase_cli.shared.exceptions import ExecutionError, ValidationError

from . import render
from .builder import (
    build_create_table,
    build_insert,
    parse_column_spec,
    sanitize_identifier,
    with_id_column,
)
from .navigation import preferred_selection
from .shell import prompt_row_form, run_shell
from .workbench import Workbench, open_workbench

OUTPUT_FORMAT_CHOICES = ("table", "tsv", "csv", "json")
SCHEMA_FORMAT_CHOICES = ("table", "json")

T = TypeVar("T")

project_option = click.option(
    "-P",
    "--project",
    "project",
    type=str,
    help="Project slug (defaults to the first project).",
)


@click.group(help="Manage Hanbase projects, tables and rows.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for hanbase commands."""
    cli_ctx.logger.debug(f"hanbase initialised (token file: {cli_ctx.config.session.token_path}).")


# --- session ---------------------------------------------------------------


@cli.command("login")
@click.option("--email", prompt=True, type=str, help="Admin email address.")
@click.option("--password", prompt=True, hide_input=True, type=str, help="Admin password.")
@handle_cli_errors
@pass_cli_context
def login(cli_ctx: CLIContext, email: str, password: str) -> None:
    """Sign in and store the admin token."""

    async def _login(wb: Workbench) -> None:
        await wb.session.sign_in(email, password)

    _run_with(cli_ctx, _login)
    cli_ctx.logger.success(f"Signed in as {email}.")


@cli.command("logout")
@handle_cli_errors
@pass_cli_context
def logout(cli_ctx: CLIContext) -> None:
    """Forget the stored admin token."""

    async def _logout(wb: Workbench) -> None:
        wb.session.sign_out()

    _run_with(cli_ctx, _logout)
    cli_ctx.logger.success("Signed out.")


@cli.command("status")
@handle_cli_errors
@pass_cli_context
def status(cli_ctx: CLIContext) -> None:
    """Show the service URL and whether the stored token still works."""

    async def _status(wb: Workbench) -> None:
        click.echo(f"API: {wb.session.base_url}")
        if not wb.session.authenticated:
            click.echo("Not signed in.")
            return
        projects = await wb.projects.list_projects()
        if wb.projects.last_error:
            click.echo(f"Signed in; the service could not be queried ({wb.projects.last_error}).")
            return
        click.echo(f"Signed in; {len(projects)} project(s).")

    _run_with(cli_ctx, _status)


# --- projects --------------------------------------------------------------


@cli.group("projects")
def projects_group() -> None:
    """List, create and delete projects."""


@projects_group.command("list")
@handle_cli_errors
@pass_cli_context
def list_projects(cli_ctx: CLIContext) -> None:
    """List projects; the default selection is marked with *."""

    async def _list(wb: Workbench) -> None:
        projects = await wb.projects.list_projects()
        if wb.projects.last_error:
            raise ExecutionError(f"Could not load projects: {wb.projects.last_error}")
        selected = preferred_selection([project.slug for project in projects], None)
        render.render_projects(projects, selected=selected)

    _run_with(cli_ctx, _list)


@projects_group.command("create")
@click.argument("name", type=str)
@click.argument("slug", type=str)
@handle_cli_errors
@pass_cli_context
def create_project(cli_ctx: CLIContext, name: str, slug: str) -> None:
    """Create a project NAME whose schema is SLUG."""

    async def _create(wb: Workbench) -> str:
        return await wb.projects.create_project(name, slug)

    message = _run_with(cli_ctx, _create)
    cli_ctx.logger.success(message)


@projects_group.command("delete")
@click.argument("slug", type=str)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@handle_cli_errors
@pass_cli_context
def delete_project(cli_ctx: CLIContext, slug: str, yes: bool) -> None:
    """Delete a project and everything in its schema."""
    if not yes:
        click.confirm(f"Delete project '{slug}' and all of its tables?", abort=True)

    async def _delete(wb: Workbench) -> None:
        await wb.projects.delete_project(slug)

    _run_with(cli_ctx, _delete)
    cli_ctx.logger.success(f"Project '{slug}' deleted.")


# --- tables ----------------------------------------------------------------


@cli.group("tables")
def tables_group() -> None:
    """Browse and create tables in a project."""


@tables_group.command("list")
@project_option
@handle_cli_errors
@pass_cli_context
def list_tables(cli_ctx: CLIContext, project: str | None) -> None:
    """List the tables of a project."""

    async def _list(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        tables = await wb.registry.list_tables(slug)
        if slug in wb.registry.errors:
            raise ExecutionError(f"Could not load tables: {wb.registry.errors[slug]}")
        render.render_tables(tables, project=slug, selected=preferred_selection(tables, None))

    _run_with(cli_ctx, _list)


@tables_group.command("describe")
@click.argument("table", type=str)
@project_option
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(SCHEMA_FORMAT_CHOICES),
)
@handle_cli_errors
@pass_cli_context
def describe_table(cli_ctx: CLIContext, table: str, project: str | None, output_format: str) -> None:
    """Show the columns of TABLE."""

    async def _describe(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        await wb.require_table(slug, table)
        columns = await wb.registry.get_columns(slug, table)
        render.render_columns(
            columns,
            output_format=output_format,
            logger=cli_ctx.logger,
            title=f"{slug}.{table}",
        )

    _run_with(cli_ctx, _describe)


@tables_group.command("create")
@click.argument("name", type=str)
@click.option(
    "-c",
    "--column",
    "column_specs",
    multiple=True,
    metavar="NAME:TYPE[:pk][:default=EXPR]",
    help="Column definition; repeat for each column.",
)
@click.option("--no-id", is_flag=True, help="Do not prepend the generated UUID id column.")
@project_option
@handle_cli_errors
@pass_cli_context
def create_table(
    cli_ctx: CLIContext,
    name: str,
    column_specs: Iterable[str],
    no_id: bool,
    project: str | None,
) -> None:
    """Create table NAME from column definitions."""
    table = sanitize_identifier(name)
    if not table:
        raise click.UsageError("Table name must contain letters, digits or underscores.")
    columns = [parse_column_spec(spec) for spec in column_specs]
    if not no_id:
        columns = with_id_column(columns)

    async def _create(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        ddl = build_create_table(slug, table, columns)
        cli_ctx.logger.debug(ddl)
        await wb.executor.execute(ddl)
        tables, selected = await wb.registry.refresh_after_create(slug, table)
        cli_ctx.logger.success(f"Table '{table}' created in {slug}.")
        render.render_tables(tables, project=slug, selected=selected)

    _run_with(cli_ctx, _create)


# --- rows ------------------------------------------------------------------


@cli.group("rows")
def rows_group() -> None:
    """Browse and insert rows."""


@rows_group.command("list")
@click.argument("table", type=str)
@project_option
@click.option("--limit", type=int, help="Override the default row limit.")
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(OUTPUT_FORMAT_CHOICES),
)
@handle_cli_errors
@pass_cli_context
def list_rows(
    cli_ctx: CLIContext,
    table: str,
    project: str | None,
    limit: int | None,
    output_format: str,
) -> None:
    """Show the first rows of TABLE."""
    row_limit = limit if limit is not None else cli_ctx.config.console.row_limit
    if row_limit <= 0:
        raise click.UsageError("--limit must be a positive integer.")

    async def _list(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        await wb.require_table(slug, table)
        result = await wb.executor.fetch_rows(slug, table, limit=row_limit)
        render.render_query_result(
            result,
            output_format=output_format,
            logger=cli_ctx.logger,
        )

    _run_with(cli_ctx, _list)


@rows_group.command("insert")
@click.argument("table", type=str)
@project_option
@click.option(
    "-s",
    "--set",
    "assignments",
    multiple=True,
    metavar="COLUMN=VALUE",
    help="Column value; without any, each column is prompted for.",
)
@handle_cli_errors
@pass_cli_context
def insert_row(
    cli_ctx: CLIContext,
    table: str,
    project: str | None,
    assignments: Iterable[str],
) -> None:
    """Insert one row into TABLE."""
    try:
        provided = _parse_params(assignments)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    async def _insert(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        await wb.require_table(slug, table)
        columns = await wb.registry.get_columns(slug, table)
        form = render.build_row_form(
            slug,
            table,
            columns,
            system_columns=cli_ctx.config.console.system_columns,
        )
        if provided:
            known = {column.name for column in columns}
            unknown = [name for name in provided if name not in known]
            if unknown:
                raise ValidationError(f"Unknown column(s) for '{table}': {', '.join(unknown)}.")
            editable = {field.name for field in form.fields}
            managed = [name for name in provided if name not in editable]
            if managed:
                raise ValidationError(f"Column(s) managed by the service cannot be set: {', '.join(managed)}.")
            values: dict[str, Any] = dict(provided)
        else:
            values = render.collect_row_values(form, prompt_row_form(form))

        statement = build_insert(
            slug,
            table,
            values,
            parameterized=cli_ctx.config.console.parameterized_queries,
        )
        await wb.executor.execute(statement)
        cli_ctx.logger.success(f"Row inserted into {slug}.{table}.")

    _run_with(cli_ctx, _insert)


# --- sql -------------------------------------------------------------------


@cli.command("sql")
@click.argument("query", type=str, required=False)
@click.option(
    "-f",
    "--file",
    "query_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the statement from a file.",
)
@click.option(
    "--format",
    "output_format",
    default="table",
    show_default=True,
    type=click.Choice(OUTPUT_FORMAT_CHOICES),
)
@handle_cli_errors
@pass_cli_context
def run_sql(
    cli_ctx: CLIContext,
    query: str | None,
    query_file: Path | None,
    output_format: str,
) -> None:
    """Execute a free-form SQL statement."""
    if query and query_file:
        raise click.UsageError("Pass either QUERY or --file, not both.")
    if query_file is not None:
        query = query_file.read_text(encoding="utf-8")
    if not query or not query.strip():
        raise click.UsageError("Query text must not be empty.")

    async def _execute(wb: Workbench) -> None:
        result = await wb.executor.execute(query)
        render.render_query_result(
            result,
            output_format=output_format,
            logger=cli_ctx.logger,
        )

    _run_with(cli_ctx, _execute)


# --- tenant users ----------------------------------------------------------


@cli.group("users")
def users_group() -> None:
    """Manage the end users of a project."""


@users_group.command("list")
@project_option
@handle_cli_errors
@pass_cli_context
def list_users(cli_ctx: CLIContext, project: str | None) -> None:
    """List a project's users."""

    async def _list(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        render.render_users(await wb.users.list_users(slug))

    _run_with(cli_ctx, _list)


@users_group.command("add")
@click.argument("email", type=str)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, type=str)
@project_option
@handle_cli_errors
@pass_cli_context
def add_user(cli_ctx: CLIContext, email: str, password: str, project: str | None) -> None:
    """Register EMAIL as a user of the project."""

    async def _add(wb: Workbench) -> str:
        slug = await wb.resolve_project(project)
        await wb.users.add_user(slug, email, password)
        return slug

    slug = _run_with(cli_ctx, _add)
    cli_ctx.logger.success(f"User {email} added to {slug}.")


@users_group.command("delete")
@click.argument("user_id", type=str)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@project_option
@handle_cli_errors
@pass_cli_context
def delete_user(cli_ctx: CLIContext, user_id: str, yes: bool, project: str | None) -> None:
    """Delete the user USER_ID from the project."""
    if not yes:
        click.confirm(f"Delete user '{user_id}'?", abort=True)

    async def _delete(wb: Workbench) -> None:
        slug = await wb.resolve_project(project)
        await wb.users.delete_user(slug, user_id)

    _run_with(cli_ctx, _delete)
    cli_ctx.logger.success(f"User '{user_id}' deleted.")


# --- shell -----------------------------------------------------------------


@cli.command("shell")
@handle_cli_errors
@pass_cli_context
def shell(cli_ctx: CLIContext) -> None:
    """Start an interactive browsing session."""

    async def _shell(wb: Workbench) -> None:
        await run_shell(wb, logger=cli_ctx.logger)

    _run_with(cli_ctx, _shell)


# --- helpers ---------------------------------------------------------------


def _parse_params(pairs: Iterable[str]) -> dict[str, str]:
    """Convert COLUMN=VALUE CLI options into a dictionary (order preserved)."""
    parsed: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Value '{pair}' must be in COLUMN=VALUE format.")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Column names cannot be empty.")
        parsed[key] = value
    return parsed


def _run_with(cli_ctx: CLIContext, action: Callable[[Workbench], Awaitable[T]]) -> T:
    async def _main() -> T:
        async with open_workbench(cli_ctx.config, cli_ctx.logger) as wb:
            return await action(wb)

    return _run(_main())


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
