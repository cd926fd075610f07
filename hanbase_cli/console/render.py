"""Output rendering helpers for the console.

Nothing here knows a table's shape in advance: result headers come from the
first row's keys and insert forms come from catalog columns.
"""

from __future__ import annotations

import csv
import json
import sys
from typing import IO, Any, Iterable, Mapping, Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from hanbase_cli.shared.logging import Logger

from .types import CellKind, Column, FormField, Project, QueryResult, RowForm, TenantUser

NO_DATA = "No data"


def format_cell(value: Any) -> str:
    """Textual form of one cell: JSON for objects/arrays, empty for NULL."""
    kind = CellKind.of(value)
    if kind is CellKind.NULL:
        return ""
    if kind is CellKind.BOOL:
        return "true" if value else "false"
    if kind is CellKind.JSON:
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def render_query_result(
    result: QueryResult,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
) -> None:
    """Render a query result set to the desired format."""
    output_stream = stream or sys.stdout
    fmt = (output_format or "table").lower()

    if fmt == "table":
        _render_table(result, stream=output_stream)
    elif fmt == "csv":
        _render_delimited(result, stream=output_stream, delimiter=",")
    elif fmt == "tsv":
        _render_delimited(result, stream=output_stream, delimiter="\t")
    elif fmt == "json":
        _render_json(result, stream=output_stream)
    else:  # pragma: no cover - Click validation should prevent this
        raise ValueError(f"Unsupported output format '{output_format}'.")

    if result.truncated:
        logger.warning(
            f"Showing the first {result.limit_value} rows. Re-run with --limit to see more."
        )


def render_columns(
    columns: Sequence[Column],
    *,
    output_format: str,
    logger: Logger,
    stream=None,
    title: str | None = None,
) -> None:
    """Render catalog columns for a table."""
    output_stream = stream or sys.stdout
    if (output_format or "table").lower() == "json":
        payload = [
            {
                "name": column.name,
                "type": column.type_label,
                "nullable": column.nullable,
                "default": column.default,
            }
            for column in columns
        ]
        json.dump(payload, output_stream, indent=2)
        output_stream.write("\n")
        return

    if not columns:
        logger.info("Table has no columns.")
        return

    console = _console(output_stream)
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold", title=title)
    table.add_column("Column")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Default")
    for column in columns:
        table.add_row(
            Text(column.name),
            column.type_label,
            "yes" if column.nullable else "no",
            Text(column.default or ""),
        )
    console.print(table)


def render_projects(projects: Sequence[Project], *, selected: str | None = None, stream=None) -> None:
    output_stream = stream or sys.stdout
    console = _console(output_stream)
    if not projects:
        console.print("No projects yet. Create one with `hanbase projects create`.")
        return
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("")
    table.add_column("Slug", style="bold")
    table.add_column("Name")
    for project in projects:
        marker = "*" if project.slug == selected else ""
        table.add_row(marker, project.slug, Text(project.name))
    console.print(table)


def render_tables(
    tables: Sequence[str],
    *,
    project: str,
    selected: str | None = None,
    stream=None,
) -> None:
    output_stream = stream or sys.stdout
    console = _console(output_stream)
    if not tables:
        console.print(f"No tables in {project}.")
        return
    console.print(f"Tables in {project}:")
    for name in tables:
        marker = "*" if name == selected else " "
        console.print(f" {marker} {name}")


def render_users(users: Sequence[TenantUser], *, stream=None) -> None:
    output_stream = stream or sys.stdout
    console = _console(output_stream)
    if not users:
        console.print("No users found.")
        return
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Email")
    table.add_column("Created")
    for user in users:
        table.add_row(user.id, Text(user.email), user.created_at or "")
    console.print(table)


def build_row_form(
    project: str,
    table: str,
    columns: Iterable[Column],
    *,
    system_columns: Iterable[str],
) -> RowForm:
    """Return one input per column, leaving out system-managed columns."""
    excluded = set(system_columns)
    fields = tuple(
        FormField(
            name=column.name,
            type_label=column.type_label,
            nullable=column.nullable,
            default=column.default,
        )
        for column in columns
        if column.name not in excluded
    )
    return RowForm(project=project, table=table, fields=fields)


def collect_row_values(form: RowForm, answers: Mapping[str, str | None]) -> dict[str, str]:
    """Keep the answered fields only, in form order; blanks fall back to server defaults."""
    values: dict[str, str] = {}
    for field in form.fields:
        answer = answers.get(field.name)
        if answer is None or answer == "":
            continue
        values[field.name] = answer
    return values


def _console(stream: IO[str]) -> Console:
    return Console(file=stream, highlight=False, force_terminal=False, soft_wrap=True)


def _render_table(result: QueryResult, *, stream: IO[str]) -> None:
    console = _console(stream)
    if result.description:
        console.print(f"[bold]{result.description}[/bold]")

    if result.is_empty:
        console.print(f"[dim]{NO_DATA}[/dim]")
        return

    table = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold")
    for column in result.columns:
        table.add_column(Text(column or ""), overflow="fold")
    for record in result.records():
        table.add_row(*[Text(format_cell(cell)) for cell in record])
    console.print(table)


def _render_delimited(result: QueryResult, *, stream: IO[str], delimiter: str) -> None:
    writer = csv.writer(stream, delimiter=delimiter)
    if result.columns:
        writer.writerow(result.columns)
    for record in result.records():
        writer.writerow(format_cell(cell) for cell in record)


def _render_json(result: QueryResult, *, stream: IO[str]) -> None:
    records = [dict(row) for row in result.rows]
    json.dump(records, stream, indent=2, default=str)
    stream.write("\n")
