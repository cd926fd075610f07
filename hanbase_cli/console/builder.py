"""Statement construction for the table builder, row form and data grid.

Everything here is pure string assembly. Identifiers are double-quoted and
values are rendered as SQL literals with single quotes doubled. Table names and
project slugs are expected to have passed through ``sanitize_identifier``
first; that sanitizer is the only defence for identifiers. Values can instead
be shipped as positional parameters (``parameterized=True``), which keeps them
out of the statement text entirely.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

from hanbase_cli.shared.exceptions import ValidationError

from .types import Column, ColumnType, Statement

_IDENTIFIER_STRIP_RE = re.compile(r"[^a-z0-9_]")
DEFAULT_SELECT_LIMIT = 100

ID_COLUMN = Column(
    name="id",
    type=ColumnType.UUID,
    nullable=False,
    default="gen_random_uuid()",
    is_primary=True,
)


def sanitize_identifier(raw: str) -> str:
    """Lower-case ``raw`` and drop every character outside ``[a-z0-9_]``."""
    return _IDENTIFIER_STRIP_RE.sub("", (raw or "").lower())


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def qualified_name(project: str, table: str) -> str:
    return f"{quote_identifier(project)}.{quote_identifier(table)}"


def quote_literal(value: Any) -> str:
    """Render ``value`` as a SQL literal.

    Strings are always quoted, even when they look numeric; the service decides
    how to coerce them into the column type.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and not math.isfinite(value):
        return "'" + _special_float(value) + "'"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (Mapping, list, tuple)):
        value = json.dumps(value)
    text = str(value)
    return "'" + text.replace("'", "''") + "'"


def build_create_table(project: str, table: str, columns: Sequence[Column]) -> str:
    """Return a ``CREATE TABLE`` statement with one definition per column, in order."""
    _require_target(project, table)
    if not columns:
        raise ValidationError("At least one column is required.")

    definitions: list[str] = []
    for column in columns:
        if not column.name.strip():
            raise ValidationError("Column names must not be empty.")
        if not column.type_label:
            raise ValidationError(f"Column '{column.name}' needs a type.")
        definition = f"{quote_identifier(column.name)} {column.type_label}"
        if column.is_primary:
            definition += " PRIMARY KEY"
        if column.default:
            definition += f" DEFAULT {column.default}"
        definitions.append(definition)

    body = ",\n  ".join(definitions)
    return f"CREATE TABLE {qualified_name(project, table)} (\n  {body}\n);"


def build_insert(
    project: str,
    table: str,
    values: Mapping[str, Any],
    *,
    parameterized: bool = False,
) -> Statement:
    """Return an ``INSERT`` covering exactly the keys of ``values``, in their order.

    Columns left out rely on server-side defaults or nullability.
    """
    _require_target(project, table)
    if not values:
        raise ValidationError("Provide a value for at least one column.")

    column_names = list(values.keys())
    for name in column_names:
        if not str(name).strip():
            raise ValidationError("Column names must not be empty.")
    columns_sql = ", ".join(quote_identifier(str(name)) for name in column_names)
    target = qualified_name(project, table)

    if parameterized:
        placeholders = ", ".join(f"${index}" for index in range(1, len(column_names) + 1))
        params = tuple(_parameter_value(values[name]) for name in column_names)
        return Statement(f"INSERT INTO {target} ({columns_sql}) VALUES ({placeholders})", params)

    literals = ", ".join(quote_literal(values[name]) for name in column_names)
    return Statement(f"INSERT INTO {target} ({columns_sql}) VALUES ({literals})")


def build_select_all(project: str, table: str, limit: int = DEFAULT_SELECT_LIMIT) -> str:
    _require_target(project, table)
    if limit <= 0:
        raise ValidationError("Row limit must be a positive integer.")
    return f"SELECT * FROM {qualified_name(project, table)} LIMIT {int(limit)}"


def _require_target(project: str, table: str) -> None:
    if not project:
        raise ValidationError("No project selected.")
    if not table:
        raise ValidationError("Table name is required.")


def _parameter_value(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    # JSON has no NaN or infinity; send the spelling the database parses.
    if isinstance(value, float) and not math.isfinite(value):
        return _special_float(value)
    return value


def _special_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def parse_column_spec(raw: str) -> Column:
    """Parse ``name:TYPE[:pk][:default=EXPR]``; the default expression runs to the end."""
    name, sep, rest = raw.partition(":")
    name = name.strip()
    if not sep or not name:
        raise ValidationError(f"Column '{raw}' must look like NAME:TYPE.")
    type_part, _, options = rest.partition(":")
    try:
        column_type = ColumnType.parse(type_part)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    is_primary = False
    default: str | None = None
    while options:
        if options.lower().startswith("default="):
            default = options[len("default="):].strip() or None
            break
        option, _, options = options.partition(":")
        if option.strip().lower() == "pk":
            is_primary = True
        else:
            raise ValidationError(f"Unknown column option '{option}' in '{raw}'.")

    return Column(
        name=name,
        type=column_type,
        nullable=not is_primary,
        default=default,
        is_primary=is_primary,
    )


def with_id_column(columns: Sequence[Column]) -> list[Column]:
    """Prepend the generated UUID key unless an ``id`` column is already defined."""
    if any(column.name == ID_COLUMN.name for column in columns):
        return list(columns)
    return [ID_COLUMN, *columns]
