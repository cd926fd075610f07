"""Data structures shared across console modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class Project:
    """A tenant; the slug doubles as its dedicated schema name."""

    slug: str
    name: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Project:
        slug = str(payload.get("slug") or "")
        return cls(slug=slug, name=str(payload.get("name") or slug))


class ColumnType(str, enum.Enum):
    """Column types offered by the table builder."""

    UUID = "UUID"
    TEXT = "TEXT"
    INT = "INT"
    BOOLEAN = "BOOLEAN"
    TIMESTAMP = "TIMESTAMP"
    JSONB = "JSONB"

    @classmethod
    def parse(cls, raw: str) -> ColumnType:
        """Parse a builder type keyword (case-insensitive)."""
        try:
            return cls(raw.strip().upper())
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown column type '{raw}'. Expected one of: {choices}.") from exc

    @classmethod
    def from_catalog(cls, data_type: str) -> ColumnType | None:
        """Map an information_schema ``data_type`` onto a builder type, if one fits."""
        return _CATALOG_TYPES.get(data_type.strip().lower())


_CATALOG_TYPES: dict[str, ColumnType] = {
    "uuid": ColumnType.UUID,
    "text": ColumnType.TEXT,
    "character varying": ColumnType.TEXT,
    "character": ColumnType.TEXT,
    "integer": ColumnType.INT,
    "int": ColumnType.INT,
    "bigint": ColumnType.INT,
    "smallint": ColumnType.INT,
    "boolean": ColumnType.BOOLEAN,
    "timestamp": ColumnType.TIMESTAMP,
    "timestamp with time zone": ColumnType.TIMESTAMP,
    "timestamp without time zone": ColumnType.TIMESTAMP,
    "json": ColumnType.JSONB,
    "jsonb": ColumnType.JSONB,
}


@dataclass(frozen=True, slots=True)
class Column:
    """One column of a table, either authored in the builder or read from the catalog.

    ``raw_type`` keeps the catalog's spelling when it has no builder equivalent
    (``type`` is then None).
    """

    name: str
    type: ColumnType | None
    nullable: bool = True
    default: str | None = None
    is_primary: bool = False
    raw_type: str | None = None

    @property
    def type_label(self) -> str:
        if self.type is not None:
            return self.type.value
        return self.raw_type or ""

    @classmethod
    def from_catalog(cls, payload: Mapping[str, Any]) -> Column:
        raw_type = str(payload.get("type") or "")
        nullable = payload.get("nullable")
        if isinstance(nullable, str):
            is_nullable = nullable.strip().upper() == "YES"
        else:
            is_nullable = bool(nullable) if nullable is not None else True
        default = payload.get("default")
        return cls(
            name=str(payload.get("name") or ""),
            type=ColumnType.from_catalog(raw_type),
            nullable=is_nullable,
            default=None if default is None else str(default),
            raw_type=raw_type or None,
        )


class CellKind(str, enum.Enum):
    """Variant tag for a value found in a result row."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    TEXT = "text"
    JSON = "json"

    @classmethod
    def of(cls, value: Any) -> CellKind:
        if value is None:
            return cls.NULL
        # bool first: it is an int subclass
        if isinstance(value, bool):
            return cls.BOOL
        if isinstance(value, (int, float)):
            return cls.NUMBER
        if isinstance(value, (Mapping, list, tuple)):
            return cls.JSON
        return cls.TEXT


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Normalized tabular result of one statement.

    Columns are never declared: they are the key order of the first row, so an
    empty result has no columns at all.
    """

    rows: tuple[Mapping[str, Any], ...] = ()
    limit_value: int | None = None
    description: str | None = None
    truncated: bool = False

    @property
    def columns(self) -> tuple[str, ...]:
        if not self.rows:
            return ()
        return tuple(self.rows[0].keys())

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def records(self) -> list[tuple[Any, ...]]:
        """Row values aligned to ``columns``; keys missing from a row become None."""
        columns = self.columns
        return [tuple(row.get(column) for column in columns) for row in self.rows]


@dataclass(frozen=True, slots=True)
class Statement:
    """Executable statement text plus positional parameters (``$1``..``$n``)."""

    text: str
    params: tuple[Any, ...] = ()

    @property
    def parameterized(self) -> bool:
        return bool(self.params)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class FormField:
    """One user-editable input of a generated row form."""

    name: str
    type_label: str
    nullable: bool
    default: str | None = None

    @property
    def placeholder(self) -> str:
        return "NULL" if self.nullable else ""


@dataclass(frozen=True, slots=True)
class RowForm:
    """Insert form derived from a table's columns."""

    project: str
    table: str
    fields: tuple[FormField, ...]


@dataclass(frozen=True, slots=True)
class TenantUser:
    """End user registered in a project's own auth table."""

    id: str
    email: str
    created_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TenantUser:
        created = payload.get("created_at")
        return cls(
            id=str(payload.get("id") or ""),
            email=str(payload.get("email") or ""),
            created_at=None if created is None else str(created),
        )


