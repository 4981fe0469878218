"""Ordered identifiers for databases, schemas, catalog objects and columns."""

import re
from dataclasses import dataclass

PG_CATALOG = "pg_catalog"

_WORD_SPLIT = re.compile(r"[^0-9A-Za-z]+")


def to_camel_case(value: str, capitalized: bool = False) -> str:
    """Convert snake/kebab/space separated names to camelCase (or PascalCase)."""
    parts = [p for p in _WORD_SPLIT.split(value) if p]
    if not parts:
        return value
    joined = "".join(p[0].upper() + p[1:] for p in parts)
    if capitalized:
        return joined
    return joined[0].lower() + joined[1:]


@dataclass(frozen=True, order=True)
class DbName:
    """Name of a configured database (not necessarily the physical database name)."""

    name: str

    def __str__(self) -> str:
        return self.name

    def to_schema(self, schema_name: str) -> "SchemaName":
        return SchemaName(db_name=self, schema_name=schema_name)

    @property
    def schema_pg_catalog(self) -> "SchemaName":
        return self.to_schema(PG_CATALOG)


@dataclass(frozen=True, order=True)
class SchemaName:
    db_name: DbName
    schema_name: str

    def __str__(self) -> str:
        return f"{self.db_name}->{self.schema_name}"


@dataclass(frozen=True, order=True)
class ObjectName:
    """A table, enum, composite type or domain inside a schema."""

    schema: SchemaName
    name: str

    @property
    def pretty_name(self) -> str:
        return to_camel_case(self.name, capitalized=True)

    @property
    def full_name(self) -> str:
        return f"{self.schema.db_name}.{self.schema.schema_name}.{self.name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True, order=True)
class ColumnRef:
    """A column addressed through its owning table."""

    table: ObjectName
    name: str

    def __str__(self) -> str:
        return f"{self.table.full_name}.{self.name}"


@dataclass(frozen=True, order=True)
class StatementName:
    db_name: DbName
    name: str

    @property
    def pretty_name(self) -> str:
        return to_camel_case(self.name)

    @property
    def pretty_result_class_name(self) -> str:
        return to_camel_case(self.name, capitalized=True) + "Result"

    def __str__(self) -> str:
        return f"{self.db_name}.{self.name}"
