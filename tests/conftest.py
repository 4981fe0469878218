"""Shared fakes for the schema resolver test suite.

Nothing here talks to PostgreSQL: ``FakeConnection`` answers catalog queries
with canned ``dict_row`` rows and ``FakeCatalogReader`` serves an in-memory
catalog, filtered with ``SqlObjectFilter.matches``.
"""

from typing import Any, Optional

import psycopg
import pytest

from schema_resolver.backends.postgresql.extractors import (
    PREPARED_STATEMENT_PREFIX,
    TEMP_TABLE_PREFIX,
)
from schema_resolver.base.connection import BaseConnection
from schema_resolver.base.models import Column, ForeignKey, KeyPair, PrimaryKey, Table
from schema_resolver.base.names import DbName, ObjectName
from schema_resolver.base.types import ColumnType, Primitive
from schema_resolver.exceptions import ConnectionError
from schema_resolver.filters import SqlObjectFilter, TempTables


class FakeConnection(BaseConnection):
    """Connection returning canned rows for the first matching query fragment."""

    def __init__(self, responses: Optional[list[tuple[str, list[dict[str, Any]]]]] = None):
        super().__init__(config=None)
        self.responses = responses or []
        self.queries: list[tuple[str, tuple]] = []
        self.commands: list[str] = []
        self.connected = False
        self.disconnected = False

    def connect(self) -> None:
        self.connected = True
        self._connection = object()

    def disconnect(self) -> None:
        self.disconnected = True
        self._connection = None

    @property
    def connection(self) -> Any:
        if self._connection is None:
            raise ConnectionError("Not connected to database")
        return self._connection

    def execute_command(self, command: str) -> None:
        self.commands.append(command)

    def execute_dict(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        self.queries.append((query, params))
        for fragment, rows in self.responses:
            if fragment in query:
                return rows
        return []


class FakeCatalogReader:
    """In-memory catalog with the same interface as ``CatalogReader``."""

    def __init__(self, db_name: DbName):
        self.db_name = db_name
        self.tables: dict[ObjectName, Table] = {}
        self.enums: dict[ObjectName, list[str]] = {}
        self.composites: dict[ObjectName, list[Column]] = {}
        self.parameter_types: dict[str, list[ColumnType]] = {}
        self.result_columns: dict[str, list[Column]] = {}
        self.failures: set[tuple[str, str]] = set()
        self.table_filters: list[SqlObjectFilter] = []
        self.calls: list[tuple[str, str]] = []
        self.prepared: set[str] = set()
        self.temp_tables: set[str] = set()

    def add_table(self, table: Table) -> Table:
        self.tables[table.name] = table
        return table

    def add_statement(self, name: str, parameter_types: list[ColumnType], columns: list[Column]) -> None:
        self.parameter_types[name.lower()] = parameter_types
        self.result_columns[name.lower()] = columns

    def fail(self, action: str, name: str) -> None:
        """Make ``prepare`` or ``create`` raise a driver error for a statement."""
        self.failures.add((action, name.lower()))

    def _select(self, object_filter: SqlObjectFilter) -> list[Table]:
        if object_filter.is_empty():
            return []
        return [t for name, t in self.tables.items() if object_filter.matches(name)]

    def get_columns(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[Column]]:
        if isinstance(object_filter, TempTables):
            temp_schema = self.db_name.to_schema("pg_temp_3")
            return {
                ObjectName(schema=temp_schema, name=name): list(
                    self.result_columns.get(name[len(TEMP_TABLE_PREFIX):], [])
                )
                for name in sorted(object_filter.names)
                if name in self.temp_tables
            }
        self.table_filters.append(object_filter)
        return {t.name: list(t.columns) for t in self._select(object_filter) if t.columns}

    def get_primary_keys(self, object_filter: SqlObjectFilter) -> dict[ObjectName, PrimaryKey]:
        return {t.name: t.primary_key for t in self._select(object_filter) if t.primary_key}

    def get_foreign_keys(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[ForeignKey]]:
        return {t.name: list(t.foreign_keys) for t in self._select(object_filter) if t.foreign_keys}

    def get_unique_constraints(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[str]]:
        return {t.name: list(t.unique_constraints) for t in self._select(object_filter) if t.unique_constraints}

    def get_check_constraints(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[str]]:
        return {t.name: list(t.check_constraints) for t in self._select(object_filter) if t.check_constraints}

    def get_enums(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[str]]:
        return {n: list(v) for n, v in self.enums.items() if object_filter.matches(n)}

    def get_composite_type_fields(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[Column]]:
        return {n: list(v) for n, v in self.composites.items() if object_filter.matches(n)}

    def prepare_statement(self, name: str, query: str) -> None:
        self.calls.append(("prepare", name))
        if ("prepare", name[len(PREPARED_STATEMENT_PREFIX):]) in self.failures:
            raise psycopg.ProgrammingError(f'syntax error at or near "{name}"')
        self.prepared.add(name)

    def deallocate_statement(self, name: str) -> None:
        self.calls.append(("deallocate", name))
        self.prepared.discard(name)

    def get_parameter_types(self, name: str) -> list[ColumnType]:
        return list(self.parameter_types.get(name[len(PREPARED_STATEMENT_PREFIX):], []))

    def create_temp_table(self, name: str, query: str) -> None:
        self.calls.append(("create", name))
        if ("create", name[len(TEMP_TABLE_PREFIX):]) in self.failures:
            raise psycopg.ProgrammingError(f'column "missing" does not exist in "{name}"')
        self.temp_tables.add(name)

    def drop_temp_table(self, name: str) -> None:
        self.calls.append(("drop", name))
        self.temp_tables.discard(name)


def make_column(name: str, column_type: ColumnType = Primitive.INT4, position: int = 1, nullable: bool = False) -> Column:
    return Column(name=name, type=column_type, is_nullable=nullable, ordinal_position=position)


def make_table(
    db_name: DbName,
    name: str,
    columns: tuple[Column, ...] = (),
    foreign_keys: tuple[tuple[str, str, str], ...] = (),
    schema: str = "public",
) -> Table:
    """Build a table; each foreign key is ``(source_column, target_table, target_column)``."""
    columns = columns or (make_column("id"),)
    return Table(
        name=ObjectName(schema=db_name.to_schema(schema), name=name),
        columns=columns,
        primary_key=PrimaryKey(name=f"{name}_pkey", columns=(columns[0].name,)),
        foreign_keys=tuple(
            ForeignKey(
                name=f"{name}_{source}_fkey",
                target_table=ObjectName(schema=db_name.to_schema(schema), name=target),
                references=(KeyPair(source_column=source, target_column=target_column),),
            )
            for source, target, target_column in foreign_keys
        ),
    )


@pytest.fixture
def db_name() -> DbName:
    return DbName("base")


@pytest.fixture
def catalog(db_name) -> FakeCatalogReader:
    return FakeCatalogReader(db_name)


@pytest.fixture
def table_name(db_name):
    """Factory for object names in the ``public`` schema of the test database."""

    def factory(name: str, schema: str = "public") -> ObjectName:
        return ObjectName(schema=db_name.to_schema(schema), name=name)

    return factory
