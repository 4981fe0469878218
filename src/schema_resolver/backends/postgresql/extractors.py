"""PostgreSQL schema extractors."""

from dataclasses import replace
from typing import Optional

import psycopg

from ...base import BaseExtractor
from ...base.models import (
    Column,
    CompositeDefinition,
    EnumDefinition,
    RawStatement,
    Statement,
    Table,
)
from ...base.names import DbName, ObjectName, StatementName
from ...base.types import ColumnType, CompositeType, collect_type_names
from ...exceptions import CatalogError, ConfigurationError, StatementError
from ...filters import Objects, SqlObjectFilter, TempTables

DEFAULT_MAX_ITERATIONS = 1000

PREPARED_STATEMENT_PREFIX = "resolver_prepare_stmt_"
TEMP_TABLE_PREFIX = "resolver_temp_table_"

# PostgreSQL truncates identifiers beyond NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_LENGTH = 63
MAX_STATEMENT_NAME_LENGTH = MAX_IDENTIFIER_LENGTH - max(
    len(PREPARED_STATEMENT_PREFIX), len(TEMP_TABLE_PREFIX)
)


class TableExtractor(BaseExtractor):
    """Extracts tables matching a filter plus every table reachable through foreign keys."""

    def __init__(
        self,
        reader,
        db_name: DbName,
        table_filter: SqlObjectFilter,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        super().__init__(reader, db_name)
        self.table_filter = table_filter
        self.max_iterations = max_iterations

    def extract(self) -> list[Table]:
        """Walk the foreign-key closure of the configured filter.

        Each batch fetches only tables not fetched before; a requested table
        that the catalog does not return is an error rather than a retry.
        """
        tables: list[Table] = []
        fetched: set[ObjectName] = set()
        current_filter = self.table_filter
        requested: frozenset[ObjectName] = frozenset()
        iteration = 0

        while current_filter.is_not_empty():
            iteration += 1
            if iteration > self.max_iterations:
                raise CatalogError(
                    f"foreign key closure did not converge after {self.max_iterations} iterations"
                )

            batch = self._get_tables(current_filter)
            self.logger.debug(f"Iteration {iteration}: fetched {len(batch)} tables")
            tables.extend(t for t in batch if t.name not in fetched)
            fetched.update(t.name for t in batch)

            not_found = requested - fetched
            if not_found:
                raise CatalogError(
                    f"foreign key target tables not found: {sorted(str(n) for n in not_found)}"
                )

            targets = {fk.target_table for table in tables for fk in table.foreign_keys}
            requested = frozenset(targets - fetched)
            current_filter = Objects(requested)

        self.logger.info(f"Found {len(tables)} tables in {iteration} iterations")
        return tables

    def _get_tables(self, table_filter: SqlObjectFilter) -> list[Table]:
        if table_filter.is_empty():
            return []
        columns = self.reader.get_columns(table_filter)
        primary_keys = self.reader.get_primary_keys(table_filter)
        foreign_keys = self.reader.get_foreign_keys(table_filter)
        unique_constraints = self.reader.get_unique_constraints(table_filter)
        check_constraints = self.reader.get_check_constraints(table_filter)

        table_names = list(dict.fromkeys([*columns, *primary_keys, *foreign_keys]))
        return [
            Table(
                name=table_name,
                columns=tuple(sorted(columns.get(table_name, []), key=lambda c: c.ordinal_position)),
                primary_key=primary_keys.get(table_name),
                foreign_keys=tuple(foreign_keys.get(table_name, [])),
                unique_constraints=tuple(unique_constraints.get(table_name, [])),
                check_constraints=tuple(check_constraints.get(table_name, [])),
            )
            for table_name in table_names
        ]


class EnumExtractor(BaseExtractor):
    """Extracts the labels of a set of enum types."""

    def __init__(self, reader, db_name: DbName, enum_names: set[ObjectName]):
        super().__init__(reader, db_name)
        self.enum_names = frozenset(enum_names)

    def extract(self) -> list[EnumDefinition]:
        enum_filter = Objects(self.enum_names)
        if enum_filter.is_empty():
            return []
        labels = self.reader.get_enums(enum_filter)
        missing = self.enum_names - set(labels)
        if missing:
            raise CatalogError(f"enums not found: {sorted(str(n) for n in missing)}")
        enums = [EnumDefinition(name=name, fields=tuple(fields)) for name, fields in labels.items()]
        self.logger.info(f"Found {len(enums)} enums")
        return enums


class CompositeTypeExtractor(BaseExtractor):
    """Extracts composite types, following composite types nested in their fields."""

    def __init__(self, reader, db_name: DbName, composite_names: set[ObjectName]):
        super().__init__(reader, db_name)
        self.composite_names = frozenset(composite_names)

    def extract(self) -> list[CompositeDefinition]:
        composites: dict[ObjectName, CompositeDefinition] = {}
        pending = set(self.composite_names)
        while pending:
            fields = self.reader.get_composite_type_fields(Objects(frozenset(pending)))
            missing = pending - set(fields)
            if missing:
                raise CatalogError(f"composite types not found: {sorted(str(n) for n in missing)}")
            for name, columns in fields.items():
                composites[name] = CompositeDefinition(
                    name=name,
                    columns=tuple(sorted(columns, key=lambda c: c.ordinal_position)),
                )
            nested = collect_type_names(
                (c.type for columns in fields.values() for c in columns), CompositeType
            )
            pending = nested - set(composites)

        self.logger.info(f"Found {len(composites)} composite types")
        return list(composites.values())


class StatementExtractor(BaseExtractor):
    """Types hand-written statements by probing them against the live database.

    Parameter types come from ``PREPARE`` + ``pg_prepared_statements``,
    result columns from a temp table created from the statement body.
    """

    def __init__(self, reader, db_name: DbName, raw_statements: list[RawStatement]):
        super().__init__(reader, db_name)
        self.raw_statements = raw_statements

    def extract(self) -> list[Statement]:
        too_long = [
            r.name for r in self.raw_statements if len(r.name.encode("utf-8")) > MAX_STATEMENT_NAME_LENGTH
        ]
        if too_long:
            raise ConfigurationError(f"statement names longer than {MAX_STATEMENT_NAME_LENGTH} bytes: {too_long}")
        statements = [self._extract_statement(raw) for raw in self.raw_statements]
        duplicates = find_duplicate_statement_names(statements)
        if duplicates:
            raise ConfigurationError(f"statements with duplicate names found: {duplicates}")
        self.logger.info(f"Found {len(statements)} statements")
        return statements

    def _extract_statement(self, raw: RawStatement) -> Statement:
        input_types = self._get_input_types(raw)
        if len(input_types) != len(raw.unique_variables):
            raise StatementError(
                f"unexpected number of input columns in statement '{raw.name}': "
                f"expected {len(raw.unique_variables)}, got {len(input_types)}"
            )
        columns = self._get_output_columns(raw)
        return Statement(
            name=StatementName(db_name=self.db_name, name=raw.name),
            cardinality=raw.cardinality,
            variables=raw.all_variables,
            variable_types=dict(zip(raw.unique_variables, input_types)),
            columns=tuple(
                replace(c, is_nullable=False) if c.name in raw.non_null_columns else c
                for c in columns
            ),
            sql=raw.prepared_sql,
        )

    def _get_input_types(self, raw: RawStatement) -> list[ColumnType]:
        name = PREPARED_STATEMENT_PREFIX + raw.name.lower()
        prepared = False
        try:
            self.reader.prepare_statement(name, raw.prepared_psql)
            prepared = True
            return self.reader.get_parameter_types(name)
        except (psycopg.Error, CatalogError) as e:
            raise StatementError(f"Failed to extract input types of statement '{raw.name}': {e}") from e
        finally:
            if prepared:
                self._cleanup(raw, self.reader.deallocate_statement, name)

    def _get_output_columns(self, raw: RawStatement) -> list[Column]:
        name = TEMP_TABLE_PREFIX + raw.name.lower()
        try:
            self.reader.create_temp_table(name, raw.sql)
            columns = self.reader.get_columns(TempTables(frozenset([name])))
            if len(columns) != 1:
                raise StatementError(
                    f"expected exactly one temp table '{name}' for statement '{raw.name}', found {len(columns)}"
                )
            return sorted(next(iter(columns.values())), key=lambda c: c.ordinal_position)
        except (psycopg.Error, CatalogError) as e:
            raise StatementError(f"Failed to extract output types of statement '{raw.name}': {e}") from e
        finally:
            self._cleanup(raw, self.reader.drop_temp_table, name)

    def _cleanup(self, raw: RawStatement, action, name: str) -> None:
        try:
            action(name)
        except psycopg.Error as e:
            self.logger.warning(f"Cleanup of '{name}' for statement '{raw.name}' failed: {e}")


def find_duplicate_statement_names(statements: list[Statement]) -> Optional[list[str]]:
    """Names that collide after camel-casing and case folding, or None."""
    groups: dict[str, list[str]] = {}
    for statement in statements:
        groups.setdefault(statement.name.pretty_name.lower(), []).append(statement.name.name)
    duplicates = sorted(n for names in groups.values() if len(names) > 1 for n in names)
    return duplicates or None
