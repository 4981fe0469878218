"""Resolve configured databases into a schema model and persist it."""

import logging
from typing import Callable, Iterable, Optional

from .backends.postgresql import CatalogReader, PostgreSQLConnection
from .backends.postgresql.extractors import (
    CompositeTypeExtractor,
    EnumExtractor,
    StatementExtractor,
    TableExtractor,
)
from .base.connection import BaseConnection
from .base.models import RawStatement, SchemaModel, Statement, Table
from .base.types import ColumnType, CompositeType, EnumType, collect_type_names
from .config import ConnectionConfig, DbConfig, ResolverConfig
from .exceptions import ConfigurationError
from .overwrites import apply_type_overwrites, get_column_type_groups, merge_type_overwrites
from .serialization import dump_spec
from .statements import parse_statement_files

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[ConnectionConfig], BaseConnection]


def _statement_types(statements: Iterable[Statement]) -> list[ColumnType]:
    types: list[ColumnType] = []
    for statement in statements:
        types.extend(statement.variable_types.values())
        types.extend(c.type for c in statement.columns)
    return types


def resolve_with_reader(
    reader,
    db_config: DbConfig,
    raw_statements: Optional[list[RawStatement]] = None,
) -> SchemaModel:
    """Resolve one database through an already connected catalog reader."""
    db_name = db_config.db_name

    statements = StatementExtractor(reader, db_name, raw_statements or []).extract()
    tables: list[Table] = TableExtractor(reader, db_name, db_config.table_filter()).extract()

    groups = get_column_type_groups(tables)
    merged = merge_type_overwrites(db_config.type_overwrites, groups)
    tables = [apply_type_overwrites(table, merged) for table in tables]

    column_types = [c.type for t in tables for c in t.columns] + _statement_types(statements)
    composite_types = CompositeTypeExtractor(
        reader, db_name, collect_type_names(column_types, CompositeType)
    ).extract()

    column_types += [c.type for ct in composite_types for c in ct.columns]
    enums = EnumExtractor(reader, db_name, collect_type_names(column_types, EnumType)).extract()

    return SchemaModel(
        tables=tuple(tables),
        enums=tuple(enums),
        composite_types=tuple(composite_types),
        statements=tuple(statements),
        type_mappings=tuple(db_config.type_mappings),
        enum_mappings=tuple(db_config.enum_mappings),
        type_overwrites=tuple(db_config.type_overwrites),
    ).normalized()


def resolve_database(
    db_config: DbConfig,
    connection_factory: ConnectionFactory = PostgreSQLConnection,
) -> SchemaModel:
    """Resolve one database inside its own connection scope."""
    if db_config.connection is None:
        raise ConfigurationError(f"no connection defined for DB config '{db_config.name}'")
    raw_statements = parse_statement_files(db_config.statement_scripts)
    logger.info(f"Resolving database '{db_config.name}' ({len(raw_statements)} statements)")
    with connection_factory(db_config.connection) as conn:
        reader = CatalogReader(conn, db_config.db_name)
        return resolve_with_reader(reader, db_config, raw_statements)


def resolve(
    config: ResolverConfig,
    connection_factory: ConnectionFactory = PostgreSQLConnection,
) -> SchemaModel:
    """Resolve every configured database, one after the other, into one model."""
    config.validate()
    models = [resolve_database(db, connection_factory) for db in config.databases]
    model = SchemaModel.merge(models)
    logger.info(
        f"Resolved {len(model.tables)} tables, {len(model.enums)} enums, "
        f"{len(model.composite_types)} composite types, {len(model.statements)} statements"
    )
    return model


def generate_spec(
    config: ResolverConfig,
    connection_factory: ConnectionFactory = PostgreSQLConnection,
) -> SchemaModel:
    """Resolve all databases and write the spec file."""
    model = resolve(config, connection_factory)
    dump_spec(model, config.spec_file)
    return model
