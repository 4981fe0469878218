"""Dataclasses for the resolved schema model."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union

from ..exceptions import CatalogError
from .names import ColumnRef, ObjectName, StatementName, to_camel_case
from .types import ColumnType, CompositeType, DomainType, EnumType, ValueClass


@dataclass(frozen=True)
class Column:
    """Represents a table, composite-type or statement-result column."""

    name: str
    type: ColumnType
    is_nullable: bool = False
    default: Optional[str] = None
    # Only used to order columns, never persisted.
    ordinal_position: int = field(default=-1, compare=False)

    @property
    def pretty_name(self) -> str:
        return to_camel_case(self.name)


@dataclass(frozen=True)
class PrimaryKey:
    """Represents a primary key constraint."""

    name: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class KeyPair:
    source_column: str
    target_column: str


@dataclass(frozen=True)
class SingleKey:
    name: str
    target_table: ObjectName
    reference: KeyPair


@dataclass(frozen=True)
class MultiKey:
    name: str
    target_table: ObjectName
    references: tuple[KeyPair, ...]


@dataclass(frozen=True)
class ForeignKey:
    """Represents a foreign key constraint."""

    name: str
    target_table: ObjectName
    references: tuple[KeyPair, ...]

    def to_typed(self) -> Union[SingleKey, MultiKey]:
        """Normalise into a single-column or multi-column key."""
        if not self.references:
            raise CatalogError(f"foreign key '{self.name}' has no column references")
        if len(self.references) == 1:
            return SingleKey(name=self.name, target_table=self.target_table, reference=self.references[0])
        return MultiKey(name=self.name, target_table=self.target_table, references=self.references)


@dataclass(frozen=True)
class Table:
    """Represents a database table."""

    name: ObjectName
    columns: tuple[Column, ...] = ()
    primary_key: Optional[PrimaryKey] = None
    foreign_keys: tuple[ForeignKey, ...] = ()
    unique_constraints: tuple[str, ...] = ()
    check_constraints: tuple[str, ...] = ()

    @property
    def full_name(self) -> str:
        return self.name.full_name

    def column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def column_ref(self, column: Column) -> ColumnRef:
        return ColumnRef(table=self.name, name=column.name)

    def with_columns(self, columns: tuple[Column, ...]) -> "Table":
        return replace(self, columns=columns)


@dataclass(frozen=True)
class EnumDefinition:
    """Represents an enum type; labels are kept in catalog sort order."""

    name: ObjectName
    fields: tuple[str, ...]

    @property
    def type(self) -> EnumType:
        return EnumType(self.name)


@dataclass(frozen=True)
class CompositeDefinition:
    """Represents a composite type; fields are ordered by attribute number."""

    name: ObjectName
    columns: tuple[Column, ...]

    @property
    def type(self) -> CompositeType:
        return CompositeType(self.name)


class Cardinality(Enum):
    ONE = "ONE"
    MANY = "MANY"


@dataclass(frozen=True)
class RawStatement:
    """A parsed but not yet introspected statement.

    ``all_variables`` holds every placeholder occurrence in text order,
    ``unique_variables`` the first-seen order used for positional parameters.
    ``prepared_psql`` uses ``$n`` markers (for PREPARE), ``prepared_sql`` uses
    ``?`` markers (final text handed to code generation).
    """

    name: str
    cardinality: Cardinality
    all_variables: tuple[str, ...]
    unique_variables: tuple[str, ...]
    non_null_columns: frozenset[str]
    sql: str
    prepared_sql: str
    prepared_psql: str

    @property
    def variable_positions(self) -> tuple[int, ...]:
        """1-based parameter index of each occurrence in ``all_variables``."""
        return tuple(self.unique_variables.index(v) + 1 for v in self.all_variables)


@dataclass(frozen=True)
class Statement:
    """Represents a fully typed hand-written statement."""

    name: StatementName
    cardinality: Cardinality
    variables: tuple[str, ...]
    variable_types: dict[str, ColumnType] = field(hash=False)
    columns: tuple[Column, ...]
    sql: str


@dataclass(frozen=True)
class TypeMapping:
    """Maps a domain (or other named SQL type) to an external value class."""

    sql_type: ObjectName
    value_class: ValueClass


@dataclass(frozen=True)
class EnumMapping:
    """Maps an SQL enum onto an external enum class, optionally renaming labels."""

    sql_type: ObjectName
    enum_class: str
    mappings: dict[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class TypeOverwrite:
    """Retypes a single column (and its foreign-key equivalents) to a value class."""

    sql_column: ColumnRef
    value_class: ValueClass


def _unique_by(items, key) -> list:
    """Keep the first item per key, sorted by key."""
    seen = {}
    for item in items:
        seen.setdefault(key(item), item)
    return [seen[k] for k in sorted(seen)]


def _unique_by_name(items) -> list:
    return _unique_by(items, lambda i: i.name)


@dataclass(frozen=True)
class SchemaModel:
    """Everything the code generator needs, for one or more databases."""

    tables: tuple[Table, ...] = ()
    enums: tuple[EnumDefinition, ...] = ()
    composite_types: tuple[CompositeDefinition, ...] = ()
    statements: tuple[Statement, ...] = ()
    type_mappings: tuple[TypeMapping, ...] = ()
    enum_mappings: tuple[EnumMapping, ...] = ()
    type_overwrites: tuple[TypeOverwrite, ...] = ()

    @property
    def domains(self) -> list[DomainType]:
        """Distinct domain types used by table columns, sorted by name."""
        domains = {}
        for table in self.tables:
            for column in table.columns:
                if isinstance(column.type, DomainType):
                    domains.setdefault(column.type.name, column.type)
        return [domains[name] for name in sorted(domains)]

    def normalized(self) -> "SchemaModel":
        """Deduplicate by name and sort every collection."""
        return SchemaModel(
            tables=tuple(_unique_by_name(self.tables)),
            enums=tuple(_unique_by_name(self.enums)),
            composite_types=tuple(_unique_by_name(self.composite_types)),
            statements=tuple(_unique_by_name(self.statements)),
            type_mappings=tuple(_unique_by(self.type_mappings, lambda m: m.sql_type)),
            enum_mappings=tuple(_unique_by(self.enum_mappings, lambda m: m.sql_type)),
            type_overwrites=tuple(_unique_by(self.type_overwrites, lambda o: o.sql_column)),
        )

    @classmethod
    def merge(cls, models: list["SchemaModel"]) -> "SchemaModel":
        """Flatten per-database partitions into one normalized model."""
        return cls(
            tables=tuple(t for m in models for t in m.tables),
            enums=tuple(e for m in models for e in m.enums),
            composite_types=tuple(c for m in models for c in m.composite_types),
            statements=tuple(s for m in models for s in m.statements),
            type_mappings=tuple(t for m in models for t in m.type_mappings),
            enum_mappings=tuple(e for m in models for e in m.enum_mappings),
            type_overwrites=tuple(o for m in models for o in m.type_overwrites),
        ).normalized()
