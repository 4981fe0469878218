"""Closed algebra of column types.

A column type is either a :class:`Primitive` (keyed by the physical PostgreSQL
type name) or one of the frozen dataclasses below. Array, domain and reference
types wrap another column type, so the algebra is recursive.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from .names import ObjectName


class Primitive(Enum):
    """Built-in types, valued by their ``pg_type.typname``."""

    BOOL = "bool"
    BINARY = "bytea"
    BPCHAR = "bpchar"
    DATE = "date"
    INT2 = "int2"
    INT4 = "int4"
    INT8 = "int8"
    FLOAT4 = "float4"
    FLOAT8 = "float8"
    INT4RANGE = "int4range"
    INT8RANGE = "int8range"
    INT4MULTIRANGE = "int4multirange"
    INT8MULTIRANGE = "int8multirange"
    INTERVAL = "interval"
    JSON = "json"
    JSONB = "jsonb"
    REGCLASS = "regclass"
    TEXT = "text"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TIMESTAMP_WITH_TIMEZONE = "timestamptz"
    UUID = "uuid"
    VARCHAR = "varchar"
    UNCONSTRAINED_NUMERIC = "numeric"

    @property
    def sql_type(self) -> str:
        return self.value

    @classmethod
    def from_sql_type(cls, name: str) -> Optional["Primitive"]:
        """Look up a primitive by physical type name, None if unknown."""
        for member in cls:
            if member.value == name:
                return member
        return None


@dataclass(frozen=True)
class ValueClass:
    """A caller-declared external value type, e.g. ``com.acme.UserId``."""

    name: str
    parse_function: Optional[str] = None

    @property
    def package_name(self) -> str:
        return self.name.rpartition(".")[0]

    @property
    def class_name(self) -> str:
        return self.name.rpartition(".")[2]


@dataclass(frozen=True)
class ArrayType:
    element_type: "ColumnType"

    @property
    def sql_type(self) -> str:
        return f"{self.element_type.sql_type}[]"

    @property
    def primitive_element_type(self) -> Optional[Primitive]:
        """Innermost element type if it is primitive, through nested arrays."""
        element = self.element_type
        if isinstance(element, Primitive):
            return element
        if isinstance(element, ArrayType):
            return element.primitive_element_type
        return None


@dataclass(frozen=True)
class EnumType:
    name: ObjectName

    @property
    def sql_type(self) -> str:
        return f"{self.name.schema.schema_name}.{self.name.name}"


@dataclass(frozen=True)
class CompositeType:
    name: ObjectName

    @property
    def sql_type(self) -> str:
        return f"{self.name.schema.schema_name}.{self.name.name}"


@dataclass(frozen=True)
class NumericType:
    """``numeric(precision, scale)``; the unconstrained form is a primitive."""

    precision: int
    scale: int

    @property
    def sql_type(self) -> str:
        return f"numeric({self.precision},{self.scale})"


@dataclass(frozen=True)
class PgVectorType:
    """The pgvector extension type, installed into ``schema``."""

    VECTOR_NAME = "vector"

    schema: str

    @property
    def sql_type(self) -> str:
        return f"{self.schema}.{self.VECTOR_NAME}"


@dataclass(frozen=True)
class DomainType:
    name: ObjectName
    original_type: "ColumnType"

    @property
    def sql_type(self) -> str:
        return f"{self.name.schema.schema_name}.{self.name.name}"


@dataclass(frozen=True)
class ReferenceType:
    """A column retyped to an external value class by a type overwrite.

    SQL literals are still rendered from ``original_type``.
    """

    value_class: ValueClass
    original_type: "ColumnType"

    @property
    def sql_type(self) -> str:
        return self.original_type.sql_type


ColumnType = Union[
    Primitive,
    ArrayType,
    EnumType,
    CompositeType,
    NumericType,
    PgVectorType,
    DomainType,
    ReferenceType,
]


def iter_nested_types(column_type: ColumnType) -> Iterator[ColumnType]:
    """Yield ``column_type`` and every type wrapped inside it, outermost first."""
    yield column_type
    if isinstance(column_type, ArrayType):
        yield from iter_nested_types(column_type.element_type)
    elif isinstance(column_type, (DomainType, ReferenceType)):
        yield from iter_nested_types(column_type.original_type)


def unwrap_domain(column_type: ColumnType) -> ColumnType:
    """Return the original type of a domain, any other type unchanged."""
    if isinstance(column_type, DomainType):
        return column_type.original_type
    return column_type


def collect_type_names(column_types: Iterable[ColumnType], kind: type) -> set[ObjectName]:
    """Names of every ``kind`` (EnumType or CompositeType) nested in ``column_types``."""
    return {
        nested.name
        for column_type in column_types
        for nested in iter_nested_types(column_type)
        if isinstance(nested, kind)
    }
