"""Base classes and shared interfaces."""

from .connection import BaseConnection
from .extractor import BaseExtractor
from .models import (
    Cardinality,
    Column,
    CompositeDefinition,
    EnumDefinition,
    EnumMapping,
    ForeignKey,
    KeyPair,
    MultiKey,
    PrimaryKey,
    RawStatement,
    SchemaModel,
    SingleKey,
    Statement,
    Table,
    TypeMapping,
    TypeOverwrite,
)
from .names import ColumnRef, DbName, ObjectName, SchemaName, StatementName
from .types import (
    ArrayType,
    ColumnType,
    CompositeType,
    DomainType,
    EnumType,
    NumericType,
    PgVectorType,
    Primitive,
    ReferenceType,
    ValueClass,
)

__all__ = [
    "BaseConnection",
    "BaseExtractor",
    "DbName",
    "SchemaName",
    "ObjectName",
    "ColumnRef",
    "StatementName",
    "Primitive",
    "ArrayType",
    "EnumType",
    "CompositeType",
    "NumericType",
    "PgVectorType",
    "DomainType",
    "ReferenceType",
    "ColumnType",
    "ValueClass",
    "Column",
    "PrimaryKey",
    "KeyPair",
    "ForeignKey",
    "SingleKey",
    "MultiKey",
    "Table",
    "EnumDefinition",
    "CompositeDefinition",
    "Cardinality",
    "RawStatement",
    "Statement",
    "TypeMapping",
    "EnumMapping",
    "TypeOverwrite",
    "SchemaModel",
]
