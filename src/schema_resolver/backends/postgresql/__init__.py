"""PostgreSQL backend."""

from .catalog import CatalogReader
from .connection import PostgreSQLConnection
from .extractors import (
    CompositeTypeExtractor,
    EnumExtractor,
    StatementExtractor,
    TableExtractor,
)

__all__ = [
    "CatalogReader",
    "PostgreSQLConnection",
    "TableExtractor",
    "EnumExtractor",
    "CompositeTypeExtractor",
    "StatementExtractor",
]
