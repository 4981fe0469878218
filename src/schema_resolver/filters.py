"""Object filters that restrict catalog queries to a set of schemas or objects."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .base.names import DbName, ObjectName, SchemaName
from .exceptions import ConfigurationError


def quote_literal(value: str) -> str:
    """Single-quote a catalog identifier for use inside a filter fragment."""
    if "'" in value:
        raise ConfigurationError(f"object name must not contain single quotes: {value!r}")
    return f"'{value}'"


class SqlObjectFilter(ABC):
    """Predicate over (schema, name) pairs, rendered as a SQL ``WHERE`` fragment.

    An empty filter never renders; callers check :meth:`is_empty` first and
    skip the query entirely.
    """

    @abstractmethod
    def to_filter_string(self, schema_field: str, table_field: str) -> str:
        pass

    @abstractmethod
    def is_empty(self) -> bool:
        pass

    @abstractmethod
    def matches(self, name: ObjectName) -> bool:
        """Check if an object passes the filter, the in-memory twin of the SQL fragment."""
        pass

    def is_not_empty(self) -> bool:
        return not self.is_empty()

    def _require_not_empty(self) -> None:
        if self.is_empty():
            raise ConfigurationError("cannot create sql filter for empty object filter")


@dataclass(frozen=True)
class Schemas(SqlObjectFilter):
    """All objects in a set of schemas."""

    schema_names: frozenset[SchemaName] = field(default_factory=frozenset)

    def to_filter_string(self, schema_field: str, table_field: str) -> str:
        self._require_not_empty()
        schemas = ",".join(quote_literal(s.schema_name) for s in sorted(self.schema_names))
        return f"{schema_field} IN ({schemas})"

    def is_empty(self) -> bool:
        return not self.schema_names

    def matches(self, name: ObjectName) -> bool:
        return name.schema in self.schema_names


@dataclass(frozen=True)
class Objects(SqlObjectFilter):
    """An explicit set of objects."""

    object_names: frozenset[ObjectName] = field(default_factory=frozenset)

    def to_filter_string(self, schema_field: str, table_field: str) -> str:
        self._require_not_empty()
        objects = ",".join(
            f"({quote_literal(o.schema.schema_name)},{quote_literal(o.name)})"
            for o in sorted(self.object_names)
        )
        return f"({schema_field}, {table_field}) IN ({objects})"

    def is_empty(self) -> bool:
        return not self.object_names

    def matches(self, name: ObjectName) -> bool:
        return name in self.object_names


@dataclass(frozen=True)
class TempTables(SqlObjectFilter):
    """Session temp tables, matched by name only (their schema is ``pg_temp_N``)."""

    names: frozenset[str] = field(default_factory=frozenset)

    def to_filter_string(self, schema_field: str, table_field: str) -> str:
        self._require_not_empty()
        names = ",".join(quote_literal(n) for n in sorted(self.names))
        return f"{table_field} IN ({names})"

    def is_empty(self) -> bool:
        return not self.names

    def matches(self, name: ObjectName) -> bool:
        return name.name in self.names


@dataclass(frozen=True)
class Multi(SqlObjectFilter):
    """Disjunction of sub-filters; empty sub-filters are ignored."""

    filters: tuple[SqlObjectFilter, ...] = ()

    def to_filter_string(self, schema_field: str, table_field: str) -> str:
        parts = [
            f.to_filter_string(schema_field=schema_field, table_field=table_field)
            for f in self.filters
            if f.is_not_empty()
        ]
        if not parts:
            raise ConfigurationError("cannot create sql filter for empty object filter")
        if len(parts) == 1:
            return parts[0]
        return "(" + " OR ".join(parts) + ")"

    def is_empty(self) -> bool:
        return all(f.is_empty() for f in self.filters)

    def matches(self, name: ObjectName) -> bool:
        return any(f.matches(name) for f in self.filters if f.is_not_empty())


class FilterBuilder:
    """Collects schemas and tables for one database into a single filter."""

    def __init__(self, db_name: DbName):
        self.db_name = db_name
        self._schemas: set[SchemaName] = set()
        self._tables: set[ObjectName] = set()

    def add_schema(self, name: str) -> "FilterBuilder":
        quote_literal(name)
        self._schemas.add(self.db_name.to_schema(name))
        return self

    def add_schemas(self, *names: str) -> "FilterBuilder":
        for name in names:
            self.add_schema(name)
        return self

    def add_table(self, schema: str, table: str) -> "FilterBuilder":
        quote_literal(schema)
        quote_literal(table)
        self._tables.add(ObjectName(schema=self.db_name.to_schema(schema), name=table))
        return self

    def build(self) -> SqlObjectFilter:
        schema_filter = Schemas(frozenset(self._schemas))
        table_filter = Objects(frozenset(self._tables))
        if schema_filter.is_not_empty() and table_filter.is_not_empty():
            return Multi((schema_filter, table_filter))
        if table_filter.is_not_empty():
            return table_filter
        if schema_filter.is_not_empty():
            return schema_filter
        raise ConfigurationError(f"cannot build empty sql filter for database '{self.db_name}'")
