"""Configuration dataclasses for the schema resolver."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .base.models import EnumMapping, TypeMapping, TypeOverwrite
from .base.names import ColumnRef, DbName, ObjectName
from .base.types import ValueClass
from .exceptions import ConfigurationError
from .filters import FilterBuilder, SqlObjectFilter

DEFAULT_PORT = 5432
DEFAULT_SPEC_FILE = "schema-spec.yaml"


def _split_dotted(value: str, size: int, what: str, expected: str) -> list[str]:
    parts = str(value).split(".")
    if len(parts) != size or any(not p.strip() for p in parts):
        raise ConfigurationError(f"illegal {what} '{value}', expected format {expected}")
    return parts


def _value_class(name: str, parse_function: Optional[str] = None) -> ValueClass:
    parts = str(name).split(".")
    if len(parts) < 2 or any(not p.strip() for p in parts):
        raise ConfigurationError(f"illegal class name '{name}', provide full class name with package")
    return ValueClass(name=name, parse_function=parse_function or None)


def _check_db_name(name: str) -> None:
    if not name or not name.strip():
        raise ConfigurationError("empty DB name")
    # spec files write names as <db>.<schema>.<name>
    if "." in name:
        raise ConfigurationError(f"illegal DB name '{name}', must not contain '.'")


def _unique_by(items: list, key) -> list:
    seen = {}
    for item in items:
        seen.setdefault(key(item), item)
    return list(seen.values())


@dataclass
class ConnectionConfig:
    """Connection parameters for one PostgreSQL database."""

    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        if self.port is None and self.host:
            self.port = DEFAULT_PORT
        if self.port is not None:
            self.port = int(self.port)

    def validate(self) -> None:
        """Validate the connection parameters are complete."""
        if not self.host:
            raise ConfigurationError("Host is required")
        if not self.database:
            raise ConfigurationError("Database is required")
        if not self.username:
            raise ConfigurationError("Username is required")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionConfig":
        return cls(
            host=data.get("host"),
            port=data.get("port"),
            database=data.get("database"),
            username=data.get("username"),
            password=data.get("password"),
        )


@dataclass
class DbConfig:
    """What to resolve from one database."""

    name: str
    connection: Optional[ConnectionConfig] = None
    include_schemas: list[str] = field(default_factory=list)
    include_tables: list[str] = field(default_factory=list)
    statement_scripts: list[Path] = field(default_factory=list)
    type_mappings: list[TypeMapping] = field(default_factory=list)
    enum_mappings: list[EnumMapping] = field(default_factory=list)
    type_overwrites: list[TypeOverwrite] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_db_name(self.name)
        self.statement_scripts = [Path(p) for p in self.statement_scripts]
        self.type_mappings = _unique_by(self.type_mappings, lambda m: m.sql_type)
        self.enum_mappings = _unique_by(self.enum_mappings, lambda m: m.sql_type)
        self.type_overwrites = _unique_by(self.type_overwrites, lambda o: o.sql_column)

    @property
    def db_name(self) -> DbName:
        return DbName(self.name)

    def table_filter(self) -> SqlObjectFilter:
        """Build the starting filter from the included schemas and tables."""
        builder = FilterBuilder(self.db_name)
        builder.add_schemas(*self.include_schemas)
        for table in self.include_tables:
            schema, name = _split_dotted(table, 2, "table name", "<schema>.<table>")
            builder.add_table(schema, name)
        return builder.build()

    def validate(self) -> None:
        if self.connection is None:
            raise ConfigurationError(f"no connection defined for DB config '{self.name}'")
        self.connection.validate()
        self.table_filter()

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Optional[Path] = None) -> "DbConfig":
        """Build from a parsed YAML mapping; script paths are relative to ``base_dir``."""
        name = str(data.get("name") or "")
        _check_db_name(name)
        db_name = DbName(name)

        def object_name(value: str) -> ObjectName:
            schema, obj = _split_dotted(value, 2, "sql type", "<schema>.<name>")
            return ObjectName(schema=db_name.to_schema(schema), name=obj)

        def column_ref(value: str) -> ColumnRef:
            schema, table, column = _split_dotted(value, 3, "column name", "<schema>.<table>.<name>")
            return ColumnRef(table=ObjectName(schema=db_name.to_schema(schema), name=table), name=column)

        scripts = [Path(p) for p in data.get("statement_scripts") or []]
        if base_dir is not None:
            scripts = [p if p.is_absolute() else base_dir / p for p in scripts]

        connection = data.get("connection")
        return cls(
            name=name,
            connection=ConnectionConfig.from_dict(connection) if connection else None,
            include_schemas=list(data.get("include_schemas") or []),
            include_tables=list(data.get("include_tables") or []),
            statement_scripts=scripts,
            type_mappings=[
                TypeMapping(
                    sql_type=object_name(m["sql_type"]),
                    value_class=_value_class(m["value_class"], m.get("parse_function")),
                )
                for m in data.get("type_mappings") or []
            ],
            enum_mappings=[
                EnumMapping(
                    sql_type=object_name(m["sql_type"]),
                    enum_class=_value_class(m["enum_class"]).name,
                    mappings=dict(m.get("mappings") or {}),
                )
                for m in data.get("enum_mappings") or []
            ],
            type_overwrites=[
                TypeOverwrite(
                    sql_column=column_ref(o["sql_column"]),
                    value_class=_value_class(o["value_class"], o.get("parse_function")),
                )
                for o in data.get("type_overwrites") or []
            ],
        )


@dataclass
class ResolverConfig:
    """Configuration for a whole resolution run."""

    databases: list[DbConfig] = field(default_factory=list)
    spec_file: Path = field(default_factory=lambda: Path(DEFAULT_SPEC_FILE))

    def __post_init__(self) -> None:
        if isinstance(self.spec_file, str):
            self.spec_file = Path(self.spec_file)

    def validate(self) -> None:
        """Validate the configuration is complete and consistent."""
        if not self.databases:
            raise ConfigurationError("no DB config defined")
        names = [db.name for db in self.databases]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"duplicate DB config names: {duplicates}")
        for db in self.databases:
            db.validate()

    def override_connections(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        """Apply connection settings given on the command line or environment."""
        for db in self.databases:
            if db.connection is None:
                db.connection = ConnectionConfig()
            if host:
                db.connection.host = host
            if port:
                db.connection.port = int(port)
            if username:
                db.connection.username = username
            if password:
                db.connection.password = password
            if db.connection.port is None and db.connection.host:
                db.connection.port = DEFAULT_PORT

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Optional[Path] = None) -> "ResolverConfig":
        spec_file = Path(data.get("spec_file") or DEFAULT_SPEC_FILE)
        if base_dir is not None and not spec_file.is_absolute():
            spec_file = base_dir / spec_file
        return cls(
            databases=[DbConfig.from_dict(db, base_dir) for db in data.get("databases") or []],
            spec_file=spec_file,
        )


def load_config(path: Path) -> ResolverConfig:
    """Load a resolver configuration from a YAML file.

    Relative paths inside the file resolve against the file's directory.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read config file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in config file '{path}': {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file '{path}' must contain a mapping")
    try:
        return ResolverConfig.from_dict(data, base_dir=path.parent)
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise ConfigurationError(f"invalid config file '{path}': {e}") from e
