"""Tests for configuration module."""

from pathlib import Path

import pytest
from schema_resolver.base.names import DbName, ObjectName
from schema_resolver.config import (
    ConnectionConfig,
    DbConfig,
    ResolverConfig,
    load_config,
)
from schema_resolver.exceptions import ConfigurationError
from schema_resolver.filters import Multi, Objects, Schemas

CONFIG_YAML = """
spec_file: build/spec.yaml
databases:
  - name: base
    connection:
      host: localhost
      database: app
      username: postgres
      password: secret
    include_schemas: [public]
    include_tables: [billing.invoices]
    statement_scripts: [sql]
    type_mappings:
      - sql_type: public.email
        value_class: com.acme.Email
    enum_mappings:
      - sql_type: public.mood
        enum_class: com.acme.Mood
        mappings: {sad: SAD}
    type_overwrites:
      - sql_column: public.users.id
        value_class: com.acme.UserId
        parse_function: com.acme.parseUserId
"""


def connection() -> ConnectionConfig:
    return ConnectionConfig(host="localhost", database="app", username="postgres")


class TestConnectionConfig:
    """Tests for ConnectionConfig class."""

    def test_default_port(self):
        """Should default the port when a host is given."""
        assert connection().port == 5432

    def test_validate(self):
        """Complete config should validate."""
        connection().validate()

    def test_validate_missing_host(self):
        """Config without host should fail."""
        with pytest.raises(ConfigurationError, match="Host is required"):
            ConnectionConfig(database="app", username="postgres").validate()

    def test_validate_missing_username(self):
        """Config without username should fail."""
        with pytest.raises(ConfigurationError, match="Username is required"):
            ConnectionConfig(host="localhost", database="app").validate()


class TestDbConfig:
    """Tests for DbConfig class."""

    def test_empty_name(self):
        """Blank DB names should fail."""
        with pytest.raises(ConfigurationError, match="empty DB name"):
            DbConfig(name=" ")

    def test_dotted_name(self):
        """DB names containing a dot should fail."""
        with pytest.raises(ConfigurationError, match="illegal DB name 'main.db'"):
            DbConfig(name="main.db", include_schemas=["public"])

    def test_from_dict_dotted_name(self):
        """Dotted DB names from YAML should fail before any other parsing."""
        with pytest.raises(ConfigurationError, match="illegal DB name"):
            DbConfig.from_dict({"name": "main.db", "include_schemas": ["public"]})

    def test_table_filter_schemas(self):
        """Schemas only should build a Schemas filter."""
        config = DbConfig(name="base", include_schemas=["public"])
        assert isinstance(config.table_filter(), Schemas)

    def test_table_filter_tables(self):
        """Tables only should build an Objects filter."""
        config = DbConfig(name="base", include_tables=["public.users"])
        table_filter = config.table_filter()
        assert isinstance(table_filter, Objects)
        assert table_filter.matches(ObjectName(schema=DbName("base").to_schema("public"), name="users"))

    def test_table_filter_empty(self):
        """No schemas and no tables should fail."""
        with pytest.raises(ConfigurationError):
            DbConfig(name="base").table_filter()

    def test_table_filter_bad_table_name(self):
        """Table names must be schema qualified."""
        with pytest.raises(ConfigurationError, match="illegal table name"):
            DbConfig(name="base", include_tables=["users"]).table_filter()

    def test_validate_requires_connection(self):
        """Config without a connection should fail validation."""
        with pytest.raises(ConfigurationError, match="no connection"):
            DbConfig(name="base", include_schemas=["public"]).validate()

    def test_from_dict_dedups_mappings(self):
        """The first mapping per SQL type should win."""
        config = DbConfig.from_dict({
            "name": "base",
            "include_schemas": ["public"],
            "type_mappings": [
                {"sql_type": "public.email", "value_class": "com.acme.Email"},
                {"sql_type": "public.email", "value_class": "com.acme.Other"},
            ],
        })
        assert [m.value_class.name for m in config.type_mappings] == ["com.acme.Email"]

    def test_from_dict_rejects_unqualified_class(self):
        """Value classes must include a package."""
        with pytest.raises(ConfigurationError, match="illegal class name"):
            DbConfig.from_dict({
                "name": "base",
                "type_overwrites": [{"sql_column": "public.users.id", "value_class": "UserId"}],
            })

    def test_from_dict_rejects_bad_column(self):
        """Overwritten columns must be <schema>.<table>.<name>."""
        with pytest.raises(ConfigurationError, match="illegal column name"):
            DbConfig.from_dict({
                "name": "base",
                "type_overwrites": [{"sql_column": "users.id", "value_class": "com.acme.UserId"}],
            })


class TestResolverConfig:
    """Tests for ResolverConfig class."""

    def test_no_databases(self):
        """Config without databases should fail."""
        with pytest.raises(ConfigurationError, match="no DB config"):
            ResolverConfig().validate()

    def test_duplicate_names(self):
        """Database names must be unique."""
        dbs = [
            DbConfig(name="base", connection=connection(), include_schemas=["public"]),
            DbConfig(name="base", connection=connection(), include_schemas=["public"]),
        ]
        with pytest.raises(ConfigurationError, match="duplicate DB config names"):
            ResolverConfig(databases=dbs).validate()

    def test_override_connections(self):
        """Command line values should replace configured connection settings."""
        config = ResolverConfig(databases=[DbConfig(name="base", connection=connection())])
        config.override_connections(host="db.internal", port=6543, password="pw")
        conn = config.databases[0].connection
        assert (conn.host, conn.port, conn.username, conn.password) == ("db.internal", 6543, "postgres", "pw")

    def test_override_creates_connection(self):
        """Overrides should apply even when no connection was configured."""
        config = ResolverConfig(databases=[DbConfig(name="base")])
        config.override_connections(host="db.internal")
        assert config.databases[0].connection.host == "db.internal"
        assert config.databases[0].connection.port == 5432


class TestLoadConfig:
    """Tests for load_config."""

    def test_load(self, tmp_path):
        """Should parse the YAML file and resolve relative paths."""
        path = tmp_path / "resolver.yaml"
        path.write_text(CONFIG_YAML)
        config = load_config(path)
        config.validate()

        assert config.spec_file == tmp_path / "build" / "spec.yaml"
        [db] = config.databases
        assert db.name == "base"
        assert db.connection.port == 5432
        assert db.statement_scripts == [tmp_path / "sql"]
        assert isinstance(db.table_filter(), Multi)
        assert db.type_overwrites[0].value_class.parse_function == "com.acme.parseUserId"
        assert str(db.type_overwrites[0].sql_column) == "base.public.users.id"
        assert db.enum_mappings[0].mappings == {"sad": "SAD"}

    def test_missing_file(self, tmp_path):
        """Should report a missing file as a configuration error."""
        with pytest.raises(ConfigurationError, match="cannot read config file"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Should report YAML syntax errors as configuration errors."""
        path = tmp_path / "resolver.yaml"
        path.write_text("databases: [unclosed\n")
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        """Should reject documents that are not mappings."""
        path = tmp_path / "resolver.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config(path)

    def test_non_numeric_port(self, tmp_path):
        """Should report a port that is not a number as a configuration error."""
        path = tmp_path / "resolver.yaml"
        path.write_text(
            "databases:\n  - name: base\n    connection:\n      host: localhost\n      port: fivefourthreetwo\n"
        )
        with pytest.raises(ConfigurationError, match="invalid config file"):
            load_config(path)

    def test_missing_required_key(self, tmp_path):
        """Should report mapping entries without required keys."""
        path = tmp_path / "resolver.yaml"
        path.write_text("databases:\n  - name: base\n    type_mappings:\n      - value_class: com.acme.X\n")
        with pytest.raises(ConfigurationError, match="invalid config file"):
            load_config(path)


def test_paths_are_paths():
    """Statement scripts should be converted to Path objects."""
    config = DbConfig(name="base", statement_scripts=["a.sql"])
    assert config.statement_scripts == [Path("a.sql")]
