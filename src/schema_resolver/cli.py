"""Click CLI interface for the schema resolver."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .backends.postgresql import PostgreSQLConnection
from .config import ConnectionConfig, load_config
from .exceptions import (
    CatalogError,
    ConfigurationError,
    ConnectionError,
    SchemaResolverError,
    SpecFileError,
    StatementError,
)
from .resolver import generate_spec
from .serialization import load_spec


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.version_option(version=__version__)
def cli():
    """Schema Resolver - Resolve a PostgreSQL schema into a typed spec file."""
    pass


@cli.command()
@click.option("-c", "--config", "config_path", required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML configuration file")
@click.option("-h", "--host", envvar="DB_HOST", help="Override database server hostname")
@click.option("-P", "--port", type=int, envvar="DB_PORT", help="Override database server port")
@click.option("-u", "--username", envvar="DB_USER", help="Override database username")
@click.option("-p", "--password", envvar="DB_PASSWORD", help="Override database password")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              help="Spec file to write (default: from config)")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def resolve(
    config_path: Path,
    host: str | None,
    port: int | None,
    username: str | None,
    password: str | None,
    output: Path | None,
    verbose: int,
) -> None:
    """Resolve the configured databases and write the spec file."""
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(config_path)
        config.override_connections(host=host, port=port, username=username, password=password)
        if output:
            config.spec_file = output

        click.echo(f"Resolving {len(config.databases)} database(s)...")
        model = generate_spec(config)

        click.echo(f"  Found {len(model.tables)} tables")
        click.echo(f"  Found {len(model.enums)} enums")
        click.echo(f"  Found {len(model.composite_types)} composite types")
        click.echo(f"  Found {len(model.statements)} statements")
        click.echo(f"\nWrote spec file {config.spec_file}")

    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except ConnectionError as e:
        click.echo(f"Connection error: {e}", err=True)
        sys.exit(1)
    except CatalogError as e:
        click.echo(f"Catalog error: {e}", err=True)
        sys.exit(1)
    except StatementError as e:
        click.echo(f"Statement error: {e}", err=True)
        sys.exit(1)
    except SchemaResolverError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("-s", "--spec", "spec_path", required=True,
              type=click.Path(dir_okay=False, path_type=Path),
              help="Spec file written by 'resolve'")
def show(spec_path: Path) -> None:
    """Summarise a spec file without connecting to a database."""
    try:
        model = load_spec(spec_path)
    except SpecFileError as e:
        click.echo(f"Spec file error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Tables ({len(model.tables)}):")
    for table in model.tables:
        pk = f" pk={list(table.primary_key.columns)}" if table.primary_key else ""
        click.echo(f"  - {table.full_name} ({len(table.columns)} columns{pk})")
    click.echo(f"Enums ({len(model.enums)}):")
    for enum in model.enums:
        click.echo(f"  - {enum.name}: {', '.join(enum.fields)}")
    click.echo(f"Composite types ({len(model.composite_types)}):")
    for composite in model.composite_types:
        click.echo(f"  - {composite.name} ({len(composite.columns)} fields)")
    click.echo(f"Domains ({len(model.domains)}):")
    for domain in model.domains:
        click.echo(f"  - {domain.name}: {domain.original_type.sql_type}")
    click.echo(f"Statements ({len(model.statements)}):")
    for statement in model.statements:
        click.echo(f"  - {statement.name} [{statement.cardinality.value}]")


@cli.command("test-connection")
@click.option("-h", "--host", envvar="DB_HOST", help="Database server hostname")
@click.option("-P", "--port", type=int, envvar="DB_PORT", help="Database server port")
@click.option("-d", "--database", envvar="DB_NAME", help="Database name")
@click.option("-u", "--username", envvar="DB_USER", help="Database username")
@click.option("-p", "--password", envvar="DB_PASSWORD", help="Database password")
def test_connection(
    host: str | None,
    port: int | None,
    database: str | None,
    username: str | None,
    password: str | None,
) -> None:
    """Test database connection."""
    try:
        config = ConnectionConfig(
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
        )
        config.validate()

        click.echo("Connecting to PostgreSQL database...")
        with PostgreSQLConnection(config) as conn:
            version = conn.get_version()
            click.echo("Connection successful!")
            click.echo(f"\nServer version:\n{version}")

    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except ConnectionError as e:
        click.echo(f"Connection failed: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
