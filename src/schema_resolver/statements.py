"""Parse annotated SQL scripts into raw statements.

A script holds one or more statements, each introduced by a header::

    -- name: getUser :one
    SELECT u.id, u.name AS /*nonnull*/ display_name
    FROM users AS u
    WHERE u.id = /*$user_id*/ 1 OR u.parent_id = /*$user_id*/ 1;

``/*$var*/`` must directly precede a literal (string, number, TRUE/FALSE), so
the script stays executable as plain SQL. ``AS /*nonnull*/ col`` marks a
result column as never null.
"""

import logging
import re
from pathlib import Path
from typing import Iterable

from .base.models import Cardinality, RawStatement
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

STATEMENT_HEADER_REGEX = re.compile(r"--\s*name:\s*")
VARIABLE_REGEX = re.compile(
    r"/\*\s*\$(?P<name>\w+)\s*\*/\s*(?:'[^']*'|[+-]?\d+(?:\.\d+)?|TRUE|FALSE)",
    re.IGNORECASE,
)
NON_NULL_COLUMN_REGEX = re.compile(
    r"\bAS\s*/\*\s*nonnull\s*\*/\s*(?:\"(?P<quoted>[^\"]+)\"|(?P<name>\w+))",
    re.IGNORECASE,
)
STATEMENT_NAME_REGEX = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _parse_cardinality(name: str, options: list[str]) -> Cardinality:
    tokens = {o.strip().upper() for o in options if o.strip()}
    found = [c for c in Cardinality if c.value in tokens]
    if len(found) > 1:
        raise ConfigurationError(f"Multiple cardinality options found in statement '{name}'")
    return found[0] if found else Cardinality.MANY


def _parse_statement(block: str) -> RawStatement:
    header, _, sql = block.partition("\n")
    name, _, options = header.strip().partition(" ")
    if not STATEMENT_NAME_REGEX.match(name):
        raise ConfigurationError(f"invalid statement name '{name}'")
    cardinality = _parse_cardinality(name, options.split(":"))

    unique_variables: list[str] = []
    all_variables: list[str] = []

    def to_positional(match: re.Match) -> str:
        variable = match.group("name")
        all_variables.append(variable)
        if variable not in unique_variables:
            unique_variables.append(variable)
        return f"${unique_variables.index(variable) + 1}"

    prepared_psql = VARIABLE_REGEX.sub(to_positional, sql)

    non_null_columns: set[str] = set()

    def strip_non_null(match: re.Match) -> str:
        # unquoted aliases are folded to lower case by PostgreSQL
        if match.group("quoted") is not None:
            non_null_columns.add(match.group("quoted"))
            return f'AS "{match.group("quoted")}"'
        non_null_columns.add(match.group("name").lower())
        return f"AS {match.group('name')}"

    prepared_sql = NON_NULL_COLUMN_REGEX.sub(strip_non_null, VARIABLE_REGEX.sub("?", sql))

    return RawStatement(
        name=name,
        cardinality=cardinality,
        all_variables=tuple(all_variables),
        unique_variables=tuple(unique_variables),
        non_null_columns=frozenset(non_null_columns),
        sql=sql,
        prepared_sql=prepared_sql,
        prepared_psql=prepared_psql,
    )


def parse_statements(sql_script: str) -> list[RawStatement]:
    """Parse every headed statement of a script; text before the first header is ignored."""
    statements = []
    for chunk in STATEMENT_HEADER_REGEX.split(sql_script)[1:]:
        lines = [line for line in chunk.split("\n") if line.strip() and not line.startswith("--")]
        if len(lines) < 2:
            continue
        statements.append(_parse_statement("\n".join(lines)))
    return statements


def find_script_files(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into the ``*.sql`` files below them, sorted."""
    files = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*.sql") if p.is_file()))
        else:
            files.append(path)
    return files


def parse_statement_files(paths: Iterable[Path]) -> list[RawStatement]:
    """Read and parse statement scripts (files or directories)."""
    statements = []
    for path in find_script_files(paths):
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"cannot read statement script '{path}': {e}") from e
        parsed = parse_statements(text)
        logger.debug(f"Parsed {len(parsed)} statements from {path}")
        statements.extend(parsed)
    return statements
