"""Read-only catalog queries against information_schema and pg_catalog."""

import logging
from typing import Any

from ...base.connection import BaseConnection
from ...base.models import Column, ForeignKey, KeyPair, PrimaryKey
from ...base.names import DbName, ObjectName
from ...base.types import ColumnType
from ...exceptions import CatalogError
from ...filters import SqlObjectFilter, quote_literal
from .decoder import decode_column_row_type, decode_column_type

logger = logging.getLogger(__name__)


def _strip_statement(query: str) -> str:
    return query.strip().rstrip(";").rstrip()


class CatalogReader:
    """Issues catalog queries restricted by an object filter.

    Every ``get_*`` method short-circuits to an empty result for an empty
    filter without touching the connection. Rows are grouped by their owning
    object in catalog order.
    """

    def __init__(self, connection: BaseConnection, db_name: DbName):
        self.connection = connection
        self.db_name = db_name

    def _object_name(self, schema: str, name: str) -> ObjectName:
        return ObjectName(schema=self.db_name.to_schema(schema), name=name)

    def _parse_column(self, row: dict[str, Any]) -> tuple[ObjectName, Column]:
        table_name = self._object_name(row["table_schema"], row["table_name"])
        column = Column(
            name=row["column_name"],
            type=decode_column_row_type(row, self.db_name),
            is_nullable=bool(row["is_nullable"]),
            default=row.get("column_default"),
            ordinal_position=row["pos"],
        )
        return table_name, column

    def _group_columns(self, rows: list[dict[str, Any]]) -> dict[ObjectName, list[Column]]:
        columns: dict[ObjectName, list[Column]] = {}
        for row in rows:
            table_name, column = self._parse_column(row)
            columns.setdefault(table_name, []).append(column)
        return columns

    def get_columns(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[Column]]:
        """Get table columns, grouped by table."""
        if object_filter.is_empty():
            return {}
        query = f"""
            SELECT
                c.ordinal_position AS pos,
                c.table_schema AS table_schema,
                c.table_name AS table_name,
                c.column_name AS column_name,
                c.domain_schema AS domain_schema,
                c.domain_name AS domain_name,
                c.is_nullable = 'YES' AS is_nullable,
                c.udt_schema AS column_type_schema,
                c.udt_name AS column_type_name,
                c.numeric_precision AS numeric_precision,
                c.numeric_scale AS numeric_scale,
                c.column_default AS column_default,
                ty.typcategory AS column_type_category,
                tye.typcategory AS column_element_type_category
            FROM information_schema.columns AS c
            JOIN pg_catalog.pg_namespace AS na
                ON c.udt_schema = na.nspname
            JOIN pg_catalog.pg_type AS ty
                ON ty.typnamespace = na.oid
                    AND ty.typname = c.udt_name
            LEFT JOIN pg_catalog.pg_type AS tye
                ON ty.typelem != 0
                    AND tye.oid = ty.typelem
            WHERE {object_filter.to_filter_string(schema_field="c.table_schema", table_field="c.table_name")}
        """
        rows = self.connection.execute_dict(query)
        logger.debug(f"Fetched {len(rows)} column rows")
        return self._group_columns(rows)

    def get_composite_type_fields(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[Column]]:
        """Get composite type fields, grouped by type."""
        if object_filter.is_empty():
            return {}
        query = f"""
            SELECT
                a.attnum AS pos,
                clsn.nspname AS table_schema,
                cls.relname AS table_name,
                a.attname AS column_name,
                CASE WHEN at.typtype = 'd' THEN atn.nspname END AS domain_schema,
                CASE WHEN at.typtype = 'd' THEN at.typname END AS domain_name,
                TRUE AS is_nullable,
                COALESCE(nbt.nspname, atn.nspname) AS column_type_schema,
                COALESCE(bt.typname, at.typname) AS column_type_name,
                information_schema._pg_numeric_precision(
                    information_schema._pg_truetypid(a.*, at.*),
                    information_schema._pg_truetypmod(a.*, at.*)
                ) AS numeric_precision,
                information_schema._pg_numeric_scale(
                    information_schema._pg_truetypid(a.*, at.*),
                    information_schema._pg_truetypmod(a.*, at.*)
                ) AS numeric_scale,
                NULL AS column_default,
                COALESCE(bt.typcategory, at.typcategory) AS column_type_category,
                ate.typcategory AS column_element_type_category
            FROM pg_catalog.pg_type AS t
            JOIN pg_catalog.pg_class AS cls
                ON cls.oid = t.typrelid
            JOIN pg_catalog.pg_namespace AS clsn
                ON cls.relnamespace = clsn.oid
            JOIN pg_catalog.pg_attribute AS a
                ON a.attrelid = cls.oid AND a.attnum > 0 AND NOT a.attisdropped
            JOIN pg_catalog.pg_type AS at
                ON at.oid = a.atttypid
            JOIN pg_catalog.pg_namespace AS atn
                ON atn.oid = at.typnamespace
            LEFT JOIN (pg_catalog.pg_type AS bt JOIN pg_catalog.pg_namespace AS nbt ON bt.typnamespace = nbt.oid)
                ON at.typtype = 'd' AND at.typbasetype = bt.oid
            LEFT JOIN pg_catalog.pg_type AS ate
                ON COALESCE(bt.typelem, at.typelem) != 0
                    AND ate.oid = COALESCE(bt.typelem, at.typelem)
            WHERE cls.relkind = 'c'
                AND {object_filter.to_filter_string(schema_field="clsn.nspname", table_field="cls.relname")}
        """
        rows = self.connection.execute_dict(query)
        logger.debug(f"Fetched {len(rows)} composite field rows")
        return self._group_columns(rows)

    def get_primary_keys(self, object_filter: SqlObjectFilter) -> dict[ObjectName, PrimaryKey]:
        """Get the primary key of each table; more than one is a catalog error."""
        if object_filter.is_empty():
            return {}
        query = f"""
            SELECT
                tc.table_schema,
                tc.table_name,
                kcu.column_name,
                kcu.constraint_name,
                kcu.ordinal_position
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                    AND tc.table_schema = kcu.table_schema
                    AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
                AND {object_filter.to_filter_string(schema_field="tc.table_schema", table_field="tc.table_name")}
        """
        grouped: dict[ObjectName, list[dict[str, Any]]] = {}
        for row in self.connection.execute_dict(query):
            table_name = self._object_name(row["table_schema"], row["table_name"])
            grouped.setdefault(table_name, []).append(row)

        primary_keys = {}
        for table_name, rows in grouped.items():
            key_names = sorted({row["constraint_name"] for row in rows})
            if len(key_names) != 1:
                raise CatalogError(f"multiple primary keys for table {table_name}: {key_names}")
            primary_keys[table_name] = PrimaryKey(
                name=key_names[0],
                columns=tuple(row["column_name"] for row in sorted(rows, key=lambda r: r["ordinal_position"])),
            )
        return primary_keys

    def get_foreign_keys(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[ForeignKey]]:
        """Get foreign keys with their column pairs in key order, grouped by source table."""
        if object_filter.is_empty():
            return {}
        query = f"""
            SELECT
                con.conname AS constraint_name,
                sn.nspname AS source_schema,
                sc.relname AS source_table,
                sa.attname AS source_column,
                tn.nspname AS target_schema,
                tc.relname AS target_table,
                ta.attname AS target_column,
                k.idx AS key_position
            FROM pg_catalog.pg_constraint AS con
            JOIN pg_catalog.pg_class AS sc
                ON sc.oid = con.conrelid
            JOIN pg_catalog.pg_namespace AS sn
                ON sn.oid = sc.relnamespace
            JOIN pg_catalog.pg_class AS tc
                ON tc.oid = con.confrelid
            JOIN pg_catalog.pg_namespace AS tn
                ON tn.oid = tc.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(source_attnum, target_attnum, idx)
            JOIN pg_catalog.pg_attribute AS sa
                ON sa.attrelid = con.conrelid AND sa.attnum = k.source_attnum
            JOIN pg_catalog.pg_attribute AS ta
                ON ta.attrelid = con.confrelid AND ta.attnum = k.target_attnum
            WHERE con.contype = 'f'
                AND {object_filter.to_filter_string(schema_field="sn.nspname", table_field="sc.relname")}
        """
        grouped: dict[tuple[ObjectName, str, ObjectName], list[tuple[int, KeyPair]]] = {}
        for row in self.connection.execute_dict(query):
            source_table = self._object_name(row["source_schema"], row["source_table"])
            target_table = self._object_name(row["target_schema"], row["target_table"])
            pair = KeyPair(source_column=row["source_column"], target_column=row["target_column"])
            key = (source_table, row["constraint_name"], target_table)
            grouped.setdefault(key, []).append((row["key_position"], pair))

        foreign_keys: dict[ObjectName, list[ForeignKey]] = {}
        for (source_table, constraint_name, target_table), pairs in grouped.items():
            references = []
            for _, pair in sorted(pairs, key=lambda p: p[0]):
                if pair not in references:
                    references.append(pair)
            foreign_keys.setdefault(source_table, []).append(
                ForeignKey(name=constraint_name, target_table=target_table, references=tuple(references))
            )
        return foreign_keys

    def _get_constraint_names(self, object_filter: SqlObjectFilter, constraint_type: str) -> dict[ObjectName, list[str]]:
        if object_filter.is_empty():
            return {}
        not_null_clause = "AND tc.constraint_name NOT LIKE '%_not_null'" if constraint_type == "CHECK" else ""
        query = f"""
            SELECT
                tc.constraint_name AS constraint_name,
                tc.table_schema AS table_schema,
                tc.table_name AS table_name
            FROM information_schema.table_constraints AS tc
            WHERE tc.constraint_type = {quote_literal(constraint_type)}
                {not_null_clause}
                AND {object_filter.to_filter_string(schema_field="tc.table_schema", table_field="tc.table_name")}
        """
        names: dict[ObjectName, set[str]] = {}
        for row in self.connection.execute_dict(query):
            table_name = self._object_name(row["table_schema"], row["table_name"])
            names.setdefault(table_name, set()).add(row["constraint_name"])
        return {table_name: sorted(values) for table_name, values in names.items()}

    def get_unique_constraints(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[str]]:
        """Get sorted unique constraint names per table."""
        return self._get_constraint_names(object_filter, "UNIQUE")

    def get_check_constraints(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[str]]:
        """Get sorted check constraint names per table, without implicit NOT NULL checks."""
        return self._get_constraint_names(object_filter, "CHECK")

    def get_enums(self, object_filter: SqlObjectFilter) -> dict[ObjectName, list[str]]:
        """Get enum labels in catalog sort order, grouped by enum type."""
        if object_filter.is_empty():
            return {}
        query = f"""
            SELECT
                na.nspname AS enum_schema,
                ty.typname AS enum_name,
                en.enumsortorder AS enum_value_order,
                en.enumlabel AS enum_value_label
            FROM pg_catalog.pg_type AS ty
            JOIN pg_catalog.pg_namespace AS na
                ON ty.typnamespace = na.oid
            JOIN pg_catalog.pg_enum AS en
                ON en.enumtypid = ty.oid
            WHERE ty.typcategory = 'E'
                AND {object_filter.to_filter_string(schema_field="na.nspname", table_field="ty.typname")}
        """
        grouped: dict[ObjectName, list[tuple[float, str]]] = {}
        for row in self.connection.execute_dict(query):
            name = self._object_name(row["enum_schema"], row["enum_name"])
            grouped.setdefault(name, []).append((row["enum_value_order"], row["enum_value_label"]))
        return {name: [label for _, label in sorted(fields)] for name, fields in grouped.items()}

    def prepare_statement(self, name: str, query: str) -> None:
        self.connection.execute_command(f"PREPARE {name} AS\n{_strip_statement(query)}")

    def deallocate_statement(self, name: str) -> None:
        self.connection.execute_command(f"DEALLOCATE {name}")

    def get_parameter_types(self, name: str) -> list[ColumnType]:
        """Read back the parameter types PostgreSQL inferred for a prepared statement."""
        query = """
            SELECT
                p.idx AS pos,
                n.nspname AS column_type_schema,
                t.typname AS column_type_name,
                t.typcategory AS column_type_category,
                te.typcategory AS column_element_type_category,
                NULL AS numeric_precision,
                NULL AS numeric_scale
            FROM pg_catalog.pg_prepared_statements AS ps
            CROSS JOIN LATERAL unnest(ps.parameter_types) WITH ORDINALITY AS p(type_oid, idx)
            JOIN pg_catalog.pg_type AS t
                ON t.oid = p.type_oid::oid
            JOIN pg_catalog.pg_namespace AS n
                ON n.oid = t.typnamespace
            LEFT JOIN pg_catalog.pg_type AS te
                ON t.typelem != 0
                    AND te.oid = t.typelem
            WHERE ps.name = %s
            ORDER BY p.idx
        """
        rows = self.connection.execute_dict(query, (name,))
        return [decode_column_type(row, self.db_name) for row in sorted(rows, key=lambda r: r["pos"])]

    def create_temp_table(self, name: str, query: str) -> None:
        self.connection.execute_command(f"CREATE TEMP TABLE {name} AS\n{_strip_statement(query)}")

    def drop_temp_table(self, name: str) -> None:
        self.connection.execute_command(f"DROP TABLE IF EXISTS {name}")
