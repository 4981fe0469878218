"""Decode catalog type descriptors into column types."""

from typing import Any, Optional

from ...base.names import DbName, ObjectName
from ...base.types import (
    ArrayType,
    ColumnType,
    CompositeType,
    DomainType,
    EnumType,
    NumericType,
    PgVectorType,
    Primitive,
)
from ...exceptions import CatalogError

ARRAY_PREFIX = "_"

CATEGORY_ENUM = "E"
CATEGORY_COMPOSITE = "C"
CATEGORY_USER_DEFINED = "U"


def get_primitive_type(name: str) -> Primitive:
    """Map a physical type name onto the closed primitive set."""
    primitive = Primitive.from_sql_type(name)
    if primitive is None:
        raise CatalogError(f"undefined primitive type name '{name}'")
    return primitive


def decode_column_type(
    row: dict[str, Any],
    db_name: DbName,
    type_name: Optional[str] = None,
    type_category: Optional[str] = None,
) -> ColumnType:
    """Resolve the type of one column row.

    The row carries ``column_type_schema``, ``column_type_name``,
    ``column_type_category``, ``column_element_type_category``,
    ``numeric_precision`` and ``numeric_scale``. ``type_name`` and
    ``type_category`` override the row while recursing into array elements.
    """
    schema = db_name.to_schema(row["column_type_schema"])
    type_name = type_name or row["column_type_name"]
    type_category = type_category or row["column_type_category"]

    if type_name.startswith(ARRAY_PREFIX):
        element_category = row.get("column_element_type_category")
        if element_category is None:
            raise CatalogError(f"missing element type category for array type '{schema}:{type_name}'")
        return ArrayType(
            decode_column_type(
                row,
                db_name,
                type_name=type_name[len(ARRAY_PREFIX):],
                type_category=element_category,
            )
        )

    if schema != db_name.schema_pg_catalog:
        name = ObjectName(schema=schema, name=type_name)
        if type_category == CATEGORY_ENUM:
            return EnumType(name)
        if type_category == CATEGORY_COMPOSITE:
            return CompositeType(name)
        if type_category == CATEGORY_USER_DEFINED and type_name == PgVectorType.VECTOR_NAME:
            return PgVectorType(schema=schema.schema_name)
        raise CatalogError(f"unknown column type category '{type_category}' for column type '{schema}:{type_name}'")

    if type_name == Primitive.UNCONSTRAINED_NUMERIC.sql_type:
        return _decode_numeric(row)
    return get_primitive_type(type_name)


def _decode_numeric(row: dict[str, Any]) -> ColumnType:
    precision = row.get("numeric_precision")
    scale = row.get("numeric_scale")
    if precision is not None and scale is not None:
        return NumericType(precision=int(precision), scale=int(scale))
    if precision is None and scale is None:
        return Primitive.UNCONSTRAINED_NUMERIC
    raise CatalogError(f"invalid numeric type, precision: {precision}, scale: {scale}")


def decode_column_row_type(row: dict[str, Any], db_name: DbName) -> ColumnType:
    """Decode a column row, wrapping the result in its domain if it has one."""
    column_type = decode_column_type(row, db_name)
    domain_schema = row.get("domain_schema")
    domain_name = row.get("domain_name")
    if domain_schema is None or domain_name is None:
        return column_type
    return DomainType(
        name=ObjectName(schema=db_name.to_schema(domain_schema), name=domain_name),
        original_type=column_type,
    )
