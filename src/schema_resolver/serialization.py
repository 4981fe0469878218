"""Read and write the persisted schema spec file (YAML).

The spec file is the replayable output of a resolution run: code generation
can start from it without a live database. Names are written in dotted form
(``db.schema.name``), primitive types as their enum member name and every
other type as a mapping with a ``kind`` key.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .base.models import (
    Cardinality,
    Column,
    CompositeDefinition,
    EnumDefinition,
    EnumMapping,
    ForeignKey,
    KeyPair,
    PrimaryKey,
    SchemaModel,
    Statement,
    Table,
    TypeMapping,
    TypeOverwrite,
)
from .base.names import ColumnRef, DbName, ObjectName, StatementName
from .base.types import (
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
from .exceptions import SpecFileError

logger = logging.getLogger(__name__)


def _db_name_to_str(db_name: DbName) -> str:
    if "." in db_name.name:
        raise SpecFileError(f"DB name '{db_name}' contains '.' and cannot be written to a spec file")
    return db_name.name


def _object_name_to_str(name: ObjectName) -> str:
    if "." in name.schema.schema_name:
        raise SpecFileError(
            f"schema name '{name.schema.schema_name}' contains '.' and cannot be written to a spec file"
        )
    return f"{_db_name_to_str(name.schema.db_name)}.{name.schema.schema_name}.{name.name}"


def _object_name_from_str(value: str) -> ObjectName:
    parts = value.split(".", 2)
    if len(parts) != 3:
        raise SpecFileError(f"invalid object name '{value}', expected <db>.<schema>.<name>")
    db, schema, name = parts
    return ObjectName(schema=DbName(db).to_schema(schema), name=name)


def _column_ref_from_str(value: str) -> ColumnRef:
    table, _, column = value.rpartition(".")
    if not table or not column:
        raise SpecFileError(f"invalid column name '{value}', expected <db>.<schema>.<table>.<column>")
    return ColumnRef(table=_object_name_from_str(table), name=column)


def _statement_name_from_str(value: str) -> StatementName:
    db, _, name = value.partition(".")
    if not db or not name:
        raise SpecFileError(f"invalid statement name '{value}', expected <db>.<name>")
    return StatementName(db_name=DbName(db), name=name)


def _value_class_to_dict(value_class: ValueClass) -> dict[str, Any]:
    data: dict[str, Any] = {"name": value_class.name}
    if value_class.parse_function:
        data["parseFunction"] = value_class.parse_function
    return data


def _value_class_from_dict(data: dict[str, Any]) -> ValueClass:
    return ValueClass(name=data["name"], parse_function=data.get("parseFunction"))


def type_to_data(column_type: ColumnType) -> Any:
    """Encode a column type as plain YAML data."""
    if isinstance(column_type, Primitive):
        return column_type.name
    if isinstance(column_type, ArrayType):
        return {"kind": "array", "elementType": type_to_data(column_type.element_type)}
    if isinstance(column_type, EnumType):
        return {"kind": "enum", "name": _object_name_to_str(column_type.name)}
    if isinstance(column_type, CompositeType):
        return {"kind": "composite", "name": _object_name_to_str(column_type.name)}
    if isinstance(column_type, NumericType):
        return {"kind": "numeric", "precision": column_type.precision, "scale": column_type.scale}
    if isinstance(column_type, PgVectorType):
        return {"kind": "pgvector", "schema": column_type.schema}
    if isinstance(column_type, DomainType):
        return {
            "kind": "domain",
            "name": _object_name_to_str(column_type.name),
            "originalType": type_to_data(column_type.original_type),
        }
    if isinstance(column_type, ReferenceType):
        return {
            "kind": "reference",
            "valueClass": _value_class_to_dict(column_type.value_class),
            "originalType": type_to_data(column_type.original_type),
        }
    raise SpecFileError(f"cannot encode column type {column_type!r}")


def type_from_data(data: Any) -> ColumnType:
    """Decode a column type written by :func:`type_to_data`."""
    if isinstance(data, str):
        try:
            return Primitive[data]
        except KeyError as e:
            raise SpecFileError(f"unknown primitive type '{data}'") from e
    kind = data.get("kind")
    if kind == "array":
        return ArrayType(type_from_data(data["elementType"]))
    if kind == "enum":
        return EnumType(_object_name_from_str(data["name"]))
    if kind == "composite":
        return CompositeType(_object_name_from_str(data["name"]))
    if kind == "numeric":
        return NumericType(precision=int(data["precision"]), scale=int(data["scale"]))
    if kind == "pgvector":
        return PgVectorType(schema=data["schema"])
    if kind == "domain":
        return DomainType(
            name=_object_name_from_str(data["name"]),
            original_type=type_from_data(data["originalType"]),
        )
    if kind == "reference":
        return ReferenceType(
            value_class=_value_class_from_dict(data["valueClass"]),
            original_type=type_from_data(data["originalType"]),
        )
    raise SpecFileError(f"unknown column type kind '{kind}'")


def _column_to_dict(column: Column) -> dict[str, Any]:
    data = {
        "name": column.name,
        "type": type_to_data(column.type),
        "nullable": column.is_nullable,
    }
    if column.default is not None:
        data["default"] = column.default
    return data


def _column_from_dict(data: dict[str, Any], position: int) -> Column:
    return Column(
        name=data["name"],
        type=type_from_data(data["type"]),
        is_nullable=bool(data.get("nullable", False)),
        default=data.get("default"),
        ordinal_position=position,
    )


def _columns_from_list(items: list) -> tuple[Column, ...]:
    return tuple(_column_from_dict(c, i + 1) for i, c in enumerate(items or []))


def _table_to_dict(table: Table) -> dict[str, Any]:
    return {
        "name": _object_name_to_str(table.name),
        "columns": [_column_to_dict(c) for c in table.columns],
        "primaryKey": (
            {"name": table.primary_key.name, "columns": list(table.primary_key.columns)}
            if table.primary_key
            else None
        ),
        "foreignKeys": [
            {
                "name": fk.name,
                "targetTable": _object_name_to_str(fk.target_table),
                "references": [
                    {"sourceColumn": r.source_column, "targetColumn": r.target_column}
                    for r in fk.references
                ],
            }
            for fk in table.foreign_keys
        ],
        "uniqueConstraints": list(table.unique_constraints),
        "checkConstraints": list(table.check_constraints),
    }


def _table_from_dict(data: dict[str, Any]) -> Table:
    primary_key = data.get("primaryKey")
    return Table(
        name=_object_name_from_str(data["name"]),
        columns=_columns_from_list(data.get("columns")),
        primary_key=(
            PrimaryKey(name=primary_key["name"], columns=tuple(primary_key["columns"]))
            if primary_key
            else None
        ),
        foreign_keys=tuple(
            ForeignKey(
                name=fk["name"],
                target_table=_object_name_from_str(fk["targetTable"]),
                references=tuple(
                    KeyPair(source_column=r["sourceColumn"], target_column=r["targetColumn"])
                    for r in fk["references"]
                ),
            )
            for fk in data.get("foreignKeys") or []
        ),
        unique_constraints=tuple(data.get("uniqueConstraints") or []),
        check_constraints=tuple(data.get("checkConstraints") or []),
    )


def _statement_to_dict(statement: Statement) -> dict[str, Any]:
    return {
        "name": f"{_db_name_to_str(statement.name.db_name)}.{statement.name.name}",
        "cardinality": statement.cardinality.value,
        "variables": list(statement.variables),
        "variableTypes": {k: type_to_data(v) for k, v in statement.variable_types.items()},
        "columns": [_column_to_dict(c) for c in statement.columns],
        "sql": statement.sql,
    }


def _statement_from_dict(data: dict[str, Any]) -> Statement:
    return Statement(
        name=_statement_name_from_str(data["name"]),
        cardinality=Cardinality(data["cardinality"]),
        variables=tuple(data.get("variables") or []),
        variable_types={k: type_from_data(v) for k, v in (data.get("variableTypes") or {}).items()},
        columns=_columns_from_list(data.get("columns")),
        sql=data["sql"],
    )


def model_to_dict(model: SchemaModel) -> dict[str, Any]:
    """Encode a schema model as plain YAML data, in its normalized order."""
    model = model.normalized()
    return {
        "tables": [_table_to_dict(t) for t in model.tables],
        "enums": [
            {"name": _object_name_to_str(e.name), "fields": list(e.fields)}
            for e in model.enums
        ],
        "compositeTypes": [
            {"name": _object_name_to_str(c.name), "columns": [_column_to_dict(col) for col in c.columns]}
            for c in model.composite_types
        ],
        "statements": [_statement_to_dict(s) for s in model.statements],
        "typeMappings": [
            {"sqlType": _object_name_to_str(m.sql_type), "valueClass": _value_class_to_dict(m.value_class)}
            for m in model.type_mappings
        ],
        "enumMappings": [
            {"sqlType": _object_name_to_str(m.sql_type), "enumClass": m.enum_class, "mappings": dict(m.mappings)}
            for m in model.enum_mappings
        ],
        "typeOverwrites": [
            {
                "sqlColumn": f"{_object_name_to_str(o.sql_column.table)}.{o.sql_column.name}",
                "valueClass": _value_class_to_dict(o.value_class),
            }
            for o in model.type_overwrites
        ],
    }


def model_from_dict(data: dict[str, Any]) -> SchemaModel:
    """Decode plain YAML data written by :func:`model_to_dict`."""
    try:
        return SchemaModel(
            tables=tuple(_table_from_dict(t) for t in data.get("tables") or []),
            enums=tuple(
                EnumDefinition(name=_object_name_from_str(e["name"]), fields=tuple(e["fields"]))
                for e in data.get("enums") or []
            ),
            composite_types=tuple(
                CompositeDefinition(name=_object_name_from_str(c["name"]), columns=_columns_from_list(c["columns"]))
                for c in data.get("compositeTypes") or []
            ),
            statements=tuple(_statement_from_dict(s) for s in data.get("statements") or []),
            type_mappings=tuple(
                TypeMapping(sql_type=_object_name_from_str(m["sqlType"]), value_class=_value_class_from_dict(m["valueClass"]))
                for m in data.get("typeMappings") or []
            ),
            enum_mappings=tuple(
                EnumMapping(
                    sql_type=_object_name_from_str(m["sqlType"]),
                    enum_class=m["enumClass"],
                    mappings=dict(m.get("mappings") or {}),
                )
                for m in data.get("enumMappings") or []
            ),
            type_overwrites=tuple(
                TypeOverwrite(sql_column=_column_ref_from_str(o["sqlColumn"]), value_class=_value_class_from_dict(o["valueClass"]))
                for o in data.get("typeOverwrites") or []
            ),
        ).normalized()
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SpecFileError(f"invalid spec data: {e}") from e


def dump_spec(model: SchemaModel, path: Path) -> None:
    """Write the spec file, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(model_to_dict(model), f, sort_keys=False, allow_unicode=True)
    except OSError as e:
        raise SpecFileError(f"cannot write spec file '{path}': {e}") from e
    logger.info(f"Wrote spec file {path}")


def load_spec(path: Path) -> SchemaModel:
    """Read a spec file written by :func:`dump_spec`."""
    path = Path(path)
    if not path.exists():
        raise SpecFileError(f"spec file '{path}' does not exist")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise SpecFileError(f"cannot read spec file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise SpecFileError(f"invalid YAML in spec file '{path}': {e}") from e
    if not isinstance(data, dict):
        raise SpecFileError(f"spec file '{path}' must contain a mapping")
    return model_from_dict(data)
