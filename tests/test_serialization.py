"""Tests for the persisted spec file."""

import pytest
import yaml
from conftest import make_column
from schema_resolver.base.models import (
    Cardinality,
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
from schema_resolver.base.names import ColumnRef, DbName, ObjectName, StatementName
from schema_resolver.base.types import (
    ArrayType,
    CompositeType,
    DomainType,
    EnumType,
    NumericType,
    PgVectorType,
    Primitive,
    ReferenceType,
    ValueClass,
)
from schema_resolver.exceptions import SpecFileError
from schema_resolver.serialization import dump_spec, load_spec, model_to_dict, type_from_data, type_to_data


@pytest.fixture
def model(db_name, table_name):
    user_id = ValueClass("com.acme.UserId", parse_function="com.acme.parseUserId")
    users = Table(
        name=table_name("users"),
        columns=(
            make_column("id", ReferenceType(user_id, Primitive.UUID), position=1),
            make_column("email", DomainType(table_name("email"), Primitive.TEXT), position=2),
            make_column("mood", EnumType(table_name("mood")), position=3, nullable=True),
            make_column("balance", NumericType(12, 2), position=4),
            make_column("tags", ArrayType(Primitive.TEXT), position=5),
            make_column("embedding", PgVectorType("extensions"), position=6),
            make_column("address", CompositeType(table_name("address")), position=7),
        ),
        primary_key=PrimaryKey(name="users_pkey", columns=("id",)),
        unique_constraints=("users_email_key",),
        check_constraints=("users_balance_check",),
    )
    orders = Table(
        name=table_name("orders"),
        columns=(make_column("id"), make_column("user_id", Primitive.UUID, position=2)),
        foreign_keys=(ForeignKey("orders_user_id_fkey", table_name("users"), (KeyPair("user_id", "id"),)),),
    )
    statement = Statement(
        name=StatementName(db_name=db_name, name="getUser"),
        cardinality=Cardinality.ONE,
        variables=("user_id", "user_id"),
        variable_types={"user_id": Primitive.UUID},
        columns=(make_column("id", Primitive.UUID),),
        sql="SELECT id FROM users WHERE id = ? OR parent_id = ?",
    )
    return SchemaModel(
        tables=(users, orders),
        enums=(EnumDefinition(table_name("mood"), ("sad", "happy")),),
        composite_types=(CompositeDefinition(table_name("address"), (make_column("street", Primitive.TEXT),)),),
        statements=(statement,),
        type_mappings=(TypeMapping(table_name("email"), ValueClass("com.acme.Email")),),
        enum_mappings=(EnumMapping(table_name("mood"), "com.acme.Mood", {"sad": "SAD"}),),
        type_overwrites=(TypeOverwrite(ColumnRef(table_name("users"), "id"), user_id),),
    )


class TestTypeEncoding:
    """Tests for column type encoding."""

    def test_primitive_by_member_name(self):
        """Should write primitives as their member name."""
        assert type_to_data(Primitive.TIMESTAMP_WITH_TIMEZONE) == "TIMESTAMP_WITH_TIMEZONE"

    def test_kind_discriminator(self, table_name):
        """Should tag non-primitive types with their kind."""
        data = type_to_data(ArrayType(DomainType(table_name("email"), Primitive.TEXT)))
        assert data == {
            "kind": "array",
            "elementType": {"kind": "domain", "name": "base.public.email", "originalType": "TEXT"},
        }

    def test_unknown_kind(self):
        """Should reject unknown kinds and primitive names."""
        with pytest.raises(SpecFileError):
            type_from_data({"kind": "money"})
        with pytest.raises(SpecFileError):
            type_from_data("MONEY")


class TestSpecFile:
    """Tests for dump_spec / load_spec."""

    def test_replay(self, model, tmp_path):
        """Should load back an equal, normalized model."""
        path = tmp_path / "out" / "spec.yaml"
        dump_spec(model, path)
        assert load_spec(path) == model.normalized()

    def test_document_layout(self, model):
        """Should use the documented top-level keys and sorted tables."""
        data = model_to_dict(model)
        assert list(data) == [
            "tables", "enums", "compositeTypes", "statements",
            "typeMappings", "enumMappings", "typeOverwrites",
        ]
        assert [t["name"] for t in data["tables"]] == ["base.public.orders", "base.public.users"]
        assert data["typeOverwrites"][0]["sqlColumn"] == "base.public.users.id"
        assert data["statements"][0]["name"] == "base.getUser"

    def test_ordinal_position_not_persisted(self, model):
        """Should not write ordinal positions."""
        data = model_to_dict(model)
        assert "ordinal_position" not in yaml.safe_dump(data)
        assert "position" not in data["tables"][0]["columns"][0]

    def test_dotted_db_name_rejected(self):
        """Should refuse to write names that could not be read back unchanged."""
        users = Table(
            name=ObjectName(schema=DbName("main.db").to_schema("public"), name="users"),
            columns=(make_column("id"),),
        )
        with pytest.raises(SpecFileError, match="DB name 'main.db'"):
            model_to_dict(SchemaModel(tables=(users,)))

    def test_dotted_db_name_in_statement_rejected(self):
        """Should refuse dotted DB names in statement names too."""
        statement = Statement(
            name=StatementName(db_name=DbName("main.db"), name="getUser"),
            cardinality=Cardinality.ONE,
            variables=(),
            variable_types={},
            columns=(make_column("id"),),
            sql="SELECT 1 AS id",
        )
        with pytest.raises(SpecFileError, match="DB name 'main.db'"):
            model_to_dict(SchemaModel(statements=(statement,)))

    def test_missing_file(self, tmp_path):
        """Should raise SpecFileError for a missing file."""
        with pytest.raises(SpecFileError, match="does not exist"):
            load_spec(tmp_path / "nope.yaml")

    def test_invalid_document(self, tmp_path):
        """Should raise SpecFileError for a document that is not a mapping."""
        path = tmp_path / "spec.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(SpecFileError):
            load_spec(path)

    def test_invalid_content(self, tmp_path):
        """Should raise SpecFileError for entries missing required keys."""
        path = tmp_path / "spec.yaml"
        path.write_text("tables:\n  - columns: []\n")
        with pytest.raises(SpecFileError):
            load_spec(path)
