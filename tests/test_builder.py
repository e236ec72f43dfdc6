"""Tests for the desired-schema builder.

Includes round trips: a table created from the built schema, as
PostgreSQL reports it back, must diff to no operations.
"""

from model_sync.definitions import AttributeDefinition, ModelDefinition, TimestampPolicy
from model_sync.schema.builder import build_desired_schema
from model_sync.schema.models import ColumnSchema, LogicalType, SyncMode, TableSchema
from model_sync.schema.reconciler import diff


def _person(**kwargs) -> ModelDefinition:
    return ModelDefinition(
        name="Person",
        attributes=[
            AttributeDefinition(
                name="id", logical_type=LogicalType.INTEGER, primary_key=True, auto_increment=True
            ),
            AttributeDefinition(name="firstName", logical_type=LogicalType.STRING, length=100),
            AttributeDefinition(name="lastName", logical_type=LogicalType.STRING),
        ],
        **kwargs,
    )


class TestBuildDesiredSchema:
    """Verify attribute-to-column conversion and timestamp columns."""

    def test_table_name_from_model(self) -> None:
        assert build_desired_schema(_person()).name == "People"

    def test_declaration_order_then_timestamps(self) -> None:
        schema = build_desired_schema(_person())
        assert schema.column_names == ["id", "firstName", "lastName", "createdAt", "updatedAt"]

    def test_attribute_facets_carried_over(self) -> None:
        schema = build_desired_schema(_person())
        id_col = schema.get_column("id")
        assert id_col.primary_key and id_col.auto_increment and not id_col.nullable
        assert schema.get_column("firstName").length == 100

    def test_timestamp_columns_not_null_datetime(self) -> None:
        schema = build_desired_schema(_person())
        for name in ("createdAt", "updatedAt"):
            column = schema.get_column(name)
            assert column.logical_type is LogicalType.DATETIME
            assert column.nullable is False

    def test_timestamps_disabled(self) -> None:
        schema = build_desired_schema(_person(timestamps=TimestampPolicy(enabled=False)))
        assert schema.column_names == ["id", "firstName", "lastName"]

    def test_one_timestamp_suppressed(self) -> None:
        schema = build_desired_schema(_person(timestamps=TimestampPolicy(updated_at=False)))
        assert schema.column_names[-1] == "createdAt"
        assert "updatedAt" not in schema.column_names

    def test_renamed_timestamps(self) -> None:
        policy = TimestampPolicy(created_at="created_on", updated_at="modified_on")
        schema = build_desired_schema(_person(timestamps=policy))
        assert schema.column_names[-2:] == ["created_on", "modified_on"]

    def test_declared_timestamp_attribute_kept(self) -> None:
        """An attribute named like a timestamp column keeps its own definition."""
        model = ModelDefinition(
            name="Event",
            attributes=[
                AttributeDefinition(name="createdAt", logical_type=LogicalType.DATETIME),
            ],
        )
        schema = build_desired_schema(model)
        assert schema.column_names == ["createdAt", "updatedAt"]
        assert schema.get_column("createdAt").nullable is True

    def test_deterministic(self) -> None:
        model = _person()
        assert build_desired_schema(model) == build_desired_schema(model)


# ============================================================
# Test: Re-sync of a freshly created table
# ============================================================


class TestCreatedTableRoundTrip:
    """Verify the built schema matches what PostgreSQL reports after CREATE."""

    def test_identity_column_not_null(self) -> None:
        """A non-key identity column is NOT NULL once created."""
        model = ModelDefinition(
            name="Order",
            attributes=[
                AttributeDefinition(name="id", logical_type=LogicalType.INTEGER, primary_key=True),
                AttributeDefinition(name="seq", logical_type=LogicalType.INTEGER, auto_increment=True),
            ],
            timestamps=TimestampPolicy(enabled=False),
        )
        desired = build_desired_schema(model)
        created = TableSchema(
            name="Orders",
            columns=(
                ColumnSchema(
                    name="id", logical_type=LogicalType.INTEGER, nullable=False, primary_key=True
                ),
                ColumnSchema(
                    name="seq", logical_type=LogicalType.INTEGER, nullable=False,
                    auto_increment=True,
                ),
            ),
        )

        assert desired.get_column("seq").nullable is False
        assert diff(desired, created, SyncMode.ALTER) == []

    def test_unique_primary_key_has_no_separate_constraint(self) -> None:
        """CREATE renders no UNIQUE on a key column, so none is expected back."""
        model = ModelDefinition(
            name="Tag",
            attributes=[
                AttributeDefinition(
                    name="code", logical_type=LogicalType.STRING, primary_key=True, unique=True
                ),
            ],
            timestamps=TimestampPolicy(enabled=False),
        )
        desired = build_desired_schema(model)
        created = TableSchema(
            name="Tags",
            columns=(
                ColumnSchema(
                    name="code", logical_type=LogicalType.STRING, nullable=False, primary_key=True
                ),
            ),
        )

        assert desired.get_column("code").unique is False
        assert diff(desired, created, SyncMode.ALTER) == []

    def test_unique_kept_on_plain_column(self) -> None:
        model = ModelDefinition(
            name="Account",
            attributes=[
                AttributeDefinition(name="email", logical_type=LogicalType.STRING, unique=True),
            ],
        )
        assert build_desired_schema(model).get_column("email").unique is True
