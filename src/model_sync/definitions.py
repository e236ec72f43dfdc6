"""Declarative model definitions and the model registry.

A ``ModelDefinition`` is the in-memory description of an entity: its
attributes in declaration order, table naming options, and timestamp
policy.  It is immutable once constructed, and resolves its table name
exactly once, at construction.

A ``ModelRegistry`` is an explicit, caller-owned collection of models in
registration order.  Registry-wide defaults (freeze table names, timestamp
policy) are applied when a model is defined, before it is finalized.

Usage:
    from model_sync.definitions import AttributeDefinition, ModelRegistry
    from model_sync.schema.models import LogicalType

    registry = ModelRegistry()
    person = registry.define("Person", [
        AttributeDefinition(name="id", logical_type=LogicalType.INTEGER,
                            primary_key=True, auto_increment=True),
        AttributeDefinition(name="firstName", logical_type=LogicalType.STRING),
    ])
    person.table_name  # 'People'
"""

from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from model_sync.naming import resolve_table_name
from model_sync.schema.models import LogicalType

DEFAULT_CREATED_AT = "createdAt"
DEFAULT_UPDATED_AT = "updatedAt"


class AttributeDefinition(BaseModel):
    """A single model attribute.

    Primary-key and auto-increment attributes are always NOT NULL, as
    PostgreSQL makes them; declaring one nullable is an error.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    logical_type: LogicalType
    nullable: bool = True
    default: Any = None
    primary_key: bool = False
    auto_increment: bool = False
    unique: bool = False
    length: int | None = Field(default=None, gt=0)
    enum_values: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _key_columns_not_null(cls, data: Any) -> Any:
        if (
            isinstance(data, dict)
            and (data.get("primary_key") or data.get("auto_increment"))
            and "nullable" not in data
        ):
            data = {**data, "nullable": False}
        return data

    @model_validator(mode="after")
    def _check_type_options(self) -> "AttributeDefinition":
        if self.logical_type is LogicalType.UNKNOWN:
            raise ValueError(f"Attribute '{self.name}' cannot be declared with unknown type")
        if self.logical_type is LogicalType.ENUM and not self.enum_values:
            raise ValueError(f"Enum attribute '{self.name}' needs enum_values")
        if self.logical_type is not LogicalType.ENUM and self.enum_values:
            raise ValueError(f"Only enum attributes take enum_values ('{self.name}')")
        if self.length is not None and self.logical_type is not LogicalType.STRING:
            raise ValueError(f"Only string attributes take a length ('{self.name}')")
        if self.auto_increment and self.logical_type is not LogicalType.INTEGER:
            raise ValueError(f"Only integer attributes can auto-increment ('{self.name}')")
        if self.nullable and (self.primary_key or self.auto_increment):
            raise ValueError(
                f"Primary-key and auto-increment attributes cannot be nullable ('{self.name}')"
            )
        return self


class TimestampPolicy(BaseModel):
    """Which timestamp attributes a model maintains, and their column names.

    Each of ``created_at`` / ``updated_at`` is ``True`` (default column
    name), ``False`` (suppressed), or a string (renamed column).
    ``enabled=False`` suppresses both.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    created_at: bool | str = True
    updated_at: bool | str = True

    @property
    def created_column(self) -> str | None:
        return self._column(self.created_at, DEFAULT_CREATED_AT)

    @property
    def updated_column(self) -> str | None:
        return self._column(self.updated_at, DEFAULT_UPDATED_AT)

    def _column(self, setting: bool | str, default_name: str) -> str | None:
        if not self.enabled or setting is False:
            return None
        if setting is True:
            return default_name
        return setting


class ModelDefaults(BaseModel):
    """Registry-wide defaults applied to every model at definition time."""

    freeze_table_name: bool = False
    timestamps: bool = True
    created_at: bool | str = True
    updated_at: bool | str = True

    def timestamp_policy(self, enabled: bool | None = None) -> TimestampPolicy:
        return TimestampPolicy(
            enabled=self.timestamps if enabled is None else enabled,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ModelDefinition(BaseModel):
    """Declarative description of one model.

    ``attributes`` accepts either a mapping of name to definition or a
    sequence of definitions; either way the result is an ordered mapping
    with unique keys.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    attributes: dict[str, AttributeDefinition] = Field(default_factory=dict)
    explicit_table_name: str | None = None
    freeze_table_name: bool = False
    timestamps: TimestampPolicy = Field(default_factory=TimestampPolicy)

    _table_name: str = PrivateAttr(default="")

    @model_validator(mode="before")
    @classmethod
    def _attributes_from_sequence(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        attributes = data.get("attributes")
        if attributes is None or isinstance(attributes, dict):
            return data

        by_name: dict[str, Any] = {}
        for attribute in attributes:
            name = attribute.name if isinstance(attribute, AttributeDefinition) else attribute["name"]
            if name in by_name:
                raise ValueError(f"Duplicate attribute '{name}' in model '{data.get('name')}'")
            by_name[name] = attribute
        return {**data, "attributes": by_name}

    @model_validator(mode="after")
    def _check_attribute_keys(self) -> "ModelDefinition":
        for key, attribute in self.attributes.items():
            if key != attribute.name:
                raise ValueError(
                    f"Attribute key '{key}' does not match attribute name '{attribute.name}'"
                )
        return self

    def model_post_init(self, __context: Any) -> None:
        # Resolved once; the model is frozen so the inputs cannot change.
        self._table_name = resolve_table_name(
            self.name, self.explicit_table_name, self.freeze_table_name
        )

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def has_timestamps(self) -> bool:
        return bool(self.timestamps.created_column or self.timestamps.updated_column)


class ModelRegistry:
    """Caller-owned collection of model definitions, in registration order.

    Construct once at startup and pass to ``SchemaSynchronizer.sync_all``;
    there is no process-wide registry.

    Args:
        defaults: Registry-wide defaults applied by ``define()``.
    """

    def __init__(self, defaults: ModelDefaults | None = None) -> None:
        self.defaults = defaults or ModelDefaults()
        self._models: dict[str, ModelDefinition] = {}

    def define(
        self,
        name: str,
        attributes: Iterable[AttributeDefinition] | dict[str, AttributeDefinition],
        table_name: str | None = None,
        freeze_table_name: bool | None = None,
        timestamps: bool | TimestampPolicy | None = None,
    ) -> ModelDefinition:
        """Build a model with registry defaults filled in, then register it.

        Args:
            name: Logical model name.
            attributes: Attribute definitions in declaration order.
            table_name: Explicit table name override.
            freeze_table_name: Overrides the registry default when not None.
            timestamps: ``True``/``False`` toggles the default policy; a
                ``TimestampPolicy`` is used as-is; ``None`` uses the default.

        Returns:
            The registered ``ModelDefinition``.
        """
        if isinstance(timestamps, TimestampPolicy):
            policy = timestamps
        else:
            policy = self.defaults.timestamp_policy(enabled=timestamps)

        model = ModelDefinition(
            name=name,
            attributes=attributes if isinstance(attributes, dict) else list(attributes),
            explicit_table_name=table_name,
            freeze_table_name=(
                self.defaults.freeze_table_name
                if freeze_table_name is None
                else freeze_table_name
            ),
            timestamps=policy,
        )
        return self.register(model)

    def register(self, model: ModelDefinition) -> ModelDefinition:
        """Register an already-built model.

        Raises:
            ValueError: If the model name or its table name is already taken.
        """
        if model.name in self._models:
            raise ValueError(f"Model '{model.name}' is already registered")
        for existing in self._models.values():
            if existing.table_name == model.table_name:
                raise ValueError(
                    f"Models '{existing.name}' and '{model.name}' both resolve "
                    f"to table '{model.table_name}'"
                )
        self._models[model.name] = model
        return model

    def get(self, name: str) -> ModelDefinition:
        try:
            return self._models[name]
        except KeyError:
            available = ", ".join(self._models) or "(none)"
            raise KeyError(f"Model '{name}' not registered. Available: {available}") from None

    @property
    def models(self) -> list[ModelDefinition]:
        return list(self._models.values())

    def __iter__(self) -> Iterator[ModelDefinition]:
        return iter(list(self._models.values()))

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._models
