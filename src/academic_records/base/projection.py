# src/academic_records/base/projection.py
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Tuple, Type

from .naming import column_name, validate_sql_identifier
from .validation_exceptions import UnknownAttributeError, ValidationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDescriptor:
    """One known attribute/column pair of an entity."""

    attribute_name: str
    column_name: str
    excluded_from_projection: bool = False


class EntityProjection:
    """
    Whitelist of the attributes and columns of one entity type.

    Every column name that reaches generated SQL comes from here: select
    lists, filter targets, sort targets and update assignments. Names supplied
    by a request are only ever used as lookup keys.
    """

    def __init__(
        self,
        table: str,
        attributes: Iterable[str],
        excluded: Iterable[str] = (),
        column_mapper: Callable[[str], str] = column_name,
    ):
        """
        Args:
            table: Storage table name.
            attributes: Attribute names, in select-list order.
            excluded: Attributes that stay filterable/updatable but are never
                selected (e.g. audit columns).
            column_mapper: Attribute to column name function.
        """
        self._table = validate_sql_identifier(table, "table name")
        excluded = set(excluded)
        fields: List[FieldDescriptor] = []
        by_attribute: Dict[str, FieldDescriptor] = {}
        for attribute in attributes:
            if attribute in by_attribute:
                raise ValidationError(
                    f"Attribute '{attribute}' declared twice for table '{table}'."
                )
            column = validate_sql_identifier(
                column_mapper(attribute), "column name"
            )
            descriptor = FieldDescriptor(
                attribute_name=attribute,
                column_name=column,
                excluded_from_projection=attribute in excluded,
            )
            fields.append(descriptor)
            by_attribute[attribute] = descriptor

        unknown_excluded = excluded - set(by_attribute)
        if unknown_excluded:
            raise UnknownAttributeError(
                f"Excluded attribute(s) {sorted(unknown_excluded)} are not "
                f"declared for table '{table}'."
            )
        self._fields: Tuple[FieldDescriptor, ...] = tuple(fields)
        self._by_attribute = by_attribute

    @property
    def table(self) -> str:
        return self._table

    @property
    def fields(self) -> Tuple[FieldDescriptor, ...]:
        return self._fields

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._by_attribute

    def __repr__(self) -> str:
        return (
            f"EntityProjection(table={self._table!r}, "
            f"attributes={[f.attribute_name for f in self._fields]!r})"
        )

    def field(self, attribute: str) -> FieldDescriptor:
        try:
            return self._by_attribute[attribute]
        except (KeyError, TypeError):
            raise UnknownAttributeError(
                f"Attribute {attribute!r} does not exist on table '{self._table}'."
            ) from None

    def column(self, attribute: str) -> str:
        return self.field(attribute).column_name

    def columns(self, exclude: Iterable[str] = ()) -> List[str]:
        """Selected column names, minus any listed in `exclude`."""
        exclude = set(exclude)
        return [
            f.column_name
            for f in self._fields
            if not f.excluded_from_projection and f.column_name not in exclude
        ]

    def select_list(self, exclude: Iterable[str] = ()) -> str:
        return ", ".join(self.columns(exclude))

    def validate(self, attributes: Iterable[str]) -> None:
        """Raises UnknownAttributeError for the first unknown attribute."""
        for attribute in attributes:
            self.field(attribute)


# --- Registry ---
# Filled once at import time by the model modules; read-only afterwards.
_PROJECTIONS: Dict[type, EntityProjection] = {}


def register_projection(
    entity_type: Type, projection: EntityProjection
) -> EntityProjection:
    """Registers the projection of `entity_type`."""
    existing = _PROJECTIONS.get(entity_type)
    if existing is not None and existing is not projection:
        raise ValueError(
            f"A different projection is already registered for "
            f"{entity_type.__name__}."
        )
    _PROJECTIONS[entity_type] = projection
    log.debug(f"Registered projection for {entity_type.__name__}: {projection!r}")
    return projection


def projection_for(entity_type: Type) -> EntityProjection:
    try:
        return _PROJECTIONS[entity_type]
    except KeyError:
        raise LookupError(
            f"No projection registered for {entity_type.__name__}."
        ) from None
