# src/academic_records/base/interfaces.py

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import (Any, Dict, Generic, Iterable, Mapping, Optional, Tuple,
                    Type, TypeVar)

from academic_records.base.assembler import (ListingQueryAssembler,
                                             UpdateQueryAssembler)
from academic_records.base.paging import PAGING_KEYS, Page, PageRequest
from academic_records.base.permissions import CapabilityResolver
from academic_records.base.projection import EntityProjection
from academic_records.base.statement import CriteriaSet, Match
from academic_records.base.validation_exceptions import UnknownAttributeError

# Type variable for any entity
T = TypeVar("T")

# Payload key carrying the caller's resource grants.
RESOURCE_KEY = "resource"


@dataclass(frozen=True)
class EntityDefinition:
    """
    Static description of one listable/updatable entity.

    Filters, updatable and nullable attributes are declared explicitly per
    entity; nothing is inferred from the shape of a payload.
    """

    projection: EntityProjection
    filters: Mapping[str, Match]
    updatable: Tuple[str, ...]
    nullable: Tuple[str, ...] = ()
    key_attribute: str = "id"
    default_sort: str = "id"
    restrictions: Tuple[str, ...] = ()
    row_capabilities: CapabilityResolver = field(default_factory=CapabilityResolver)
    page_capabilities: CapabilityResolver = field(default_factory=CapabilityResolver)

    def __post_init__(self):
        self.projection.validate(self.filters)
        self.projection.validate((self.key_attribute, self.default_sort))

    def listing_assembler(self) -> ListingQueryAssembler:
        return ListingQueryAssembler(self.projection, self.restrictions)

    def update_assembler(self) -> UpdateQueryAssembler:
        return UpdateQueryAssembler(
            self.projection,
            self.updatable,
            nullable=self.nullable,
            key_attribute=self.key_attribute,
        )

    def parse_listing(
        self, payload: Mapping[str, Any]
    ) -> Tuple[CriteriaSet, PageRequest]:
        """
        Split a listing payload into filters and a page request.

        Raises:
            UnknownAttributeError: For keys that are neither filters nor
                paging keys, or an unknown sort attribute.
            PageRequestError: For invalid paging values.
        """
        unknown = [
            key
            for key in payload
            if key not in self.filters
            and key not in PAGING_KEYS
            and key != RESOURCE_KEY
        ]
        if unknown:
            raise UnknownAttributeError(
                f"Attribute(s) {unknown} cannot be filtered on "
                f"'{self.projection.table}'."
            )
        criteria = CriteriaSet.from_payload(payload, self.filters)
        page = PageRequest.from_payload(
            payload, self.projection, default_sort=self.default_sort
        )
        return criteria, page


class RecordRepository(Generic[T], ABC):
    """
    Repository interface for paginated listings and partial updates.

    Validation happens before a connection is acquired; execution errors are
    mapped to library exceptions and always release the connection.
    """

    @property
    @abstractmethod
    def entity_type(self) -> Type[T]:
        """The entity type this repository manages."""
        pass

    @property
    @abstractmethod
    def definition(self) -> EntityDefinition:
        """Projection, filters and update whitelist of the entity."""
        pass

    @abstractmethod
    async def page(
        self,
        payload: Mapping[str, Any],
        logger: LoggerAdapter,
        resources: Optional[Iterable[Mapping[str, Any]]] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        """
        List one page of entities matching the payload's filters.

        Args:
            payload: Optional filters plus `size`, `offset`, `sort` and
                `direction`. May carry the caller's grants under `resource`.
            logger: Logger adapter for recording operations.
            resources: Grants used for capability flags; defaults to the
                payload's `resource` entry.
            timeout: Optional per-statement timeout.

        Returns:
            The page content, total item count and capability flags.

        Raises:
            ValidationError: On unknown attributes or invalid paging.
            StatementExecutionError: If the store fails.
        """
        pass

    @abstractmethod
    async def count(
        self,
        criteria: CriteriaSet,
        logger: LoggerAdapter,
        timeout: Optional[float] = None,
    ) -> int:
        """Count entities matching the present criteria."""
        pass

    @abstractmethod
    async def get(
        self,
        id: Any,
        logger: LoggerAdapter,
        timeout: Optional[float] = None,
        enabled_only: bool = False,
    ) -> T:
        """
        Retrieve an entity by its identity.

        Raises:
            ObjectNotFoundException: If no entity has the identity.
        """
        pass

    @abstractmethod
    async def update_partial(
        self,
        payload: Mapping[str, Any],
        logger: LoggerAdapter,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Update the present fields of one entity.

        Args:
            payload: The entity identity plus the fields to change. Missing
                keys are left untouched; explicit nulls clear nullable fields.
            logger: Logger adapter for recording operations.
            timeout: Optional statement timeout.

        Raises:
            ValidationError: If the identity is missing, a field is not
                updatable, or no field is present.
            ObjectNotFoundException: If no row has the identity.
            StatementExecutionError: If the store fails.
        """
        pass

    def capabilities(
        self, resources: Optional[Iterable[Mapping[str, Any]]]
    ) -> Tuple[Dict[str, bool], Dict[str, bool]]:
        """(page-level flags, per-row flags) for the given grants."""
        return (
            self.definition.page_capabilities.resolve(resources),
            self.definition.row_capabilities.resolve(resources),
        )
