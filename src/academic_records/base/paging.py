# src/academic_records/base/paging.py
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .projection import EntityProjection
from .validation_exceptions import PageRequestError

log = logging.getLogger(__name__)

# Payload keys consumed by paging rather than by filters.
PAGING_KEYS = frozenset({"size", "offset", "sort", "direction"})

MAX_PAGE_SIZE = 1000
# LIMIT and OFFSET are bound as PostgreSQL bigint.
MAX_OFFSET = 2**63 - 1


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class PageRequest(BaseModel):
    """Page length, offset and sort order of one listing request."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    size: int = Field(gt=0, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0, le=MAX_OFFSET)
    sort: str = "id"
    direction: SortDirection = SortDirection.ASC

    @field_validator("size", "offset", mode="before")
    @classmethod
    def reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be an integer, not a boolean")
        return value

    @field_validator("direction", mode="before")
    @classmethod
    def normalize_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        projection: Optional[EntityProjection] = None,
        default_sort: str = "id",
    ) -> "PageRequest":
        """
        Parse paging keys out of a listing payload.

        Raises:
            PageRequestError: If size/offset/direction are missing or invalid.
            UnknownAttributeError: If `sort` is not an attribute of `projection`.
        """
        data = {k: payload[k] for k in PAGING_KEYS if payload.get(k) is not None}
        data.setdefault("sort", default_sort)
        try:
            request = cls.model_validate(data)
        except PydanticValidationError as e:
            raise PageRequestError(f"Invalid page request: {e}") from e
        if projection is not None:
            request.sort_column(projection)
        return request

    def sort_column(self, projection: EntityProjection) -> str:
        """Resolves the sort attribute through the projection whitelist."""
        return projection.column(self.sort)

    def order_expression(self, projection: EntityProjection) -> str:
        return f"{self.sort_column(projection)} {self.direction.value}"


class Page(BaseModel):
    """One page of a listing plus the caller's capability flags."""

    model_config = ConfigDict(populate_by_name=True)

    content: List[Dict[str, Any]] = Field(default_factory=list)
    items_length: int = Field(default=0, ge=0, alias="itemsLength")
    capabilities: Dict[str, bool] = Field(default_factory=dict)

    def to_response(self) -> Dict[str, Any]:
        """`{content, itemsLength, <flag>: bool, ...}`"""
        response: Dict[str, Any] = {
            "content": self.content,
            "itemsLength": self.items_length,
        }
        response.update(self.capabilities)
        return response
