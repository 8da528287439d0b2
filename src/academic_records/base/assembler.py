# src/academic_records/base/assembler.py
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Tuple

from .builder import StatementBuilder
from .exceptions import StatementInvariantError
from .paging import PageRequest
from .projection import EntityProjection
from .statement import ABSENT, CriteriaSet, Criterion, Statement
from .validation_exceptions import (
    EmptyUpdateError,
    UnknownAttributeError,
    ValidationError,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingStatements:
    """Statements of one listing; `count` and `page` share a parameter prefix."""

    base: Statement
    count: Statement
    page: Statement


class ListingQueryAssembler:
    """
    Turns filters plus a page request into the base, count and page statements.

    The predicate chain is emitted the same way for all three statements, so
    the count statement's parameters are exactly the leading parameters of
    the page statement, which then adds size and offset.
    """

    def __init__(
        self, projection: EntityProjection, restrictions: Sequence[str] = ()
    ):
        """
        Args:
            projection: Whitelist of the listed entity.
            restrictions: Static predicates added to every listing, e.g.
                ``"is_enable = true"``. Never built from request data.
        """
        self._projection = projection
        self._restrictions = tuple(restrictions)

    @property
    def projection(self) -> EntityProjection:
        return self._projection

    def _filtered(
        self, builder: StatementBuilder, criteria: CriteriaSet
    ) -> StatementBuilder:
        present = criteria.present()
        if self._restrictions:
            builder.where(self._restrictions[0])
            for restriction in self._restrictions[1:]:
                builder.and_(restriction)
            return builder.and_(present)
        if not present:
            # No WHERE at all rather than a dangling one.
            return builder
        return builder.where(present[0]).and_(present[1:])

    def count(self, criteria: CriteriaSet) -> Statement:
        """The `SELECT count(*)` statement for `criteria` alone."""
        self._projection.validate(criteria.attributes())
        builder = StatementBuilder.for_projection(self._projection)
        return self._filtered(builder.select("count(*)"), criteria).build()

    def assemble(
        self,
        criteria: CriteriaSet,
        page: PageRequest,
        exclude: Iterable[str] = (),
    ) -> ListingStatements:
        """
        Build the listing statements.

        Raises:
            UnknownAttributeError: If a filter or the sort attribute is not in
                the projection. Raised before any SQL is built.
        """
        self._projection.validate(criteria.attributes())
        order = page.order_expression(self._projection)
        exclude = tuple(exclude)

        builder = StatementBuilder.for_projection(self._projection)
        count = self._filtered(builder.select("count(*)"), criteria).build()
        base = self._filtered(
            builder.select_for(self._projection, exclude), criteria
        ).build()
        paged = (
            self._filtered(builder.select_for(self._projection, exclude), criteria)
            .order_by(order)
            .page(page.size, page.offset)
            .build()
        )

        prefix = count.parameters
        if base.parameters != prefix or paged.parameters != prefix + (
            page.size,
            page.offset,
        ):
            raise StatementInvariantError(
                f"Listing statements diverged: count={list(prefix)}, "
                f"page={list(paged.parameters)}"
            )
        log.debug(
            f"Assembled listing for '{self._projection.table}': "
            f"{len(prefix)} filter parameter(s), sort '{order}'"
        )
        return ListingStatements(base=base, count=count, page=paged)


class UpdateQueryAssembler:
    """
    Builds `UPDATE <table> SET <present fields> WHERE <key> = $1`.

    Only attributes on the updatable whitelist may be changed. An explicit
    ``None`` clears a column only if the attribute is also on the nullable
    whitelist; an absent attribute is left untouched.
    """

    def __init__(
        self,
        projection: EntityProjection,
        updatable: Iterable[str],
        nullable: Iterable[str] = (),
        key_attribute: str = "id",
    ):
        self._projection = projection
        self._updatable: Tuple[str, ...] = tuple(updatable)
        self._nullable = frozenset(nullable)
        self._key_attribute = key_attribute
        projection.validate((key_attribute,) + self._updatable)
        if key_attribute in self._updatable:
            raise ValueError(f"Identity '{key_attribute}' cannot be updatable.")
        stray = self._nullable - set(self._updatable)
        if stray:
            raise UnknownAttributeError(
                f"Nullable attribute(s) {sorted(stray)} are not updatable."
            )

    @property
    def key_attribute(self) -> str:
        return self._key_attribute

    @property
    def updatable(self) -> Tuple[str, ...]:
        return self._updatable

    def parse(self, payload: Mapping[str, Any]) -> Tuple[Any, CriteriaSet]:
        """
        Split a payload into the identity value and candidate criteria.

        Keys missing from the payload become absent criteria. Explicit nulls
        stay present.
        """
        unknown = [
            key
            for key in payload
            if key != self._key_attribute and key not in self._updatable
        ]
        if unknown:
            raise UnknownAttributeError(
                f"Attribute(s) {unknown} cannot be updated on "
                f"'{self._projection.table}'."
            )
        key_value = payload.get(self._key_attribute, ABSENT)
        candidates = CriteriaSet(
            Criterion.eq(attribute, payload.get(attribute, ABSENT))
            for attribute in self._updatable
        )
        return key_value, candidates

    def assemble(self, key_value: Any, candidates: CriteriaSet) -> Statement:
        """
        Raises:
            ValidationError: If the identity is missing.
            UnknownAttributeError: If a candidate is not updatable.
            EmptyUpdateError: If no candidate is present.
        """
        if key_value is ABSENT or key_value is None:
            raise ValidationError(
                f"Identity '{self._key_attribute}' is required for an update."
            )
        for criterion in candidates:
            if criterion.attribute not in self._updatable:
                raise UnknownAttributeError(
                    f"Attribute '{criterion.attribute}' cannot be updated on "
                    f"'{self._projection.table}'."
                )
            if (
                criterion.is_present
                and criterion.value is None
                and criterion.attribute not in self._nullable
            ):
                raise ValidationError(
                    f"Attribute '{criterion.attribute}' cannot be set to null."
                )

        builder = StatementBuilder.for_projection(self._projection).update(
            Criterion.eq(self._key_attribute, key_value)
        )
        for criterion in candidates:
            builder.set(criterion)
        if builder.assignments == 0:
            raise EmptyUpdateError(
                f"Nothing to update on '{self._projection.table}' "
                f"{self._key_attribute}={key_value!r}."
            )
        statement = builder.where_key().build()
        log.debug(
            f"Assembled update of {builder.assignments} field(s) on "
            f"'{self._projection.table}' ({self._projection.column(self._key_attribute)}="
            f"{key_value!r})"
        )
        return statement
