# src/academic_records/base/builder.py
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from .exceptions import StatementStateError
from .naming import column_name, validate_sql_identifier
from .projection import EntityProjection
from .statement import Criterion, Match, Statement
from .validation_exceptions import ValidationError

log = logging.getLogger(__name__)

Fragment = Union[str, Callable[[], str]]
PredicateArg = Union[None, str, Criterion, Iterable[Criterion]]


class BuilderState(Enum):
    IDLE = "idle"
    BUILDING = "building"
    BUILT = "built"


def _produce(fragment: Fragment) -> str:
    text = fragment() if callable(fragment) else fragment
    if not isinstance(text, str):
        raise TypeError(
            f"SQL fragment producer must return str, got {type(text).__name__}"
        )
    return text


class StatementBuilder:
    """
    Builds one positionally-parameterized SQL statement with a fluent API.

    Criteria whose value is absent are skipped entirely: they add no text,
    no parameter and no placeholder index. Every placeholder that is added is
    bound in the same step, so `$1..$n` always line up with the parameter
    list no matter which combination of criteria is present.

    Static fragments (`where("...")`, `order_by`, `left_join`, `on`) are
    written as given and must only be built from whitelisted names.

    `and_`/`or_` continue a condition opened by `where` or `on`. If the
    criterion given to `where` is absent no condition is opened, and a
    following present `and_` raises StatementStateError; emit the first
    present criterion with `where`.

        builder = StatementBuilder.for_projection(projection)
        statement = (
            builder.select_for(projection)
            .where(Criterion.like("name", "John"))
            .and_([Criterion.eq("gender", ABSENT), Criterion.eq("depId", 3)])
            .build()
        )
        # SELECT ... FROM teacher WHERE name LIKE $1 AND dep_id = $2
    """

    def __init__(
        self,
        table: str,
        projection: Optional[EntityProjection] = None,
        column_mapper: Callable[[str], str] = column_name,
    ):
        self._table = validate_sql_identifier(table, "table name")
        self._projection = projection
        self._column_mapper = column_mapper
        self._statement = Statement()
        self._state = BuilderState.IDLE
        self._assignments = 0
        self._predicates = 0
        self._key_predicate: Optional[str] = None
        self._condition_open = False

    @classmethod
    def for_projection(cls, projection: EntityProjection) -> "StatementBuilder":
        """A builder whose column names all resolve through `projection`."""
        return cls(projection.table, projection=projection)

    # --- Introspection ---
    @property
    def table(self) -> str:
        return self._table

    @property
    def state(self) -> BuilderState:
        return self._state

    @property
    def statement(self) -> Statement:
        """The statement as accumulated so far (not trimmed or verified)."""
        return self._statement

    @property
    def assignments(self) -> int:
        """Number of SET assignments emitted since the last start."""
        return self._assignments

    @property
    def predicates(self) -> int:
        """Number of criterion predicates emitted since the last start."""
        return self._predicates

    # --- Internal helpers ---
    def _column(self, attribute: str) -> str:
        if self._projection is not None:
            return self._projection.column(attribute)
        return self._column_mapper(attribute)

    def _require_building(self, operation: str) -> None:
        if self._state is not BuilderState.BUILDING:
            raise StatementStateError(
                f"{operation}() needs a started statement; builder is "
                f"{self._state.value}."
            )

    def _separate(self) -> None:
        text = self._statement.text
        if text and not text.endswith(" "):
            self._statement = self._statement.append(" ")

    def _append(self, fragment: str) -> None:
        self._separate()
        self._statement = self._statement.append(fragment)

    def _start(self, text: str) -> None:
        self.clear()
        self._statement = Statement(text=text)
        self._state = BuilderState.BUILDING

    def _require_condition(self, keyword: str) -> None:
        # AND/OR only continue a condition opened by WHERE or ON.
        if keyword in ("AND", "OR") and not self._condition_open:
            raise StatementStateError(
                f"{keyword.lower()}_() needs a preceding where() or on() clause."
            )

    def _predicate(self, keyword: str, criterion: Criterion) -> None:
        if not isinstance(criterion, Criterion):
            raise TypeError(
                f"Expected Criterion, got {type(criterion).__name__}"
            )
        if not criterion.is_present:
            return
        if criterion.value is None:
            raise ValidationError(
                f"Attribute '{criterion.attribute}' cannot be matched against "
                f"null; leave it absent instead."
            )
        self._require_condition(keyword)
        column = self._column(criterion.attribute)
        self._separate()
        if criterion.match is Match.LIKE:
            self._statement = self._statement.bind(
                f"{keyword} {column} LIKE ", criterion.bound_value
            )
        elif criterion.match is Match.ANY:
            self._statement = self._statement.bind(
                f"{keyword} {column} = ANY(", criterion.bound_value, ") "
            )
        else:
            self._statement = self._statement.bind(
                f"{keyword} {column} = ", criterion.bound_value
            )
        self._predicates += 1
        self._condition_open = True

    def _clause(self, keyword: str, arg: PredicateArg) -> "StatementBuilder":
        self._require_building(keyword.lower())
        if isinstance(arg, str):
            self._require_condition(keyword)
            self._append(f"{keyword} {arg} ")
            self._condition_open = True
        elif isinstance(arg, Criterion):
            self._predicate(keyword, arg)
        elif arg is None:
            raise TypeError(f"{keyword.lower()}() needs a criterion or a literal")
        else:
            for criterion in arg:
                self._predicate(keyword, criterion)
        return self

    # --- Start operations ---
    def select(self, columns: Fragment) -> "StatementBuilder":
        """Starts `SELECT <columns> FROM <table>`."""
        self._start(f"SELECT {_produce(columns)} FROM {self._table} ")
        return self

    def select_for(
        self, projection: EntityProjection, exclude: Iterable[str] = ()
    ) -> "StatementBuilder":
        """Starts a select over the projection's columns minus `exclude`."""
        if projection.table != self._table:
            raise ValueError(
                f"Projection of table '{projection.table}' cannot select from "
                f"'{self._table}'."
            )
        exclude = tuple(exclude)
        return self.select(lambda: projection.select_list(exclude))

    def update(self, key: Optional[Criterion] = None) -> "StatementBuilder":
        """
        Starts `UPDATE <table>`.

        A `key` criterion is bound right away as ``$1``; `where_key()` emits
        the matching `WHERE <key> = $1` once the assignments are in place.
        """
        self._start(f"UPDATE {self._table} ")
        if key is not None:
            if not key.is_present or key.value is None:
                raise ValidationError(
                    f"Identity '{key.attribute}' is required for an update."
                )
            column = self._column(key.attribute)
            placeholder = self._statement.placeholder
            self._statement = Statement(
                text=self._statement.text,
                parameters=self._statement.parameters + (key.value,),
                next_index=self._statement.next_index + 1,
            )
            self._key_predicate = f"{column} = {placeholder}"
        return self

    # --- Clauses ---
    def set(self, criterion: Criterion) -> "StatementBuilder":
        """Adds `col = $n` to the SET list if the criterion is present."""
        self._require_building("set")
        if not criterion.is_present:
            return self
        column = self._column(criterion.attribute)
        if self._assignments == 0:
            self._separate()
            self._statement = self._statement.bind(
                f"SET {column} = ", criterion.value, ""
            )
        else:
            self._statement = self._statement.bind(
                f", {column} = ", criterion.value, ""
            )
        self._assignments += 1
        return self

    def where(self, arg: PredicateArg = None) -> "StatementBuilder":
        """
        Starts a WHERE clause.

        Without an argument a bare `WHERE` is written, with a string the
        string is written unparameterized, with a criterion the usual
        present/absent rule applies.
        """
        if arg is None:
            self._require_building("where")
            self._append("WHERE ")
            self._condition_open = True
            return self
        if not isinstance(arg, (str, Criterion)):
            raise TypeError("where() takes a single criterion or a literal")
        return self._clause("WHERE", arg)

    def where_key(self) -> "StatementBuilder":
        """Emits the identity predicate bound by `update(key=...)`."""
        self._require_building("where_key")
        if self._key_predicate is None:
            raise StatementStateError("where_key() needs update(key=...) first.")
        self._append(f"WHERE {self._key_predicate} ")
        self._condition_open = True
        return self

    def and_(self, arg: PredicateArg) -> "StatementBuilder":
        return self._clause("AND", arg)

    def or_(self, arg: PredicateArg) -> "StatementBuilder":
        return self._clause("OR", arg)

    def order_by(self, expression: Fragment) -> "StatementBuilder":
        self._require_building("order_by")
        self._append(f"ORDER BY {_produce(expression)} ")
        return self

    def left_join(self, target: Fragment) -> "StatementBuilder":
        self._require_building("left_join")
        self._append(f"LEFT JOIN {_produce(target)} ")
        return self

    def on(self, condition: Fragment) -> "StatementBuilder":
        self._require_building("on")
        self._append(f"ON {_produce(condition)} ")
        self._condition_open = True
        return self

    def page(self, size: int, offset: int) -> "StatementBuilder":
        """Appends `LIMIT $n OFFSET $n+1`, binding size then offset."""
        self._require_building("page")
        self._separate()
        self._statement = self._statement.bind("LIMIT ", size)
        self._statement = self._statement.bind("OFFSET ", offset)
        return self

    # --- Lifecycle ---
    def clear(self) -> "StatementBuilder":
        self._statement = Statement()
        self._state = BuilderState.IDLE
        self._assignments = 0
        self._predicates = 0
        self._key_predicate = None
        self._condition_open = False
        return self

    def build(self) -> Statement:
        """
        Returns the finished statement.

        The text is stripped and placeholders are checked against the
        parameters. Calling build() again returns an equal statement.
        """
        if self._state is BuilderState.IDLE:
            raise StatementStateError("build() needs a started statement.")
        statement = Statement(
            text=self._statement.text.strip(),
            parameters=self._statement.parameters,
            next_index=self._statement.next_index,
        ).verify()
        self._state = BuilderState.BUILT
        log.debug(
            f"Built statement: SQL='{statement.text}', "
            f"Params={list(statement.parameters)}"
        )
        return statement
