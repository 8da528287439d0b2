# src/academic_records/base/statement.py
import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    overload,
)

from .exceptions import StatementInvariantError
from .validation_exceptions import ValidationError

log = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\$(\d+)")


# --- Absent marker ---
class _Absent:
    """Marks a criterion whose value was not supplied at all."""

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Absent":
        return self

    def __deepcopy__(self, memo: Any) -> "_Absent":
        return self

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def escape_like(value: str) -> str:
    """Escapes LIKE wildcards so user text only ever matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# --- Criterion ---
class Match(Enum):
    """How a present criterion is rendered inside a predicate."""

    EQ = "eq"  # col = $n
    LIKE = "like"  # col LIKE $n, value bound as %value%
    ANY = "any"  # col = ANY($n), value bound as a list


@dataclass(frozen=True)
class Criterion:
    """One (attribute, optional value) pair."""

    attribute: str
    value: Any = ABSENT
    match: Match = Match.EQ

    def __post_init__(self):
        if not self.is_present or self.value is None:
            return
        if self.match is Match.LIKE and not isinstance(self.value, str):
            raise ValidationError(
                f"Attribute '{self.attribute}' is pattern-matched and needs a "
                f"string, got {type(self.value).__name__}."
            )
        if self.match is Match.ANY and (
            isinstance(self.value, (str, bytes))
            or not isinstance(self.value, (list, tuple, set, frozenset))
        ):
            raise ValidationError(
                f"Attribute '{self.attribute}' matches any of several values "
                f"and needs a list, got {type(self.value).__name__}."
            )

    @classmethod
    def eq(cls, attribute: str, value: Any = ABSENT) -> "Criterion":
        return cls(attribute, value, Match.EQ)

    @classmethod
    def like(cls, attribute: str, value: Any = ABSENT) -> "Criterion":
        return cls(attribute, value, Match.LIKE)

    @classmethod
    def any_of(cls, attribute: str, value: Any = ABSENT) -> "Criterion":
        return cls(attribute, value, Match.ANY)

    @property
    def is_present(self) -> bool:
        return self.value is not ABSENT

    @property
    def bound_value(self) -> Any:
        """The value as it is sent to the store."""
        if not self.is_present:
            raise StatementInvariantError(
                f"Absent criterion '{self.attribute}' has no bound value."
            )
        if self.match is Match.LIKE and self.value is not None:
            return f"%{escape_like(self.value)}%"
        if self.match is Match.ANY and self.value is not None:
            return list(self.value)
        return self.value


class CriteriaSet(Sequence[Criterion]):
    """
    Ordered criteria supplied by one request.

    Order decides the order in which clauses are emitted. Attributes must be
    unique within a set.
    """

    def __init__(self, criteria: Iterable[Criterion] = ()):
        self._criteria: Tuple[Criterion, ...] = tuple(criteria)
        seen = set()
        for criterion in self._criteria:
            if not isinstance(criterion, Criterion):
                raise TypeError(
                    f"CriteriaSet holds Criterion objects, got "
                    f"{type(criterion).__name__}"
                )
            if criterion.attribute in seen:
                raise ValidationError(
                    f"Attribute '{criterion.attribute}' appears more than once."
                )
            seen.add(criterion.attribute)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        matches: Mapping[str, Match],
        none_is_absent: bool = True,
    ) -> "CriteriaSet":
        """
        Build a set from a request payload.

        `matches` declares the accepted attributes, in emission order, and how
        each is matched. A key missing from the payload yields an absent
        criterion; so does an explicit ``None`` unless `none_is_absent` is off.
        """
        criteria = []
        for attribute, match in matches.items():
            value = payload.get(attribute, ABSENT)
            if value is None and none_is_absent:
                value = ABSENT
            criteria.append(Criterion(attribute, value, match))
        return cls(criteria)

    @overload
    def __getitem__(self, index: int) -> Criterion: ...

    @overload
    def __getitem__(self, index: slice) -> "CriteriaSet": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return CriteriaSet(self._criteria[index])
        return self._criteria[index]

    def __len__(self) -> int:
        return len(self._criteria)

    def __iter__(self) -> Iterator[Criterion]:
        return iter(self._criteria)

    def __repr__(self) -> str:
        inner = ", ".join(
            f"{c.attribute}={c.value!r}" for c in self._criteria
        )
        return f"CriteriaSet({inner})"

    def present(self) -> List[Criterion]:
        return [c for c in self._criteria if c.is_present]

    def attributes(self) -> List[str]:
        return [c.attribute for c in self._criteria]

    def get(self, attribute: str) -> Optional[Criterion]:
        for criterion in self._criteria:
            if criterion.attribute == attribute:
                return criterion
        return None


# --- Statement ---
@dataclass(frozen=True)
class Statement:
    """
    SQL text with its positional parameters.

    Statements are values: every combinator returns a new Statement, so a
    snapshot handed out by a builder never changes underneath its holder.
    """

    text: str = ""
    parameters: Tuple[Any, ...] = ()
    next_index: int = 1

    def __post_init__(self):
        if not isinstance(self.parameters, tuple):
            object.__setattr__(self, "parameters", tuple(self.parameters))
        if self.next_index < 1 or len(self.parameters) != self.next_index - 1:
            raise StatementInvariantError(
                f"Statement holds {len(self.parameters)} parameter(s) but the "
                f"next placeholder index is {self.next_index}."
            )

    def __iter__(self) -> Iterator[Any]:
        # Allows `sql, params = statement`.
        return iter((self.text, self.parameters))

    @property
    def placeholder(self) -> str:
        """The placeholder the next bound value will take."""
        return f"${self.next_index}"

    def append(self, fragment: str) -> "Statement":
        """Appends static text; binds nothing."""
        return replace(self, text=self.text + fragment)

    def bind(self, prefix: str, value: Any, suffix: str = " ") -> "Statement":
        """Appends `prefix`, the next placeholder and `suffix`, binding `value`."""
        return Statement(
            text=f"{self.text}{prefix}{self.placeholder}{suffix}",
            parameters=self.parameters + (value,),
            next_index=self.next_index + 1,
        )

    def placeholders(self) -> List[int]:
        """Placeholder indices in the order they appear in the text."""
        return [int(m) for m in _PLACEHOLDER_RE.findall(self.text)]

    def verify(self) -> "Statement":
        """Checks that placeholders are exactly $1..$n for n parameters."""
        found = sorted(self.placeholders())
        expected = list(range(1, len(self.parameters) + 1))
        if found != expected:
            log.error(
                f"Placeholder mismatch: text references {found}, "
                f"{len(self.parameters)} parameter(s) bound. SQL='{self.text}'"
            )
            raise StatementInvariantError(
                f"Placeholders {found} do not match {len(self.parameters)} "
                f"bound parameter(s)."
            )
        return self
