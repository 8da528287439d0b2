# src/academic_records/base/naming.py
import re
from functools import lru_cache

from .validation_exceptions import InvalidIdentifierError

# Attribute names as they appear in request payloads, e.g. "profTitleAssDate".
_ATTRIBUTE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
# Storage identifiers, e.g. "teacher" or "prof_title_ass_date".
_SQL_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")
_WORD_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")


def is_attribute_name(name: str) -> bool:
    """Checks that `name` is a letters/digits identifier starting with a letter."""
    return isinstance(name, str) and bool(_ATTRIBUTE_RE.match(name))


def validate_sql_identifier(name: str, kind: str = "identifier") -> str:
    """Returns `name` unchanged if it is a plain lower-case SQL identifier."""
    if not isinstance(name, str) or not _SQL_IDENTIFIER_RE.match(name):
        raise InvalidIdentifierError(f"Malformed {kind} {name!r}.")
    return name


@lru_cache(maxsize=1024)
def column_name(attribute_name: str) -> str:
    """
    Map an application attribute name to its storage column name.

    Every uppercase letter after the first character starts a new segment;
    segments are lower-cased and joined with ``_``:

        >>> column_name("profTitleAssDate")
        'prof_title_ass_date'
        >>> column_name("id")
        'id'

    Args:
        attribute_name: A letters/digits identifier starting with a letter.

    Returns:
        The snake_case column name.

    Raises:
        InvalidIdentifierError: If the name contains anything but letters and digits.
    """
    if not is_attribute_name(attribute_name):
        raise InvalidIdentifierError(
            f"Attribute name {attribute_name!r} must contain only letters and "
            f"digits and start with a letter."
        )
    return _WORD_BOUNDARY_RE.sub("_", attribute_name).lower()
