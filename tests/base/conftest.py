import pytest

from academic_records.base.builder import StatementBuilder
from academic_records.base.projection import EntityProjection

# Columns selected from the `person` table, in declaration order.
PERSON_COLUMNS = "id, name, gender, dep_id, work_date, remark"


@pytest.fixture
def person() -> EntityProjection:
    return EntityProjection(
        "person",
        ("id", "name", "gender", "depId", "workDate", "remark", "passwordHash"),
        excluded=("passwordHash",),
    )


@pytest.fixture
def builder(person: EntityProjection) -> StatementBuilder:
    return StatementBuilder.for_projection(person)


@pytest.fixture
def person_columns() -> str:
    return PERSON_COLUMNS
