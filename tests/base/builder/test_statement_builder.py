# tests/base/builder/test_statement_builder.py

import itertools

import pytest

from academic_records.base.builder import BuilderState, StatementBuilder
from academic_records.base.exceptions import (
    StatementInvariantError,
    StatementStateError,
)
from academic_records.base.projection import EntityProjection
from academic_records.base.statement import ABSENT, Criterion, Statement
from academic_records.base.validation_exceptions import (
    UnknownAttributeError,
    ValidationError,
)


# --- SELECT ---
def test_select_skips_absent_criteria(builder, person, person_columns):
    statement = (
        builder.select_for(person)
        .where(Criterion.like("name", "John"))
        .and_([Criterion.eq("gender", ABSENT), Criterion.eq("depId", 3)])
        .build()
    )

    assert statement.text == (
        f"SELECT {person_columns} FROM person "
        f"WHERE name LIKE $1 AND dep_id = $2"
    )
    assert statement.parameters == ("%John%", 3)


def test_select_for_leaves_out_excluded_columns(builder, person):
    statement = builder.select_for(person, exclude=("remark", "work_date")).build()
    assert statement.text == "SELECT id, name, gender, dep_id FROM person"
    assert statement.parameters == ()


def test_select_for_rejects_foreign_projection(builder):
    other = EntityProjection("department", ("id", "name"))
    with pytest.raises(ValueError):
        builder.select_for(other)


def test_select_accepts_column_producer(builder):
    statement = builder.select(lambda: "count(*)").build()
    assert statement.text == "SELECT count(*) FROM person"


def test_select_rejects_non_string_producer(builder):
    with pytest.raises(TypeError):
        builder.select(lambda: 42)


def test_bare_where_is_written_as_is(builder):
    builder.select("count(*)").where()
    assert builder.statement.text == "SELECT count(*) FROM person WHERE "


def test_literal_where_binds_nothing(builder):
    statement = (
        builder.select("*")
        .where("is_enable = true")
        .and_(Criterion.eq("gender", "M"))
        .build()
    )

    assert statement.text == "SELECT * FROM person WHERE is_enable = true AND gender = $1"
    assert statement.parameters == ("M",)


def test_or_predicate(builder):
    statement = (
        builder.select("*")
        .where(Criterion.eq("depId", 1))
        .or_(Criterion.eq("depId", 2))
        .build()
    )
    assert statement.text == "SELECT * FROM person WHERE dep_id = $1 OR dep_id = $2"
    assert statement.parameters == (1, 2)


def test_any_of_predicate(builder):
    statement = builder.select("*").where(Criterion.any_of("depId", (1, 2))).build()

    assert statement.text == "SELECT * FROM person WHERE dep_id = ANY($1)"
    assert statement.parameters == ([1, 2],)


def test_order_by_and_page(builder):
    statement = builder.select("*").order_by("id ASC").page(10, 20).build()

    assert statement.text == "SELECT * FROM person ORDER BY id ASC LIMIT $1 OFFSET $2"
    assert statement.parameters == (10, 20)


def test_left_join_on():
    builder = StatementBuilder("person")
    statement = (
        builder.select("person.id, department.name")
        .left_join("department")
        .on("department.id = person.dep_id")
        .order_by("person.id DESC")
        .build()
    )

    assert statement.text == (
        "SELECT person.id, department.name FROM person "
        "LEFT JOIN department ON department.id = person.dep_id "
        "ORDER BY person.id DESC"
    )


def test_builder_without_projection_maps_names():
    statement = (
        StatementBuilder("teacher")
        .select("*")
        .where(Criterion.eq("profTitleAssDate", "2020-01-01"))
        .build()
    )
    assert statement.text == "SELECT * FROM teacher WHERE prof_title_ass_date = $1"


def test_builder_rejects_malformed_table():
    with pytest.raises(ValidationError):
        StatementBuilder("person; drop table person")


def test_unknown_attribute_is_rejected(builder):
    with pytest.raises(UnknownAttributeError):
        builder.select("*").where(Criterion.eq("salary", 1))


def test_null_predicate_is_rejected(builder):
    with pytest.raises(ValidationError):
        builder.select("*").where(Criterion.eq("gender", None))


def test_absent_criterion_is_a_no_op(builder):
    snapshot = builder.select("*").statement
    builder.and_(Criterion.eq("gender")).or_([Criterion.like("name")])

    assert builder.statement == snapshot
    assert builder.predicates == 0


def test_where_argument_types(builder):
    builder.select("*")
    with pytest.raises(TypeError):
        builder.where([Criterion.eq("gender", "M")])
    with pytest.raises(TypeError):
        builder.and_(None)


@pytest.mark.parametrize(
    "flags", list(itertools.product((False, True), repeat=4))
)
def test_placeholders_stay_contiguous_for_any_combination(builder, person, flags):
    candidates = [
        Criterion.like("name", "Li"),
        Criterion.eq("gender", "F"),
        Criterion.eq("depId", 7),
        Criterion.eq("remark", "r"),
    ]
    criteria = [
        c if present else Criterion(c.attribute, ABSENT, c.match)
        for c, present in zip(candidates, flags)
    ]
    present = [c for c in criteria if c.is_present]

    builder.select("*")
    if present:
        builder.where(present[0]).and_(criteria[criteria.index(present[0]) + 1:])
    statement = builder.build()

    parts = []
    for index, criterion in enumerate(present, start=1):
        keyword = "WHERE" if index == 1 else "AND"
        column = person.column(criterion.attribute)
        operator = "LIKE" if criterion.attribute == "name" else "="
        parts.append(f"{keyword} {column} {operator} ${index}")
    expected = " ".join(["SELECT * FROM person"] + parts)

    assert statement.text == expected
    assert statement.parameters == tuple(c.bound_value for c in present)
    assert statement.placeholders() == list(range(1, len(present) + 1))
    assert builder.predicates == len(present)


# --- UPDATE ---
def test_update_sets_present_fields_only(builder):
    statement = (
        builder.update(Criterion.eq("id", 5))
        .set(Criterion.eq("name", ABSENT))
        .set(Criterion.eq("remark", "x"))
        .where_key()
        .build()
    )

    assert statement.text == "UPDATE person SET remark = $2 WHERE id = $1"
    assert statement.parameters == (5, "x")
    assert builder.assignments == 1


def test_update_joins_assignments_with_commas(builder):
    statement = (
        builder.update(Criterion.eq("id", 5))
        .set(Criterion.eq("name", "Ann"))
        .set(Criterion.eq("remark", "x"))
        .where_key()
        .build()
    )

    assert statement.text == "UPDATE person SET name = $2, remark = $3 WHERE id = $1"
    assert statement.parameters == (5, "Ann", "x")
    assert builder.assignments == 2


def test_update_binds_explicit_null(builder):
    statement = (
        builder.update(Criterion.eq("id", 5))
        .set(Criterion.eq("remark", None))
        .where_key()
        .build()
    )
    assert statement.text == "UPDATE person SET remark = $2 WHERE id = $1"
    assert statement.parameters == (5, None)


def test_update_without_where_key_fails_verification(builder):
    builder.update(Criterion.eq("id", 5)).set(Criterion.eq("remark", "x"))
    with pytest.raises(StatementInvariantError):
        builder.build()


@pytest.mark.parametrize("key", [Criterion.eq("id"), Criterion.eq("id", None)])
def test_update_requires_key_value(builder, key):
    with pytest.raises(ValidationError):
        builder.update(key)


def test_where_key_requires_key(builder):
    builder.update()
    with pytest.raises(StatementStateError):
        builder.where_key()


# --- Lifecycle ---
def test_operations_before_start_are_rejected(builder):
    assert builder.state is BuilderState.IDLE
    with pytest.raises(StatementStateError):
        builder.where(Criterion.eq("gender", "M"))
    with pytest.raises(StatementStateError):
        builder.where()
    with pytest.raises(StatementStateError):
        builder.set(Criterion.eq("name", "a"))
    with pytest.raises(StatementStateError):
        builder.page(10, 0)
    with pytest.raises(StatementStateError):
        builder.build()


def test_build_is_repeatable_and_final(builder):
    builder.select("*").where(Criterion.eq("depId", 1))
    first = builder.build()

    assert builder.state is BuilderState.BUILT
    assert builder.build() == first
    with pytest.raises(StatementStateError):
        builder.and_(Criterion.eq("gender", "M"))


def test_start_resets_previous_statement(builder):
    builder.select("*").where(Criterion.eq("depId", 1)).build()
    statement = builder.select("count(*)").build()

    assert statement == Statement("SELECT count(*) FROM person")
    assert builder.predicates == 0


def test_clear_returns_to_idle(builder):
    builder.select("*").where(Criterion.eq("depId", 1))
    builder.clear()

    assert builder.state is BuilderState.IDLE
    assert builder.statement == Statement()
    assert builder.predicates == 0


# --- Present falsy values ---
def test_falsy_values_are_present(builder):
    statement = (
        builder.select("*")
        .where(Criterion.eq("gender", ""))
        .and_([Criterion.eq("depId", 0), Criterion.eq("remark", False)])
        .build()
    )

    assert statement.text == (
        "SELECT * FROM person WHERE gender = $1 AND dep_id = $2 AND remark = $3"
    )
    assert statement.parameters == ("", 0, False)
    assert builder.predicates == 3


def test_falsy_assignments_are_present(builder):
    statement = (
        builder.update(Criterion.eq("id", 0))
        .set(Criterion.eq("depId", 0))
        .set(Criterion.eq("remark", ""))
        .where_key()
        .build()
    )

    assert statement.text == "UPDATE person SET dep_id = $2, remark = $3 WHERE id = $1"
    assert statement.parameters == (0, 0, "")


# --- Condition order ---
def test_unknown_update_key_binds_nothing(builder):
    with pytest.raises(UnknownAttributeError):
        builder.update(Criterion.eq("salary", 1))
    assert builder.statement.parameters == ()
    assert builder.statement.next_index == 1


def test_and_without_where_is_rejected(builder):
    builder.select("*").where(Criterion.eq("gender"))
    with pytest.raises(StatementStateError):
        builder.and_(Criterion.eq("depId", 3))
    with pytest.raises(StatementStateError):
        builder.or_("is_enable = true")


def test_and_after_absent_where_stays_a_no_op(builder):
    statement = (
        builder.select("*")
        .where(Criterion.eq("gender"))
        .and_([Criterion.eq("depId")])
        .build()
    )
    assert statement.text == "SELECT * FROM person"


def test_and_continues_join_condition():
    statement = (
        StatementBuilder("person")
        .select("person.id")
        .left_join("department")
        .on("department.id = person.dep_id")
        .and_(Criterion.eq("schoolId", 2))
        .build()
    )
    assert statement.text == (
        "SELECT person.id FROM person LEFT JOIN department "
        "ON department.id = person.dep_id AND school_id = $1"
    )
