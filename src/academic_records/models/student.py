# src/academic_records/models/student.py
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from academic_records.base.interfaces import EntityDefinition
from academic_records.base.permissions import Capability, CapabilityResolver
from academic_records.base.projection import EntityProjection, register_projection
from academic_records.base.statement import Match
from academic_records.models.column_types import Int4


class Student(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[Int4] = None
    user_id: Optional[Int4] = None
    name: Optional[str] = None
    no: Optional[str] = None
    gender: Optional[str] = None
    school_id: Optional[Int4] = None
    college_id: Optional[Int4] = None
    dep_id: Optional[Int4] = None
    specialty_id: Optional[Int4] = None
    classes_id: Optional[Int4] = None
    enter_date: Optional[date] = None
    birthday: Optional[date] = None
    id_number: Optional[str] = None
    academic: Optional[Int4] = None
    sort: Optional[Int4] = None
    remark: Optional[str] = None
    is_enable: Optional[bool] = None
    create_time: Optional[datetime] = None
    create_user: Optional[str] = None
    modify_time: Optional[datetime] = None
    modify_user: Optional[str] = None


STUDENT_PROJECTION = register_projection(
    Student,
    EntityProjection(
        "student",
        (
            "id", "userId", "name", "no", "gender", "schoolId", "collegeId",
            "depId", "specialtyId", "classesId", "enterDate", "birthday",
            "idNumber", "academic", "sort", "remark", "isEnable",
            "createTime", "createUser", "modifyTime", "modifyUser",
        ),
        excluded=("createUser", "modifyUser"),
    ),
)

STUDENT = EntityDefinition(
    projection=STUDENT_PROJECTION,
    filters={
        "name": Match.LIKE,
        "no": Match.LIKE,
        "gender": Match.EQ,
        "schoolId": Match.EQ,
        "collegeId": Match.EQ,
        "depId": Match.EQ,
        "specialtyId": Match.EQ,
        "classesId": Match.EQ,
        "academic": Match.EQ,
        "isEnable": Match.EQ,
    },
    updatable=(
        "name", "no", "gender", "schoolId", "collegeId", "depId",
        "specialtyId", "classesId", "enterDate", "birthday", "idNumber",
        "academic", "sort", "remark", "isEnable",
    ),
    nullable=("enterDate", "birthday", "idNumber", "remark"),
    default_sort="sort",
    row_capabilities=CapabilityResolver((
        Capability("edit", "/student", "PATCH"),
        Capability("resetPassword", "/user/password", "PATCH"),
        Capability("userView", "/user/*", "GET"),
        Capability("userEdit", "/user", "PATCH"),
    )),
    page_capabilities=CapabilityResolver((
        Capability("add", "/student", "POST"),
        Capability("import", "/student/import", "POST"),
    )),
)
