# src/academic_records/models/teacher.py
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from academic_records.base.interfaces import EntityDefinition
from academic_records.base.permissions import Capability, CapabilityResolver
from academic_records.base.projection import EntityProjection, register_projection
from academic_records.base.statement import Match
from academic_records.models.column_types import Int4


class Teacher(BaseModel):
    """A teacher record. Field names are column names, aliases are attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[Int4] = None
    user_id: Optional[Int4] = None
    name: Optional[str] = None
    school_id: Optional[Int4] = None
    college_id: Optional[Int4] = None
    dep_id: Optional[Int4] = None
    gender: Optional[str] = None
    birthday: Optional[date] = None
    graduation_date: Optional[date] = None
    work_date: Optional[date] = None
    nation: Optional[Int4] = None
    degree: Optional[Int4] = None
    academic: Optional[Int4] = None
    major: Optional[str] = None
    prof_title: Optional[Int4] = None
    prof_title_ass_date: Optional[date] = None
    graduate_institution: Optional[str] = None
    major_research: Optional[str] = None
    subject_category: Optional[Int4] = None
    id_number: Optional[str] = None
    is_academic_leader: Optional[bool] = None
    sort: Optional[Int4] = None
    remark: Optional[str] = None
    is_enable: Optional[bool] = None
    create_time: Optional[datetime] = None
    create_user: Optional[str] = None
    modify_time: Optional[datetime] = None
    modify_user: Optional[str] = None


TEACHER_PROJECTION = register_projection(
    Teacher,
    EntityProjection(
        "teacher",
        (
            "id", "userId", "name", "schoolId", "collegeId", "depId",
            "gender", "birthday", "graduationDate", "workDate", "nation",
            "degree", "academic", "major", "profTitle", "profTitleAssDate",
            "graduateInstitution", "majorResearch", "subjectCategory",
            "idNumber", "isAcademicLeader", "sort", "remark", "isEnable",
            "createTime", "createUser", "modifyTime", "modifyUser",
        ),
        excluded=("createUser", "modifyUser"),
    ),
)

TEACHER = EntityDefinition(
    projection=TEACHER_PROJECTION,
    filters={
        "name": Match.LIKE,
        "gender": Match.EQ,
        "workDate": Match.EQ,
        "nation": Match.EQ,
        "academic": Match.EQ,
        "degree": Match.EQ,
        "profTitle": Match.EQ,
        "schoolId": Match.EQ,
        "collegeId": Match.EQ,
        "depId": Match.EQ,
        "isEnable": Match.EQ,
    },
    updatable=(
        "name", "schoolId", "collegeId", "depId", "gender", "birthday",
        "graduationDate", "workDate", "nation", "degree", "academic", "major",
        "profTitle", "profTitleAssDate", "graduateInstitution",
        "majorResearch", "subjectCategory", "idNumber", "isAcademicLeader",
        "sort", "remark", "isEnable",
    ),
    nullable=(
        "birthday", "graduationDate", "workDate", "major", "profTitleAssDate",
        "graduateInstitution", "majorResearch", "subjectCategory", "remark",
    ),
    default_sort="sort",
    row_capabilities=CapabilityResolver((
        Capability("edit", "/teacher", "PATCH"),
        Capability("resetPassword", "/user/password", "PATCH"),
        Capability("userView", "/user/*", "GET"),
        Capability("userEdit", "/user", "PATCH"),
    )),
    page_capabilities=CapabilityResolver((
        Capability("add", "/teacher", "POST"),
        Capability("import", "/teacher/import", "POST"),
    )),
)
