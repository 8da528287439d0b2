# src/academic_records/db_implementations/academic_repositories.py
import asyncpg

from academic_records.db_implementations.postgresql_repository import (
    PostgresRecordRepository,
)
from academic_records.models.student import STUDENT, Student
from academic_records.models.teacher import TEACHER, Teacher


class TeacherRepository(PostgresRecordRepository[Teacher]):
    """Listings and partial updates of the `teacher` table."""

    def __init__(self, db_pool: asyncpg.Pool):
        super().__init__(db_pool, Teacher, TEACHER)


class StudentRepository(PostgresRecordRepository[Student]):
    """Listings and partial updates of the `student` table."""

    def __init__(self, db_pool: asyncpg.Pool):
        super().__init__(db_pool, Student, STUDENT)
