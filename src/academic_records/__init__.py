# src/academic_records/__init__.py

"""
Academic Records Library Initialization.

Builds positionally-parameterized PostgreSQL statements from optional search
and update criteria, and runs filtered/paginated listings and partial updates
of teacher and student records over an asyncpg pool.

It initializes a logger with a NullHandler and makes the statement builder,
query assemblers, exceptions and repositories available at the top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False  # Prevent log messages from propagating to the root logger

# --------------------------------------------------------------------------
# Exception Exports
# --------------------------------------------------------------------------
from .base.exceptions import (
    KeyAlreadyExistsException,
    ObjectNotFoundException,
    StatementExecutionError,
    StatementInvariantError,
    StatementStateError,
)
from .base.validation_exceptions import (
    EmptyUpdateError,
    InvalidIdentifierError,
    PageRequestError,
    UnknownAttributeError,
    ValidationError,
)

# --------------------------------------------------------------------------
# Statement Building Exports
# --------------------------------------------------------------------------
from .base.naming import column_name
from .base.statement import ABSENT, CriteriaSet, Criterion, Match, Statement
from .base.projection import EntityProjection, FieldDescriptor, projection_for
from .base.builder import StatementBuilder
from .base.paging import Page, PageRequest, SortDirection
from .base.assembler import (
    ListingQueryAssembler,
    ListingStatements,
    UpdateQueryAssembler,
)
from .base.permissions import Capability, CapabilityResolver

# --------------------------------------------------------------------------
# Repository Exports
# --------------------------------------------------------------------------
from .base.interfaces import EntityDefinition, RecordRepository
from .db_implementations.postgresql_repository import PostgresRecordRepository
from .db_implementations.academic_repositories import (
    StudentRepository,
    TeacherRepository,
)
from .config import DatabaseSettings, create_pool

__all__ = [
    # Exceptions
    "ObjectNotFoundException",
    "KeyAlreadyExistsException",
    "StatementExecutionError",
    "StatementInvariantError",
    "StatementStateError",
    "ValidationError",
    "UnknownAttributeError",
    "InvalidIdentifierError",
    "EmptyUpdateError",
    "PageRequestError",
    # Statements
    "column_name",
    "ABSENT",
    "Criterion",
    "CriteriaSet",
    "Match",
    "Statement",
    "StatementBuilder",
    "EntityProjection",
    "FieldDescriptor",
    "projection_for",
    # Listings and updates
    "Page",
    "PageRequest",
    "SortDirection",
    "ListingQueryAssembler",
    "ListingStatements",
    "UpdateQueryAssembler",
    "Capability",
    "CapabilityResolver",
    # Repositories
    "EntityDefinition",
    "RecordRepository",
    "PostgresRecordRepository",
    "TeacherRepository",
    "StudentRepository",
    # Configuration
    "DatabaseSettings",
    "create_pool",
    # Logging
    "logger",
]
