# src/academic_records/db_implementations/postgresql_repository.py


import asyncio
import logging
import re
from contextlib import asynccontextmanager
from logging import LoggerAdapter
from typing import (
    Any,
    AsyncGenerator,
    Dict,
    Generic,
    Iterable,
    Mapping,
    Optional,
    Type,
    TypeVar,
)

# --- asyncpg Driver Import ---
import asyncpg
from pydantic import ValidationError as PydanticValidationError

# --- Framework Imports ---
from academic_records.base.builder import StatementBuilder
from academic_records.base.exceptions import (
    KeyAlreadyExistsException,
    ObjectNotFoundException,
    StatementExecutionError,
    StatementInvariantError,
)
from academic_records.base.interfaces import (
    RESOURCE_KEY,
    EntityDefinition,
    RecordRepository,
)
from academic_records.base.paging import Page
from academic_records.base.statement import CriteriaSet, Criterion, Statement
from academic_records.base.validation_exceptions import ValidationError

# --- Type Variables ---
T = TypeVar("T")
DB_RECORD_TYPE = asyncpg.Record

_UPDATE_STATUS_RE = re.compile(r"^UPDATE\s+(\d+)$")


class PostgresRecordRepository(RecordRepository[T], Generic[T]):
    """
    PostgreSQL listing/update repository using asyncpg.

    Requires an asyncpg.Pool (or any object with awaitable ``acquire()`` and
    ``release(conn)``). Each public operation acquires one connection, runs
    its statements sequentially on it and releases it on every exit path.

    The entity type must be a pydantic model whose field names are the
    column names and whose aliases are the attribute names of the
    definition's projection.
    """

    # --- Initialization ---
    def __init__(
        self,
        db_pool: asyncpg.Pool,
        entity_type: Type[T],
        definition: EntityDefinition,
    ):
        """
        Initialize the repository with an existing connection pool.

        Args:
            db_pool: An active asyncpg.Pool object.
            entity_type: The pydantic model representing the entity.
            definition: Projection, filters and update whitelist.
        """
        if not (hasattr(db_pool, "acquire") and hasattr(db_pool, "release")):
            raise TypeError("db_pool must provide acquire() and release()")

        self._pool = db_pool
        self._entity_type = entity_type
        self._definition = definition
        self._listing = definition.listing_assembler()
        self._updates = definition.update_assembler()

        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{entity_type.__name__}]"
        )
        self._logger.info(
            f"Repository instance created (Pool) for "
            f"{entity_type.__name__} using table "
            f"'{self.table}' (Key: '{definition.key_attribute}')."
        )

    # --- Abstract Property Implementations ---
    @property
    def entity_type(self) -> Type[T]: return self._entity_type
    @property
    def definition(self) -> EntityDefinition: return self._definition
    @property
    def table(self) -> str: return self._definition.projection.table

    # --- Connection/Session Management ---
    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[asyncpg.Connection, None]:
        """
        Acquire connection from the pool and release it afterwards.
        """
        conn: Optional[asyncpg.Connection] = None
        try:
            conn = await self._pool.acquire()
            self._logger.debug(f"Acquired connection {conn} from pool.")
            yield conn
        except Exception as e:
            self._logger.error(
                f"Error during connection handling: {e}", exc_info=True
            )
            # Let specific db operation handlers wrap with _handle_db_error
            raise
        finally:
            if conn is not None:
                try:
                    await self._pool.release(conn)
                    self._logger.debug(
                        f"Released connection {conn} back to pool."
                    )
                except Exception as release_error:
                    self._logger.error(
                        f"Error releasing connection {conn}: {release_error}",
                        exc_info=True,
                    )

    # --- Listing ---
    async def page(
        self,
        payload: Mapping[str, Any],
        logger: LoggerAdapter,
        resources: Optional[Iterable[Mapping[str, Any]]] = None,
        timeout: Optional[float] = None,
    ) -> Page:
        """List one page of entities with total count and capability flags."""
        logger.debug(f"Listing {self.entity_type.__name__} page: {dict(payload)!r}")
        criteria, page_request = self._definition.parse_listing(
            self._coerce(payload, self._definition.filters)
        )
        statements = self._listing.assemble(criteria, page_request)
        if resources is None:
            resources = payload.get(RESOURCE_KEY)
        page_flags, row_flags = self.capabilities(resources)

        try:
            async with self._get_session() as conn:
                count = await self._fetch_count(conn, statements.count, logger, timeout)
                logger.debug(
                    f"Executing page query: SQL='{statements.page.text}', "
                    f"Params={list(statements.page.parameters)}"
                )
                records = await conn.fetch(
                    statements.page.text,
                    *statements.page.parameters,
                    timeout=timeout,
                )
        except Exception as e:
            logger.error(f"Error listing entities: {e}", exc_info=True)
            self._handle_db_error(e, f"listing {self.table}")
            raise  # pragma: no cover

        content = []
        for record_data in records:
            row = self._serialize_entity(self._deserialize_record(record_data))
            row.update(row_flags)
            content.append(row)
        logger.info(
            f"Listed {len(content)} of {count} {self.entity_type.__name__}(s)."
        )
        return Page(content=content, items_length=count, capabilities=page_flags)

    async def count(
        self,
        criteria: CriteriaSet,
        logger: LoggerAdapter,
        timeout: Optional[float] = None,
    ) -> int:
        """Count entities matching the present criteria."""
        logger.debug(f"Counting {self.entity_type.__name__}(s): {criteria!r}")
        statement = self._listing.count(criteria)

        try:
            async with self._get_session() as conn:
                return await self._fetch_count(conn, statement, logger, timeout)
        except Exception as e:
            logger.error(f"Error counting entities: {e}", exc_info=True)
            self._handle_db_error(e, f"counting {self.table}")
            raise  # pragma: no cover

    async def _fetch_count(
        self,
        conn: asyncpg.Connection,
        statement: Statement,
        logger: LoggerAdapter,
        timeout: Optional[float],
    ) -> int:
        logger.debug(
            f"Executing count query: SQL='{statement.text}', "
            f"Params={list(statement.parameters)}"
        )
        count_val = await conn.fetchval(
            statement.text, *statement.parameters, timeout=timeout
        )
        return int(count_val or 0)

    # --- Single Entity ---
    async def get(
        self,
        id: Any,
        logger: LoggerAdapter,
        timeout: Optional[float] = None,
        enabled_only: bool = False,
    ) -> T:
        """Retrieve an entity by its identity."""
        key = self._definition.key_attribute
        logger.debug(f"Getting {self.entity_type.__name__} by {key}='{id}'")
        if id is None:
            raise ValidationError(f"Identity '{key}' is required.")
        builder = (
            StatementBuilder.for_projection(self._definition.projection)
            .select_for(self._definition.projection)
            .where(Criterion.eq(key, id))
        )
        if enabled_only:
            builder.and_("is_enable = true")
        statement = builder.build()

        try:
            async with self._get_session() as conn:
                record_data = await conn.fetchrow(
                    statement.text, *statement.parameters, timeout=timeout
                )
        except Exception as e:
            logger.error(
                f"Error during get operation ({key}={id}): {e}", exc_info=True
            )
            self._handle_db_error(e, f"getting {self.table} {key} {id}")
            raise  # pragma: no cover

        if record_data is None:
            logger.warning(f"{self.entity_type.__name__} '{id}' not found.")
            raise ObjectNotFoundException(
                f"{self.entity_type.__name__} with {key} '{id}' not found."
            )
        entity = self._deserialize_record(record_data)
        logger.info(f"Retrieved {self.entity_type.__name__} '{id}'.")
        return entity

    # --- Partial Update ---
    async def update_partial(
        self,
        payload: Mapping[str, Any],
        logger: LoggerAdapter,
        timeout: Optional[float] = None,
    ) -> None:
        """Update the present fields of one entity."""
        accepted = (self._updates.key_attribute,) + self._updates.updatable
        key_value, candidates = self._updates.parse(self._coerce(payload, accepted))
        statement = self._updates.assemble(key_value, candidates)
        logger.debug(
            f"Executing update: SQL='{statement.text}', "
            f"Params={list(statement.parameters)}"
        )

        try:
            async with self._get_session() as conn:
                status = await conn.execute(
                    statement.text, *statement.parameters, timeout=timeout
                )
        except Exception as e:
            logger.error(
                f"Error updating {self.table} "
                f"{self._updates.key_attribute}={key_value}: {e}",
                exc_info=True,
            )
            self._handle_db_error(
                e, f"updating {self.table} {self._updates.key_attribute} {key_value}"
            )
            raise  # pragma: no cover

        match = _UPDATE_STATUS_RE.match(str(status or "").strip())
        updated_count = int(match.group(1)) if match else -1
        if updated_count == 0:
            logger.warning(
                f"Update target {self._updates.key_attribute}={key_value} "
                f"not found in '{self.table}'."
            )
            raise ObjectNotFoundException(
                f"{self.entity_type.__name__} with "
                f"{self._updates.key_attribute} '{key_value}' not found."
            )
        if updated_count < 0:
            logger.warning(f"Update status string format unexpected: {status}")
        else:
            logger.info(
                f"Updated {self.entity_type.__name__} "
                f"'{key_value}' ({len(candidates.present())} field(s))."
            )

    # --- Helper Method Implementations ---
    def _coerce(
        self, payload: Mapping[str, Any], attributes: Iterable[str]
    ) -> Dict[str, Any]:
        """
        Convert the values of `attributes` to the entity's field types.

        Keys outside `attributes` are passed through untouched; keys missing
        from the payload stay missing.
        """
        attributes = set(attributes)
        subset = {k: v for k, v in payload.items() if k in attributes}
        try:
            entity = self.entity_type.model_validate(subset)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {self.entity_type.__name__} value(s): {e}"
            ) from e
        coerced = dict(payload)
        coerced.update(entity.model_dump(exclude_unset=True, by_alias=True))
        return coerced

    def _serialize_entity(self, entity: T) -> Dict[str, Any]:
        """Convert an entity to its camelCase response mapping."""
        return entity.model_dump(mode="json", by_alias=True)

    def _deserialize_record(self, record_data: DB_RECORD_TYPE) -> T:
        """Convert asyncpg.Record (dict-like) into an entity object T."""
        if record_data is None:
            raise ValueError("Cannot deserialize None record data.")
        entity_dict = dict(record_data)
        try:
            return self.entity_type.model_validate(entity_dict)
        except Exception as e:
            self._logger.error(
                f"Failed to instantiate {self.entity_type.__name__} from DB "
                f"data: {e}. Data: {entity_dict!r}",
                exc_info=True,
            )
            raise ValueError(
                f"Failed to create {self.entity_type.__name__} from record"
            ) from e

    def _handle_db_error(self, error: Exception, context: str = "") -> None:
        """
        Map specific database errors or internal errors to appropriate exceptions.

        Args:
            error: The exception caught.
            context: A string describing the operation context where the error occurred.

        Raises:
            KeyAlreadyExistsException: For unique violations.
            StatementExecutionError: For any other error reported by the store.
            ValidationError, ObjectNotFoundException, StatementInvariantError:
                Re-raised unchanged.
            RuntimeError: For unexpected errors.
        """
        log_message = f"Error during {context}: {error}"

        # --- Handle asyncpg specific errors ---
        if isinstance(error, asyncpg.PostgresError):
            self._logger.error(log_message, exc_info=True)

            if isinstance(error, asyncpg.UniqueViolationError):
                raise KeyAlreadyExistsException(
                    f"Unique constraint '{getattr(error, 'constraint_name', None)}' violated "
                    f"during {context}. Detail: {error}"
                ) from error

            elif isinstance(error, asyncpg.NotNullViolationError):
                raise StatementExecutionError(
                    f"NOT NULL constraint violated for column "
                    f"'{getattr(error, 'column_name', None)}' during {context}. Detail: {error}"
                ) from error

            elif isinstance(
                error,
                (asyncpg.ForeignKeyViolationError, asyncpg.CheckViolationError),
            ):
                raise StatementExecutionError(
                    f"Constraint '{getattr(error, 'constraint_name', None)}' violated during "
                    f"{context}. Detail: {error}"
                ) from error

            elif isinstance(
                error,
                (
                    asyncpg.InsufficientPrivilegeError,
                    asyncpg.InvalidAuthorizationSpecificationError,
                ),
            ):
                raise StatementExecutionError(
                    f"DB authorization/privilege error during {context}. "
                    f"Detail: {error}"
                ) from error

            elif isinstance(
                error,
                (
                    asyncpg.UndefinedTableError,
                    asyncpg.UndefinedColumnError,
                    asyncpg.UndefinedFunctionError,
                ),
            ):
                raise StatementExecutionError(
                    f"DB schema mismatch or missing function during "
                    f"{context}. Detail: {error}"
                ) from error

            # Syntax errors likely indicate a bug in statement generation
            elif isinstance(error, asyncpg.PostgresSyntaxError):
                self._logger.error(
                    "PostgresSyntaxError indicates a likely bug in SQL generation.",
                    exc_info=True,
                )
                raise StatementExecutionError(
                    f"Invalid SQL syntax generated during {context}. "
                    f"Detail: {error}"
                ) from error

            else:
                raise StatementExecutionError(
                    f"A database error occurred during {context}: {error}"
                ) from error

        # --- Connectivity and timeouts ---
        elif isinstance(
            error,
            (OSError, TimeoutError, asyncio.TimeoutError, asyncpg.InterfaceError),
        ):
            self._logger.error(log_message, exc_info=True)
            raise StatementExecutionError(
                f"Database unavailable during {context}: {error}"
            ) from error

        # --- Handle specific non-DB errors from repository/framework logic ---
        elif isinstance(
            error,
            (
                ValidationError,
                ObjectNotFoundException,
                KeyAlreadyExistsException,
                StatementExecutionError,
                StatementInvariantError,
            ),
        ):
            self._logger.error(log_message)
            raise error

        # --- Handle truly unexpected errors ---
        else:
            self._logger.error(log_message, exc_info=True)
            raise RuntimeError(
                f"An unexpected error occurred during {context}"
            ) from error
