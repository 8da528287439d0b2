class ObjectNotFoundException(Exception):
    """Exception raised when a record with the specified identifier does not exist."""

    def __init__(self, message: str = "The requested record was not found."):
        super().__init__(message)


class KeyAlreadyExistsException(Exception):
    """Exception raised when an update would violate a unique constraint."""

    def __init__(self, message: str = "A record with the same key already exists."):
        super().__init__(message)


class StatementExecutionError(RuntimeError):
    """The store failed to execute a well-formed statement."""

    def __init__(self, message: str = "Statement execution failed."):
        super().__init__(message)


class StatementInvariantError(RuntimeError):
    """Placeholders and bound parameters went out of step. Always a builder bug."""

    def __init__(self, message: str = "Statement parameters do not match placeholders."):
        super().__init__(message)


class StatementStateError(StatementInvariantError):
    """A builder operation was called in a state that does not accept it."""

    def __init__(self, message: str = "Builder operation not allowed in current state."):
        super().__init__(message)
