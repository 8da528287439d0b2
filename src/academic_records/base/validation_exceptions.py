# validation_exceptions.py
class ValidationError(ValueError):
    """Base class for client-side errors raised before any SQL is executed."""
    pass

class UnknownAttributeError(ValidationError, AttributeError):
    """Error raised when an attribute is not part of the entity projection."""
    pass

class InvalidIdentifierError(ValidationError):
    """Error raised when a table, attribute or column name is malformed."""
    pass

class EmptyUpdateError(ValidationError):
    """Error raised when a partial update carries no field to change."""
    pass

class PageRequestError(ValidationError):
    """Error raised when paging parameters are missing or out of range."""
    pass
