"""Exceptions raised by pagepace operations."""


class PagePaceError(Exception):
    """Base exception for pagepace errors."""

    pass


class InvalidArgumentError(PagePaceError, ValueError):
    """Raised when an argument fails validation before any I/O."""

    pass


class SessionConflictError(InvalidArgumentError):
    """Raised when a shelf entry already has an open reading session."""

    pass


class NotFoundError(PagePaceError, LookupError):
    """Raised when a session, shelf entry or book does not exist."""

    pass


class PageCountUnavailableError(PagePaceError):
    """Raised when a recommendation is requested for a book of unknown length."""

    pass


class StoreUnavailableError(PagePaceError):
    """Raised when the underlying store fails a required read or write."""

    pass
