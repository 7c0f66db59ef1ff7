import asyncio

import asyncpg


class StoreError(Exception):
    """Base class for record store failures"""
    status_code = 500

    def __init__(self, message: str, table: str = None):
        super().__init__(message)
        self.message = message
        self.table = table


class RecordNotFound(StoreError):
    status_code = 404


class StoreConflict(StoreError):
    """Unique or foreign key constraint rejected the write"""
    status_code = 409


class StoreInvalidInput(StoreError):
    """Value rejected before or by the database, e.g. a malformed UUID"""
    status_code = 400


class StorePermissionDenied(StoreError):
    status_code = 403


class StoreUnavailable(StoreError):
    """Transient failure: connection refused, dropped or timed out. Safe to retry idempotent calls."""
    status_code = 503


_CONFLICT_ERRORS = (
    asyncpg.exceptions.UniqueViolationError,
    asyncpg.exceptions.ForeignKeyViolationError,
    asyncpg.exceptions.CheckViolationError,
    asyncpg.exceptions.NotNullViolationError,
)

_INVALID_INPUT_ERRORS = (
    asyncpg.exceptions.DataError,
    asyncpg.exceptions.InvalidTextRepresentationError,
    # asyncpg raises its client-side DataError, also a ValueError, when encoding a bad argument
    ValueError,
)

_PERMISSION_ERRORS = (
    asyncpg.exceptions.InsufficientPrivilegeError,
    asyncpg.exceptions.InvalidAuthorizationSpecificationError,
)

_TRANSIENT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.InterfaceError,
    asyncio.TimeoutError,
    OSError,
)


def translate_db_error(exc: Exception, table: str = None) -> StoreError:
    """Map a driver exception onto the store error taxonomy"""
    if isinstance(exc, StoreError):
        return exc
    # Client-side DataError subclasses InterfaceError, so check it before the transient group
    if isinstance(exc, _INVALID_INPUT_ERRORS):
        return StoreInvalidInput(str(exc), table)
    if isinstance(exc, _CONFLICT_ERRORS):
        return StoreConflict(str(exc), table)
    if isinstance(exc, _PERMISSION_ERRORS):
        return StorePermissionDenied(str(exc), table)
    if isinstance(exc, _TRANSIENT_ERRORS):
        return StoreUnavailable(str(exc) or exc.__class__.__name__, table)
    # Pool not initialised counts as unreachable backend
    if isinstance(exc, RuntimeError) and "pool is not initialized" in str(exc):
        return StoreUnavailable(str(exc), table)
    return StoreError(str(exc), table)
