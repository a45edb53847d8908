"""
core/errors.py -- Exception taxonomy shared by the storage and auth layers.

Absence (no row found) is never an error: lookups and session authentication
return None. Only the conditions below raise.

  ValidationError   -- bad username/password length, user-correctable.
  ConflictError     -- duplicate username, user-correctable.
  NotFoundError     -- unknown username on sign-in.
  CorruptDataError  -- malformed stored credential. Indicates a storage-layer
                       bug; never swallow it.
  StorageError      -- store failure (connectivity, SQL). Propagated, not retried.
  ConstraintError   -- StorageError raised for a constraint violation.

Layer rule: core/ is the kernel. This module may not import from auth/ or db/.
"""


class AuthError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(AuthError):
    pass


class ConflictError(AuthError):
    pass


class NotFoundError(AuthError):
    pass


class CorruptDataError(AuthError):
    pass


class StorageError(AuthError):
    pass


class ConstraintError(StorageError):
    """A write was rejected by a UNIQUE, NOT NULL or FOREIGN KEY constraint."""
