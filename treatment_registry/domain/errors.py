"""Errors raised by registry operations.

Every error is reported synchronously to the caller of the failing operation
and the store is left exactly as it was before the call.
"""


class RegistryError(Exception):
    """Base class for all registry failures."""


class Unauthorized(RegistryError):
    """Caller identity does not match the record's owning identity."""


class InvalidArgument(RegistryError):
    """A required value is empty or outside its allowed range."""


class AlreadyExists(RegistryError):
    """The one-way after-image transition has already happened."""


class NotFound(RegistryError):
    """No record matches the requested identity."""


class TransferFailed(RegistryError):
    """The value-transfer collaborator could not complete a payment."""
