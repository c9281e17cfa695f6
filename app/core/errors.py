"""Domain exceptions"""


class EamsError(Exception):
    """Base class for errors raised by the service"""


class ValidationError(EamsError):
    """Malformed rule, criteria or payload. Raised before any store mutation."""


class NotFoundError(EamsError):
    """A referenced rule or record does not exist"""


class ConflictError(EamsError):
    """A write would violate a uniqueness constraint (e.g. duplicate rule name)"""


class StoreError(EamsError):
    """A record store operation failed (connectivity, timeout, constraint)"""
