"""Exceptions raised by the membership core."""


class MembershipError(Exception):
    """Base class for membership domain errors."""


class PersistenceError(MembershipError):
    """A database write failed; wraps the underlying SQLAlchemy error."""
