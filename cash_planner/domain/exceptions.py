"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Requested entity does not exist"""

    pass


class ValidationError(DomainException, ValueError):
    """
    Malformed input rejected at the boundary.

    Bad date strings, unknown enum tags, an inconsistent HT/TVA/TTC triangle
    or missing simulation parameters. Subclasses ValueError so pydantic
    validators report it as a field error.
    """

    pass


class RepositoryError(DomainException):
    """Storage layer failure (database or object storage), message is opaque"""

    pass
