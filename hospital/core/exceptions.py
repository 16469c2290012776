"""Domain errors raised by the service layer.

Routes translate these into HTTP responses; services never catch them.
"""


class HospitalError(Exception):
    """Base class for domain errors."""


class InvalidArgumentError(HospitalError, ValueError):
    """Malformed or out-of-policy input."""


class NotFoundError(HospitalError, LookupError):
    """A referenced entity does not exist."""


class InvalidOperationError(HospitalError):
    """A business rule forbids the requested transition."""


class ConflictError(InvalidOperationError):
    """The request collides with existing state."""


class AuthenticationError(HospitalError):
    """Credentials or session could not be verified."""
