"""Scheduling errors - typed failures raised by the resolver and mapped at the HTTP boundary"""


class SchedulingError(Exception):
    """Base class for every failure the scheduling core reports"""

    status_code = 500
    kind = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed date/time or an inverted time range"""

    status_code = 400
    kind = "validation_error"


class NotFoundError(SchedulingError):
    """Referenced recurring slot or exception does not exist"""

    status_code = 404
    kind = "not_found"


class InvalidOccurrenceDateError(NotFoundError, ValidationError):
    """A per-occurrence operation named a date that cannot hold an occurrence"""

    status_code = 404
    kind = "not_found"


class ConflictError(SchedulingError):
    """Overlap with an existing slot or exception, or a repeated delete"""

    status_code = 409
    kind = "conflict"


class CapacityError(ConflictError):
    """Day of week already holds the maximum number of recurring slots"""

    status_code = 409
    kind = "capacity_exceeded"


class PersistenceError(SchedulingError):
    """Storage failure; the whole operation may be retried by the caller"""

    status_code = 500
    kind = "persistence_error"
