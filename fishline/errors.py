"""Error taxonomy shared by the order, stage and weight services.

Each error carries the HTTP status the API answers with, so the blueprint
can turn any of them into ``{"success": false, "error": message}`` without
knowing which operation raised it.
"""


class FishlineError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FishlineError):
    """Missing or malformed input the caller can fix."""

    status_code = 400


class InvalidStatusError(ValidationError):
    """An order status outside ABERTA/EM_ANDAMENTO/FECHADA/CANCELADA."""


class NotFoundError(FishlineError):
    status_code = 404


class InvalidStateError(FishlineError):
    """The entity exists but its current state forbids the operation."""

    status_code = 400


class ConflictError(FishlineError):
    status_code = 409


class InfrastructureError(FishlineError):
    """Store or ERP unreachable. Never retried here."""

    status_code = 500
