"""
Domain error hierarchy.

Services raise these; the application maps them to HTTP responses so routes
do not need to translate every business-rule failure by hand.
"""


class DigiKiteError(Exception):
    """Base exception for business-rule failures."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DigiKiteError):
    status_code = 404


class ConflictError(DigiKiteError):
    """A uniqueness rule would be violated (duplicate email, plan code...)."""

    status_code = 409


class BusinessRuleError(DigiKiteError):
    """The requested operation is not allowed in the entity's current state."""

    status_code = 400


class ForbiddenError(DigiKiteError):
    status_code = 403
