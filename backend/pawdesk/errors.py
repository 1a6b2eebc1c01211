"""Domain errors raised by the session/ledger services.

Every error carries the HTTP status the API maps it to. Handlers turn them into
``{"error": message}`` bodies; the unit of work is rolled back before that.
"""


class PawdeskError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailedError(PawdeskError):
    status_code = 400


class NotFoundError(PawdeskError):
    status_code = 404


class PolicyViolationError(PawdeskError):
    status_code = 400


class DatabaseNotConfiguredError(PawdeskError):
    status_code = 503

    def __init__(self, message: str = "Database is not configured. Set DATABASE_URL to enable this action."):
        super().__init__(message)
