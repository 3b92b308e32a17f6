"""
Error taxonomy. Each error carries the HTTP status it is rendered with.
"""


class MedHistoryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthenticated(MedHistoryError):
    """Missing, malformed, expired or otherwise invalid credentials."""
    status_code = 401


class AccountNotFound(MedHistoryError):
    """The token is valid but no "usuario" row matches it."""
    status_code = 404


class Forbidden(MedHistoryError):
    status_code = 403


class ValidationFailure(MedHistoryError):
    status_code = 400


class StoreFailure(MedHistoryError):
    status_code = 500


class NoDoctorsAvailable(MedHistoryError):
    status_code = 503
