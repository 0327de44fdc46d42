"""Domain errors raised by service modules and translated by the routes."""


class RankMeError(Exception):
    """Base class for errors surfaced to the user"""
    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(RankMeError):
    status_code = 400


class PermissionDenied(RankMeError):
    status_code = 403


class NotFound(RankMeError):
    status_code = 404


class ConflictError(RankMeError):
    status_code = 409
