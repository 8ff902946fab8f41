"""
Domain errors raised by the repository and identity layers.

Each carries the HTTP status it maps to; app.main registers a single handler
that renders them as {"error": message}.
"""


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404
