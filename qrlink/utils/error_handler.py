from flask import current_app

from .response import api_error


class ApiError(Exception):
    status_code = 400
    message = "Bad Request"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(ApiError):
    status_code = 400


class InvalidDateFormat(ValidationError):
    message = "Invalid date format. Expected YYYY-MM-DD."


class InvalidDateValue(ValidationError):
    message = "Invalid date value."


class InvalidDateRange(ValidationError):
    message = "Invalid date range. 'from' must be on or before 'to'."


class Unauthorized(ApiError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    message = "Not Found"


class Conflict(ApiError):
    status_code = 409
    message = "Conflict"


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def api_error_raised(e):
        return api_error(e.message, e.status_code)

    @app.errorhandler(400)
    def bad_request(e):
        return api_error("Bad Request", 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return api_error("Unauthorized", 401)

    @app.errorhandler(403)
    def forbidden(e):
        return api_error("Forbidden", 403)

    @app.errorhandler(404)
    def not_found(e):
        return api_error("Not Found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error("Method Not Allowed", 405)

    @app.errorhandler(500)
    def server_error(e):
        current_app.logger.exception(f"Unhandled error: {e}")
        return api_error("Server Error", 500)
