import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from utils.logging_utils import slim_cause

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error whose message is safe to show to API clients"""

    def __init__(self, message, http_status_code, severity, cause=None):
        super().__init__(message)
        self.message = message
        self.http_status_code = http_status_code
        self.severity = severity  # logging level
        self.__cause__ = cause


class BadRequestError(ApiError):
    def __init__(self, message, cause=None):
        super().__init__(message, 400, logging.WARNING, cause)


class UnauthorizedError(ApiError):
    def __init__(self, message, cause=None):
        super().__init__(message, 401, logging.WARNING, cause)


class NotFoundError(ApiError):
    def __init__(self, message, cause=None):
        super().__init__(message, 404, logging.WARNING, cause)


class InternalServerError(ApiError):
    def __init__(self, message, cause=None, severity=logging.ERROR):
        super().__init__(message, 500, severity, cause)


def handle_api_error(error):
    extra = {'path': request.path, 'method': request.method}
    cause = slim_cause(error.__cause__)
    if cause is not None:
        extra['cause'] = cause
    logger.log(error.severity, f"{error.message} {extra}")
    return jsonify({'error': error.message}), error.http_status_code


def handle_http_exception(error):
    if error.code == 404:
        logger.warning(f"Unknown route {request.method} {request.path}")
        return jsonify({'error': 'Not found'}), 404
    return jsonify({'error': error.description}), error.code


def handle_unexpected_error(error):
    logger.exception(f"Unhandled error on {request.method} {request.path}: {error}")
    return jsonify({'error': 'Internal server error'}), 500


def register_error_handlers(app):
    app.register_error_handler(ApiError, handle_api_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_error)
