from flask import jsonify
from werkzeug.exceptions import HTTPException, MethodNotAllowed, RequestEntityTooLarge
from services.errors import ServiceError, UpstreamProviderError, FileTooLargeError
import logging

logger = logging.getLogger(__name__)

def _error_response(body, status_code):
    return jsonify(body), status_code

def handle_service_error(error):
    if isinstance(error, UpstreamProviderError):
        logger.error(f"Upstream provider failure: {error.message} | details: {error.details}")
    elif error.status_code >= 500:
        logger.error(f"Service failure: {error.message} | details: {error.details}")
    else:
        logger.warning(f"Rejected request: {error.message} | details: {error.details}")
    return _error_response(error.to_dict(), error.status_code)

def handle_http_exception(error):
    if isinstance(error, MethodNotAllowed):
        methods = [m for m in (error.valid_methods or []) if m not in ('HEAD', 'OPTIONS')]
        message = f"Solo se permiten peticiones {', '.join(methods)}." if methods else 'Método no permitido.'
        return _error_response({'error': message}, 405)
    if isinstance(error, RequestEntityTooLarge):
        return _error_response(FileTooLargeError().to_dict(), 413)
    return _error_response({'error': error.description or error.name}, error.code or 500)

def handle_unexpected_error(error):
    logger.exception(f"Unhandled error: {str(error)}")
    return _error_response({
        'error': 'Error interno del servidor durante el proceso.',
        'details': type(error).__name__,
    }, 500)

def register_error_handlers(app):
    app.register_error_handler(ServiceError, handle_service_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_error)
