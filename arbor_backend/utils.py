"""Backend utility functions for the tree census API."""
from flask import jsonify
from arbor_shared.enums import ErrorKind
import logging


logger = logging.getLogger(__name__)

# HTTP status for each service failure kind
ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORE: 500,
}


def api_error(message, status_code=400, log_level='warning', details=None, errors=None):
    """
    Standardized API error response with consistent logging.

    Args:
        message (str): Error message for the client
        status_code (int): HTTP status code
        log_level (str): Logging level ('debug', 'info', 'warning', 'error', 'critical')
        details (dict, optional): Additional details for logging
        errors (list, optional): Field-level errors returned under ``data.errors``

    Returns:
        Flask response: JSON error response
    """
    log_func = getattr(logger, log_level, logger.warning)
    if details:
        log_func(f"API Error ({status_code}): {message} - Details: {details}")
    else:
        log_func(f"API Error ({status_code}): {message}")

    body = {'success': False, 'message': message}
    if errors:
        body['data'] = {'errors': [
            e.model_dump() if hasattr(e, 'model_dump') else e for e in errors
        ]}
    return jsonify(body), status_code


def handle_api_exception(e, operation="operation", status_code=500):
    """
    Handle exceptions in API endpoints with consistent logging and responses.

    Args:
        e (Exception): The exception that occurred
        operation (str): Description of the operation being performed
        status_code (int): HTTP status code to return

    Returns:
        Flask response: JSON error response
    """
    logger.error(f"Exception during {operation}: {str(e)}", exc_info=True)
    return api_error(f"Failed to {operation}", status_code, 'error')


def result_response(result, serializer=None, success_status=200):
    """
    Turn a ServiceResult into a Flask response.

    Failures are mapped to a status code by their error kind; store failures
    are logged at error level, everything else at warning.
    """
    if result.success:
        return jsonify(result.to_dict(serializer)), success_status

    status_code = ERROR_STATUS.get(result.error_kind, 500)
    log_level = 'error' if status_code >= 500 else 'warning'
    return api_error(result.message, status_code, log_level, errors=result.errors)
