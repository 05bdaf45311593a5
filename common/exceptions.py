import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

from .responses import error

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


def _first_message(detail):
    if isinstance(detail, list):
        return _first_message(detail[0]) if detail else ""
    if isinstance(detail, dict):
        if not detail:
            return ""
        field, value = next(iter(detail.items()))
        message = _first_message(value)
        if field in ("non_field_errors", "detail"):
            return message
        return f"{field}: {message}"
    return str(detail)


def envelope_exception_handler(exc, context):
    """Wrap every DRF error in the ``{success, message}`` envelope."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    if isinstance(detail, dict) and set(detail) == {"detail"}:
        response.data = error(str(detail["detail"]))
    else:
        response.data = error(_first_message(detail), errors=detail)

    if response.status_code >= 500:
        logger.error("Request failed: %s", response.data["message"])
    return response
