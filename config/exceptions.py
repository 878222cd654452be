import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.views import exception_handler


logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    DRF exception handler used project-wide.

    Validation failures are reported as 422 so clients can tell a malformed
    request from a missing resource or a permission problem.
    """
    response = exception_handler(exc, context)
    view = context.get("view")
    view_name = type(view).__name__ if view is not None else None

    if response is None:
        logger.error(
            "Unhandled API error",
            extra={"view": view_name, "error": str(exc)},
            exc_info=exc,
        )
        return None

    if isinstance(exc, ValidationError):
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    if isinstance(response.data, dict) and "detail" in response.data and "error" not in response.data:
        detail = response.data["detail"]
        if isinstance(detail, list) and detail:
            detail = detail[0]
        response.data = {"error": str(detail)}

    logger.info(
        "API request rejected",
        extra={"view": view_name, "status_code": response.status_code},
    )
    return response
