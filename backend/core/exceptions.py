import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from . import errors

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    errors.NotFound: status.HTTP_404_NOT_FOUND,
    errors.Forbidden: status.HTTP_403_FORBIDDEN,
    errors.PreconditionFailed: status.HTTP_409_CONFLICT,
    errors.AlreadySettled: status.HTTP_409_CONFLICT,
    errors.PaymentNotCompleted: status.HTTP_402_PAYMENT_REQUIRED,
    errors.PaymentProcessingError: status.HTTP_502_BAD_GATEWAY,
    errors.Duplicate: status.HTTP_409_CONFLICT,
    errors.NotEligible: status.HTTP_400_BAD_REQUEST,
    errors.ValidationError: status.HTTP_400_BAD_REQUEST,
}


def status_for(exc: errors.WorkflowError) -> int:
    for error_class in type(exc).__mro__:
        if error_class in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_class]
    return status.HTTP_400_BAD_REQUEST


def workflow_exception_handler(exc, context):
    """Render workflow errors as `{"code", "detail"}`; defer everything else to DRF."""
    if isinstance(exc, errors.WorkflowError):
        view = context.get("view")
        logger.info(
            "%s rejected with %s: %s",
            type(view).__name__ if view else "request",
            exc.code,
            exc.message,
        )
        return Response({"code": exc.code, "detail": exc.message}, status=status_for(exc))
    return exception_handler(exc, context)
