from rest_framework import status
from rest_framework.exceptions import NotAuthenticated

from core import errors
from core.exceptions import status_for, workflow_exception_handler


def test_workflow_errors_render_code_and_detail():
    response = workflow_exception_handler(errors.AlreadySettled(), {"view": None})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.data == {"code": "already_settled", "detail": "Booking already paid."}


def test_custom_message_is_used():
    response = workflow_exception_handler(errors.NotFound("Listing not found."), {})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.data["detail"] == "Listing not found."


def test_status_mapping():
    assert status_for(errors.PaymentNotCompleted()) == status.HTTP_402_PAYMENT_REQUIRED
    assert status_for(errors.PaymentProcessingError()) == status.HTTP_502_BAD_GATEWAY
    assert status_for(errors.NotEligible()) == status.HTTP_400_BAD_REQUEST
    assert status_for(errors.Forbidden()) == status.HTTP_403_FORBIDDEN


def test_unknown_subclass_falls_back_to_parent_status():
    class LateBooking(errors.PreconditionFailed):
        pass

    assert status_for(LateBooking()) == status.HTTP_409_CONFLICT


def test_other_exceptions_use_drf_handler():
    response = workflow_exception_handler(NotAuthenticated(), {"view": None})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
