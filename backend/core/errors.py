"""
Workflow failures shared by the booking, payment, review and notification apps.

Services raise these; `core.exceptions.workflow_exception_handler` is the only
place that turns them into HTTP responses.
"""


class WorkflowError(Exception):
    code = "error"
    default_message = "The request could not be completed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(WorkflowError):
    code = "not_found"
    default_message = "Not found."


class Forbidden(WorkflowError):
    code = "forbidden"
    default_message = "You are not permitted to perform this action."


class PreconditionFailed(WorkflowError):
    code = "precondition_failed"
    default_message = "The booking is not in a state that allows this action."


class AlreadySettled(WorkflowError):
    code = "already_settled"
    default_message = "Booking already paid."


class PaymentNotCompleted(WorkflowError):
    code = "payment_not_completed"
    default_message = "Payment was not completed."


class PaymentProcessingError(WorkflowError):
    code = "payment_processing_error"
    default_message = "Payment could not be processed. Please try again."


class Duplicate(WorkflowError):
    code = "duplicate"
    default_message = "You have already reviewed this booking."


class NotEligible(WorkflowError):
    code = "not_eligible"
    default_message = "You can only review a service you have paid for."


class ValidationError(WorkflowError):
    code = "validation_error"
    default_message = "Invalid input."
