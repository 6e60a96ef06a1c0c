class APIError(Exception):
    """
    Base exception for all API-related errors.
    """
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class DomainError(APIError):
    """
    Base class for errors raised by the queue/payment core.

    `code` names the specific failure, `category` groups it for callers that
    map failures to transport responses.
    """
    code = "DomainError"
    category = "DomainError"
    default_message = "Domain rule violated."
    default_status_code = 400

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(
            message or self.default_message,
            status_code if status_code is not None else self.default_status_code,
        )


# --- Invalid input ---

class InvalidInputError(DomainError):
    code = "InvalidInput"
    category = "InvalidInput"
    default_message = "Invalid input."
    default_status_code = 400


class MissingReferenceError(InvalidInputError):
    code = "MissingReference"
    default_message = "An external transaction reference is required for this payment method."


# --- Not found / preconditions ---

class NotFoundError(DomainError):
    code = "NotFound"
    category = "NotFound"
    default_message = "Record not found."
    default_status_code = 404


class UnknownCustomerError(DomainError):
    code = "UnknownCustomer"
    category = "Precondition"
    default_message = "Customer does not exist."
    default_status_code = 404


class MethodDisabledError(DomainError):
    code = "MethodDisabled"
    category = "Precondition"
    default_message = "Payment method is currently disabled."
    default_status_code = 422


# --- Conflicts ---

class ConflictError(DomainError):
    code = "Conflict"
    category = "Conflict"
    default_message = "Conflicting state."
    default_status_code = 409


class DuplicatePendingError(ConflictError):
    code = "DuplicatePending"
    default_message = "Customer already has a pending payment. Only one active payment per customer is allowed."


class AlreadyQueuedError(ConflictError):
    code = "AlreadyQueued"
    default_message = "Payment is already associated with a queue entry."


class AlreadyDecidedError(ConflictError):
    code = "AlreadyDecided"
    default_message = "Only pending payments can be confirmed or denied."


class InvalidSetError(ConflictError):
    code = "InvalidSet"
    default_message = "Queue order must contain exactly the active queue entries."


# --- State machine ---

class InvalidTransitionError(DomainError):
    code = "InvalidTransition"
    category = "InvalidTransition"
    default_message = "Transition not allowed from the current status."
    default_status_code = 409


class PaymentNotConfirmedError(InvalidTransitionError):
    code = "PaymentNotConfirmed"
    default_message = "Payment must be confirmed before adding to queue."


# --- Orchestration ---

class AdmissionFailedError(DomainError):
    """
    Queue admission failed after the payment decision; the whole unit was rolled back.
    """
    code = "AdmissionFailed"
    category = "AdmissionFailed"
    default_message = "Queue admission failed; payment decision was rolled back."
    default_status_code = 500


class ResourceBusyError(ConflictError):
    """
    A lock guarding the operation could not be taken in time; safe to retry.
    """
    code = "ResourceBusy"
    default_message = "Another operation is in progress. Please retry."
