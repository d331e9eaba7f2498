PROBLEM_TYPE_DOMAIN = "https://divebook.example/problems/domain-error"
PROBLEM_TYPE_VALIDATION = "https://divebook.example/problems/validation-error"
PROBLEM_TYPE_NOT_FOUND = "https://divebook.example/problems/not-found"
PROBLEM_TYPE_CONFLICT = "https://divebook.example/problems/conflict"
PROBLEM_TYPE_AUTH = "https://divebook.example/problems/unauthorized"
PROBLEM_TYPE_FORBIDDEN = "https://divebook.example/problems/forbidden"
PROBLEM_TYPE_GATEWAY = "https://divebook.example/problems/payment-gateway"
PROBLEM_TYPE_SERVER = "https://divebook.example/problems/server-error"


class DomainError(Exception):
    """Base for errors that map onto a fixed client-facing problem response.

    ``detail`` is shown to the client, so it must never carry store or gateway
    internals; those belong in the logs.
    """

    status_code = 400
    title = "Bad Request"
    type = PROBLEM_TYPE_DOMAIN
    expose_detail = True

    def __init__(self, detail: str | None = None, errors: list[dict[str, str]] | None = None) -> None:
        self.detail = detail or self.title
        self.errors = errors or []
        super().__init__(self.detail)


class ValidationFailed(DomainError):
    title = "Validation Error"
    type = PROBLEM_TYPE_VALIDATION


class InvalidTransition(DomainError):
    title = "Invalid Status Transition"


class NotFoundError(DomainError):
    status_code = 404
    title = "Not Found"
    type = PROBLEM_TYPE_NOT_FOUND


class ConflictError(DomainError):
    status_code = 409
    title = "Conflict"
    type = PROBLEM_TYPE_CONFLICT


class AuthenticationRequired(DomainError):
    status_code = 401
    title = "Authentication required"
    type = PROBLEM_TYPE_AUTH


class PermissionDenied(DomainError):
    status_code = 403
    title = "Insufficient permissions"
    type = PROBLEM_TYPE_FORBIDDEN


class PaymentGatewayError(DomainError):
    status_code = 502
    title = "Payment provider unavailable"
    type = PROBLEM_TYPE_GATEWAY


class ConfigurationError(DomainError):
    status_code = 500
    title = "Internal Server Error"
    type = PROBLEM_TYPE_SERVER
    expose_detail = False
