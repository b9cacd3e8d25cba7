"""Error taxonomy for the Salesforce REST API client.

Every public operation either returns decoded JSON or raises exactly one
of the exceptions below. Callers branch on the exception class rather
than on message text.
"""


class SalesforceError(Exception):
    """Base class for all errors raised by this package."""


class ArgumentError(SalesforceError, ValueError):
    """Raised when a caller passes a value rejected before any network call."""


class AuthError(SalesforceError):
    """Raised when the login handshake fails.

    Attributes:
        status_code: HTTP status of the token endpoint response, or None
            if the request never reached the server.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PreconditionError(SalesforceError):
    """Raised when an operation needs a Session and none exists yet."""


class TransportError(SalesforceError):
    """Raised on connection, TLS or timeout failures.

    Attributes:
        cause: The underlying httpx exception.
    """

    def __init__(self, cause: Exception):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause


class ApiError(SalesforceError):
    """Raised when the service answers with a failure status or bad payload.

    Attributes:
        status_code: HTTP status code of the response.
        message: Service-provided description, raw body or reason phrase.
        reason: HTTP reason phrase.
        error_code: Service error code (``error`` or ``errorCode``) if any.
        body: Raw response text.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        reason: str = "",
        error_code: str | None = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.reason = reason
        self.error_code = error_code
        self.body = body

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status_code={self.status_code}, "
            f"message={self.message!r}, error_code={self.error_code!r})"
        )
