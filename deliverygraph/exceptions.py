"""deliverygraph exception classes."""



class DeliveryGraphError(Exception):
    """Base exception for all deliverygraph errors."""

    def __init__(
        self, code: str, message: str, request_id: str | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{code}] {message}")


class ConfigurationError(DeliveryGraphError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class AuthenticationError(DeliveryGraphError):
    """Raised when the provider rejects the token."""

    pass


class AuthorizationError(DeliveryGraphError):
    """Raised when access is denied."""

    pass


class NotFoundError(DeliveryGraphError):
    """Raised when a resource (project, repository, branch) is not found."""

    pass


class ConflictError(DeliveryGraphError):
    """Raised on conflicts reported by the provider."""

    pass


class RateLimitedError(DeliveryGraphError):
    """Raised when rate limited."""

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: int,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, request_id)
        self.retry_after = retry_after


class ValidationError(DeliveryGraphError):
    """Raised on other client errors (4xx)."""

    pass


class ServerError(DeliveryGraphError):
    """Raised on server errors (5xx) and connection failures."""

    pass
