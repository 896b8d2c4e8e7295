# order_files/exceptions.py

class ServiceLayerError(Exception):
    """
    Raised when a Service Layer call fails. Carries the HTTP status and a
    truncated response body so the run log shows what SAP answered.
    """
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body or ""


class AuthError(ServiceLayerError):
    """Login rejected, or the session is no longer authorized (401)."""
    pass


class NotFoundError(ServiceLayerError):
    """The requested document does not exist (404)."""
    pass


class FatalRunError(Exception):
    """Stops the whole order run (search roots unusable, bad configuration)."""
    pass


class ComponentError(Exception):
    """A single component failed; recorded and the run continues."""
    def __init__(self, message: str, item_code: str | None = None):
        super().__init__(message)
        self.item_code = item_code
