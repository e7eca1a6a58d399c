GENERIC_MESSAGE = "Something went wrong. Please try again."
TIMEOUT_MESSAGE = "Upload timeout. Please try again."


class LinkdropError(Exception):
    """Base class for everything the client surfaces to the user."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(LinkdropError):
    """The selected file was rejected before any request was made."""


class UploadInProgressError(LinkdropError):
    def __init__(self, message="An upload is already in progress."):
        super().__init__(message)


class ApiError(LinkdropError):
    """A request failed. Carries the same shape whatever went wrong."""

    def __init__(self, message=GENERIC_MESSAGE, status=500, details=None):
        super().__init__(message)
        self.status = status
        self.details = details

    def __repr__(self):
        return (f"{type(self).__name__}(message={self.message!r}, "
                f"status={self.status!r}, details={self.details!r})")


class TransportError(ApiError):
    """Timeout or network failure, no response was received."""


class ServerError(ApiError):
    """The server answered with a non-2xx status or an unusable body."""
