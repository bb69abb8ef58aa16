class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when the hosted data store returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class UnknownRecordKindError(ServiceError):
    """Raised when a reader is asked for a record kind it does not serve."""

    def __init__(self, kind: str):
        super().__init__(f"Unsupported record kind '{kind}'")
        self.kind = kind
