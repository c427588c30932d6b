class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str, message: str | None = None):
        super().__init__(message or f"{resource} '{resource_id}' not found", code="NOT_FOUND")


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class ConflictError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(message, code="UNAUTHORIZED")


class ForbiddenError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="FORBIDDEN")


class ImportInputError(AppError):
    """The import batch itself is unusable (missing, empty, unreadable file)."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_IMPORT")


class TransportError(AppError):
    """The band sheets API could not be reached or failed server-side."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, code="TRANSPORT_ERROR")
