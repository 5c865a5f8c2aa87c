"""Error taxonomy shared by the services and the JSON error handler."""


class PortalError(Exception):
    code = "error"
    status = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(PortalError):
    code = "validation_error"
    status = 400
    default_message = "Invalid request"


class AuthenticationError(PortalError):
    code = "authentication_error"
    status = 401
    default_message = "Unauthorized"


class AuthorizationError(PortalError):
    code = "authorization_error"
    status = 403
    default_message = "Admin access required"


class NotFoundError(PortalError):
    code = "not_found"
    status = 404
    default_message = "Not found"


class StorageError(PortalError):
    code = "storage_error"
    status = 500
    default_message = "Storage unavailable"
