class AppError(Exception):
    status_code = 500
    error = "Application error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        if status_code:
            self.status_code = status_code
        self.message = message


class ConfigurationError(AppError):
    status_code = 500
    error = "Configuration error"


class ValidationError(AppError):
    status_code = 400
    error = "Validation error"


class AuthenticationError(AppError):
    status_code = 502
    error = "Authentication error"

    def __init__(self, message, upstream_status=None):
        super().__init__(message)
        self.upstream_status = upstream_status


class SignatureError(AppError):
    status_code = 500
    error = "Signature error"


class KeyLoadError(SignatureError):
    error = "Private key error"


class SigningError(SignatureError):
    error = "Signing error"


class StorageError(AppError):
    status_code = 500
    error = "Storage error"


class NotFound(AppError):
    status_code = 404
    error = "Transaction not found"
