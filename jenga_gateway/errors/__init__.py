from jenga_gateway.errors.exceptions import (
    AppError,
    AuthenticationError,
    ConfigurationError,
    KeyLoadError,
    NotFound,
    SignatureError,
    SigningError,
    StorageError,
    ValidationError,
)

__all__= [
    'AppError',
    'AuthenticationError',
    'ConfigurationError',
    'KeyLoadError',
    'NotFound',
    'SignatureError',
    'SigningError',
    'StorageError',
    'ValidationError',
]
