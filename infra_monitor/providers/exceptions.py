class ProviderException(Exception):
    """Base exception for backend provider errors."""
    pass


class ProviderConnectionError(ProviderException):
    """Backend unreachable, timed out, or TLS handshake failed."""
    pass


class ProviderAuthError(ProviderException):
    """Credential rejected or expired (401-class response)."""
    pass


class ProviderResponseError(ProviderException):
    """Backend answered with an error status or a body that fails validation."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(Exception):
    """Provider configuration file is unreadable or invalid."""
    pass
