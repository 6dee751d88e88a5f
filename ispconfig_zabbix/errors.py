"""
Exceptions raised by the ISPConfig monitoring bridge
"""

from typing import Any, Optional


class ISPConfigError(Exception):
    """Base class for all errors raised by this package"""


class ConfigurationError(ISPConfigError):
    """Exception raised for missing or invalid configuration"""


class ApiError(ISPConfigError):
    """Exception raised when a remote ISPConfig call fails"""
    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 attempts: int = 0, elapsed: float = 0.0):
        self.message = message
        self.cause = cause
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(message)

    def __str__(self) -> str:
        if self.attempts > 1:
            return f"{self.message} (after {self.attempts} attempts, {self.elapsed:.1f}s)"
        return self.message


class AuthenticationError(ApiError):
    """Exception raised when ISPConfig rejects the login"""


class UnknownKeyError(ISPConfigError):
    """Exception raised for an unsupported item key"""
    def __init__(self, key: str, kind: str = ''):
        self.key = key
        self.kind = kind
        super().__init__(f"Unknown key: {key}")


class ValidationError(ISPConfigError):
    """Exception raised when generated LLD data is malformed"""


class EntityNotFoundError(ISPConfigError):
    """Exception raised when ISPConfig has no record with the requested id"""
    def __init__(self, kind: str, entity_id: Any):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")
