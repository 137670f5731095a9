"""Typed errors raised by the ChatGPT sign-in core"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Distinct failure kinds a UI can render"""
    PORT_IN_USE = "port_in_use"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    STATE_MISMATCH = "state_mismatch"
    MALFORMED_CALLBACK = "malformed_callback"
    PROVIDER_OAUTH_ERROR = "provider_oauth_error"
    ONBOARDING_REQUIRED = "onboarding_required"
    INVALID_CREDENTIAL = "invalid_credential"
    REFRESH_TOKEN_EXPIRED = "refresh_token_expired"
    MALFORMED_IMPORT = "malformed_import"
    BONUS_REDEMPTION_FAILED = "bonus_redemption_failed"
    FLOW_IN_PROGRESS = "flow_in_progress"
    NETWORK_ERROR = "network_error"
    SECURE_STORE_ERROR = "secure_store_error"


class AuthError(Exception):
    """Base class for sign-in failures

    Attributes:
        kind: Failure kind
        retryable: True if the same action can simply be attempted again
    """
    kind: ErrorKind = ErrorKind.PROVIDER_OAUTH_ERROR
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PortInUseError(AuthError):
    kind = ErrorKind.PORT_IN_USE
    retryable = True

    def __init__(self, port: int):
        super().__init__(
            f"Port {port} is already in use. "
            f"For remote development, run: ssh -L {port}:localhost:{port} <your-remote-host>"
        )
        self.port = port


class AuthTimeoutError(AuthError):
    kind = ErrorKind.TIMEOUT
    retryable = True

    def __init__(self, timeout: float):
        super().__init__(f"Authentication timed out after {timeout:g} seconds. Please try again.")
        self.timeout = timeout


class AuthCancelledError(AuthError):
    kind = ErrorKind.CANCELLED
    retryable = True

    def __init__(self, message: str = "Authentication was cancelled."):
        super().__init__(message)


class StateMismatchError(AuthError):
    kind = ErrorKind.STATE_MISMATCH

    def __init__(self):
        super().__init__(
            "OAuth state mismatch: the callback did not originate from this sign-in attempt. "
            "The attempt was aborted; start a new sign-in."
        )


class MalformedCallbackError(AuthError):
    kind = ErrorKind.MALFORMED_CALLBACK


class ProviderOAuthError(AuthError):
    """Upstream OAuth error with its original error code and description"""
    kind = ErrorKind.PROVIDER_OAUTH_ERROR

    def __init__(
        self,
        message: str,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error = error
        self.error_description = error_description
        self.status_code = status_code


class OnboardingRequiredError(ProviderOAuthError):
    kind = ErrorKind.ONBOARDING_REQUIRED


class InvalidCredentialError(ProviderOAuthError):
    kind = ErrorKind.INVALID_CREDENTIAL


class RefreshTokenExpiredError(ProviderOAuthError):
    kind = ErrorKind.REFRESH_TOKEN_EXPIRED


class MalformedImportError(AuthError):
    kind = ErrorKind.MALFORMED_IMPORT


class FlowInProgressError(AuthError):
    kind = ErrorKind.FLOW_IN_PROGRESS
    retryable = True

    def __init__(self):
        super().__init__("A sign-in flow is already in progress.")


class NetworkError(AuthError):
    """Transport failure talking to the provider; safe to retry"""
    kind = ErrorKind.NETWORK_ERROR
    retryable = True


class SecureStoreError(AuthError):
    """The secure credential store is unavailable or rejected the operation"""
    kind = ErrorKind.SECURE_STORE_ERROR
