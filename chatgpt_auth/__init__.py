"""
ChatGPT OAuth sign-in core

Obtains, validates and refreshes OpenAI credentials for ChatGPT Plus/Pro
accounts through the Codex CLI OAuth client, using PKCE and a single-use
loopback callback listener.
"""
from .config import AuthConfig
from .errors import (
    AuthError,
    ErrorKind,
    PortInUseError,
    AuthTimeoutError,
    AuthCancelledError,
    StateMismatchError,
    MalformedCallbackError,
    ProviderOAuthError,
    OnboardingRequiredError,
    InvalidCredentialError,
    RefreshTokenExpiredError,
    MalformedImportError,
    FlowInProgressError,
    NetworkError,
    SecureStoreError,
)
from .models import (
    PKCEChallenge,
    CallbackResult,
    TokenSet,
    CredentialRecord,
    ImportedCredential,
    AuthStatus,
    RefreshOutcome,
)
from .pkce import generate_challenge, generate_state, build_authorization_url
from .callback_server import CallbackListener, ListenerState
from .token_exchange import TokenExchangeClient
from .jwt_utils import decode_jwt, get_user_info
from .policy import CredentialPolicy, is_token_expired, should_refresh
from .import_validator import validate_import, read_codex_auth_file, redact
from .collaborators import (
    SecureStore,
    MemorySecureStore,
    KeyringSecureStore,
    CredentialVault,
    BrowserLauncher,
    WebBrowserLauncher,
    AuthEvents,
)
from .orchestrator import AuthOrchestrator

__all__ = [
    # Configuration
    "AuthConfig",
    # Errors
    "AuthError",
    "ErrorKind",
    "PortInUseError",
    "AuthTimeoutError",
    "AuthCancelledError",
    "StateMismatchError",
    "MalformedCallbackError",
    "ProviderOAuthError",
    "OnboardingRequiredError",
    "InvalidCredentialError",
    "RefreshTokenExpiredError",
    "MalformedImportError",
    "FlowInProgressError",
    "NetworkError",
    "SecureStoreError",
    # Models
    "PKCEChallenge",
    "CallbackResult",
    "TokenSet",
    "CredentialRecord",
    "ImportedCredential",
    "AuthStatus",
    "RefreshOutcome",
    # PKCE
    "generate_challenge",
    "generate_state",
    "build_authorization_url",
    # Callback listener
    "CallbackListener",
    "ListenerState",
    # Token endpoint
    "TokenExchangeClient",
    # JWT / policy
    "decode_jwt",
    "get_user_info",
    "CredentialPolicy",
    "is_token_expired",
    "should_refresh",
    # Import
    "validate_import",
    "read_codex_auth_file",
    "redact",
    # Collaborators
    "SecureStore",
    "MemorySecureStore",
    "KeyringSecureStore",
    "CredentialVault",
    "BrowserLauncher",
    "WebBrowserLauncher",
    "AuthEvents",
    # Orchestrator
    "AuthOrchestrator",
]
