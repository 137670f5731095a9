"""
OpenAI OAuth authorization request with PKCE (Codex CLI compatible)
"""
import base64
import hashlib
import secrets
from urllib.parse import urlencode

from .config import AuthConfig
from .models import PKCEChallenge


def generate_challenge() -> PKCEChallenge:
    """
    Generate PKCE code verifier and challenge.

    RFC 7636 PKCE standard:
    - Verifier: 43-128 characters, base64url encoded (32 bytes -> 43 chars)
    - Challenge: SHA-256 hash of verifier, base64url encoded

    Returns:
        PKCEChallenge with S256 method
    """
    # Generate 32 random bytes -> 43 character base64url verifier
    verifier = secrets.token_urlsafe(32)

    # Create SHA-256 challenge
    challenge_bytes = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(challenge_bytes).decode("ascii").rstrip("=")

    return PKCEChallenge(code_verifier=verifier, code_challenge=challenge)


def generate_state() -> str:
    """
    Generate random state parameter for CSRF protection.

    Returns:
        str: 32-byte random state string
    """
    return secrets.token_urlsafe(32)


def build_authorization_url(
    config: AuthConfig,
    challenge: PKCEChallenge,
    state: str,
    port: int,
) -> str:
    """
    Build the OpenAI authorization URL for one sign-in attempt.

    Args:
        config: Sign-in configuration
        challenge: PKCE challenge of this attempt
        state: Anti-CSRF state of this attempt
        port: Port the callback listener is bound to

    Returns:
        str: Authorization URL to open in the browser
    """
    params = {
        "response_type": "code",
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri(port),
        "scope": config.scope,
        "code_challenge": challenge.code_challenge,
        "code_challenge_method": challenge.method,
        "state": state,
        # Codex CLI parameters (required for the API key token exchange)
        "id_token_add_organizations": "true",
        "codex_cli_simplified_flow": "true",
    }

    return f"{config.authorize_url}?{urlencode(params)}"
