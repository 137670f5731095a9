"""Explicit configuration handed to the sign-in orchestrator"""

from dataclasses import dataclass

from .constants import (
    AUTHORIZE_URL,
    CLIENT_ID,
    OAUTH_CALLBACK_PATH,
    OAUTH_CALLBACK_PORT,
    OAUTH_CALLBACK_TIMEOUT,
    REDEEM_CREDITS_URL,
    SCOPE,
    TOKEN_URL,
)


@dataclass(frozen=True)
class AuthConfig:
    """Sign-in configuration

    Attributes:
        client_id: OAuth client ID registered with the provider
        authorize_url: Provider authorization endpoint
        token_url: Provider token endpoint
        redeem_credits_url: Complimentary credit redemption endpoint
        scope: Space separated OAuth scopes
        callback_port: Loopback port of the registered redirect URI
        callback_path: Path of the registered redirect URI
        callback_timeout: Seconds to wait for the browser redirect
        shutdown_delay: Seconds the listener stays up after the callback
        request_timeout: Timeout for each token endpoint request
        grace_seconds: Tokens expiring within this window count as expired
        max_age_days: Credentials older than this are refreshed
        redeem_bonus: Attempt complimentary credit redemption after sign-in
        api_key_name: Prefix of the name given to minted API keys
        credential_key: Secure store key holding the credential record
    """
    client_id: str = CLIENT_ID
    authorize_url: str = AUTHORIZE_URL
    token_url: str = TOKEN_URL
    redeem_credits_url: str = REDEEM_CREDITS_URL
    scope: str = SCOPE
    callback_port: int = OAUTH_CALLBACK_PORT
    callback_path: str = OAUTH_CALLBACK_PATH
    callback_timeout: float = OAUTH_CALLBACK_TIMEOUT
    shutdown_delay: float = 1.0
    request_timeout: float = 30.0
    grace_seconds: int = 300
    max_age_days: float = 7.0
    redeem_bonus: bool = True
    api_key_name: str = "chatgpt-auth"
    credential_key: str = "openai-chatgpt-credentials"

    def redirect_uri(self, port: int) -> str:
        """Redirect URI for a listener bound to ``port``"""
        return f"http://localhost:{port}{self.callback_path}"

    @classmethod
    def from_settings(cls) -> "AuthConfig":
        """Build the configuration from the environment-backed settings module"""
        import settings

        return cls(
            callback_port=settings.CALLBACK_PORT,
            callback_timeout=settings.CALLBACK_TIMEOUT,
            shutdown_delay=settings.CALLBACK_SHUTDOWN_DELAY,
            request_timeout=settings.TOKEN_REQUEST_TIMEOUT,
            grace_seconds=settings.EXPIRY_GRACE_SECONDS,
            max_age_days=settings.MAX_CREDENTIAL_AGE_DAYS,
            redeem_bonus=settings.REDEEM_BONUS,
            api_key_name=settings.API_KEY_NAME,
            credential_key=settings.CREDENTIAL_KEY,
        )
