"""
OpenAI OAuth token endpoint client (Codex CLI compatible)
"""
import datetime
import logging
import secrets
from typing import Any, Dict, Optional, Tuple

import httpx

from .config import AuthConfig
from .constants import (
    ID_TOKEN_TYPE,
    PLATFORM_URL,
    REFRESH_SCOPE,
    REQUESTED_TOKEN,
    TOKEN_EXCHANGE_GRANT,
)
from .errors import (
    ErrorKind,
    InvalidCredentialError,
    NetworkError,
    OnboardingRequiredError,
    ProviderOAuthError,
    RefreshTokenExpiredError,
)
from .models import TokenSet

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def _error_details(response: httpx.Response) -> Tuple[Optional[str], Optional[str], str]:
    """
    Extract the OAuth error from a failed token endpoint response.

    Returns:
        Tuple of (error, error_description, human readable message)
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}

    error = payload.get("error")
    description = payload.get("error_description")

    # Some endpoints nest the error as {"error": {"message": ..., "code": ...}}
    if isinstance(error, dict):
        description = description or error.get("message")
        error = error.get("code") or error.get("type")

    error = str(error) if error else None
    description = str(description) if description else None
    message = description or error or f"HTTP {response.status_code}"
    return error, description, message


def _json_body(response: httpx.Response, operation: str) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as e:
        raise ProviderOAuthError(
            f"{operation} failed: invalid JSON response",
            status_code=response.status_code,
        ) from e
    if not isinstance(payload, dict):
        raise ProviderOAuthError(
            f"{operation} failed: unexpected response",
            status_code=response.status_code,
        )
    return payload


def _to_token_set(payload: Dict[str, Any], fallback_refresh_token: str = "") -> TokenSet:
    try:
        expires_in = int(payload.get("expires_in") or 0)
    except (TypeError, ValueError):
        expires_in = 0

    return TokenSet(
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token") or fallback_refresh_token,
        id_token=payload.get("id_token") or "",
        token_type=payload.get("token_type") or "Bearer",
        expires_in=expires_in,
    )


class TokenExchangeClient:
    """Performs the requests against the provider's token endpoint

    Every operation is a single request; retrying is left to the caller.
    """

    def __init__(self, config: AuthConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            config: Sign-in configuration
            client: Shared HTTP client (a short-lived one is created per call if None)
        """
        self.config = config
        self._client = client

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.post(url, timeout=self.config.request_timeout, **kwargs)
            async with httpx.AsyncClient(timeout=self.config.request_timeout) as client:
                return await client.post(url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Request to {url} timed out after {self.config.request_timeout:g} seconds")
            raise NetworkError(f"Request to {url} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise NetworkError(f"Could not reach {url}: {e}") from e

    async def exchange_code_for_tokens(self, code: str, code_verifier: str, redirect_uri: str) -> TokenSet:
        """
        Exchange authorization code for OAuth tokens.

        Args:
            code: Authorization code from the callback
            code_verifier: PKCE code verifier of this attempt
            redirect_uri: Redirect URI used in the authorization request

        Returns:
            TokenSet from the authorization_code grant

        Raises:
            ProviderOAuthError: The endpoint rejected the code or returned no access token
            NetworkError: The endpoint could not be reached
        """
        logger.info(f"Exchanging authorization code for tokens at {self.config.token_url}")
        response = await self._post(
            self.config.token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": self.config.client_id,
                "code_verifier": code_verifier,
            },
            headers=FORM_HEADERS,
        )

        if not response.is_success:
            error, description, message = _error_details(response)
            logger.error(f"Token exchange failed with status {response.status_code}: {message}")
            raise ProviderOAuthError(
                f"Token exchange failed: {message}",
                error=error,
                error_description=description,
                status_code=response.status_code,
            )

        payload = _json_body(response, "Token exchange")
        if not payload.get("access_token"):
            logger.error("Token exchange response missing access token")
            raise ProviderOAuthError(
                "Failed to exchange authorization code for tokens",
                error=payload.get("error"),
                error_description=payload.get("error_description"),
                status_code=response.status_code,
            )

        logger.info("Successfully exchanged authorization code for tokens")
        return _to_token_set(payload)

    async def exchange_id_token_for_api_key(self, id_token: str) -> str:
        """
        Exchange an ID token for an OpenAI API key (token-exchange grant).

        Args:
            id_token: OAuth ID token

        Returns:
            str: Provider API key

        Raises:
            OnboardingRequiredError: Platform onboarding or API access is missing (HTTP 400)
            InvalidCredentialError: The ID token was rejected (HTTP 401)
            ProviderOAuthError: Any other failure
            NetworkError: The endpoint could not be reached
        """
        today = datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%d")
        key_name = f"{self.config.api_key_name} [auto-generated] ({today}) [{secrets.token_hex(3)}]"

        logger.info("Exchanging ID token for an API key")
        response = await self._post(
            self.config.token_url,
            data={
                "grant_type": TOKEN_EXCHANGE_GRANT,
                "client_id": self.config.client_id,
                "requested_token": REQUESTED_TOKEN,
                "subject_token": id_token,
                "subject_token_type": ID_TOKEN_TYPE,
                "name": key_name,
            },
            headers=FORM_HEADERS,
        )

        if not response.is_success:
            error, description, message = _error_details(response)
            logger.error(f"API key exchange failed with status {response.status_code}: {message}")

            if response.status_code == 400:
                raise OnboardingRequiredError(
                    "API key exchange failed. This may occur if you haven't completed OpenAI Platform "
                    "onboarding or your account doesn't have API access. "
                    f"Visit {PLATFORM_URL} to set up API access. ({message})",
                    error=error,
                    error_description=description,
                    status_code=400,
                )
            if response.status_code == 401:
                raise InvalidCredentialError(
                    "Authentication failed. Please sign in again.",
                    error=error,
                    error_description=description,
                    status_code=401,
                )
            raise ProviderOAuthError(
                f"API key exchange failed: {message}",
                error=error,
                error_description=description,
                status_code=response.status_code,
            )

        payload = _json_body(response, "API key exchange")
        api_key = payload.get("access_token")
        if not api_key:
            raise OnboardingRequiredError(
                "Failed to exchange token for API key. "
                f"You may need to complete OpenAI Platform onboarding at {PLATFORM_URL}",
                status_code=response.status_code,
            )

        logger.info("Successfully obtained API key")
        return api_key

    async def refresh(self, refresh_token: str) -> TokenSet:
        """
        Refresh OAuth tokens.

        Args:
            refresh_token: Refresh token from the previous sign-in or refresh

        Returns:
            TokenSet; the previous refresh token is kept if none is returned

        Raises:
            RefreshTokenExpiredError: The refresh token is invalid or expired
            InvalidCredentialError: The endpoint rejected the request (HTTP 401)
            ProviderOAuthError: Any other failure
            NetworkError: The endpoint could not be reached
        """
        logger.info("Refreshing OAuth tokens")
        response = await self._post(
            self.config.token_url,
            json={
                "client_id": self.config.client_id,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": REFRESH_SCOPE,
            },
            headers=JSON_HEADERS,
        )

        if not response.is_success:
            error, description, message = _error_details(response)
            logger.error(f"Token refresh failed with status {response.status_code}: {message}")

            lowered = message.lower()
            if response.status_code in (400, 401) and (
                error == "invalid_grant" or "invalid_grant" in lowered or "expired" in lowered
            ):
                raise RefreshTokenExpiredError(
                    "Refresh token is invalid or expired. Please sign in again.",
                    error=error,
                    error_description=description,
                    status_code=response.status_code,
                )
            if response.status_code == 401:
                raise InvalidCredentialError(
                    "Token refresh was rejected. Please sign in again.",
                    error=error,
                    error_description=description,
                    status_code=401,
                )
            raise ProviderOAuthError(
                f"Token refresh failed: {message}",
                error=error,
                error_description=description,
                status_code=response.status_code,
            )

        payload = _json_body(response, "Token refresh")
        if not payload.get("access_token"):
            logger.error("Token refresh response missing access token")
            raise ProviderOAuthError("Failed to refresh tokens", status_code=response.status_code)

        logger.info("Successfully refreshed OAuth tokens")
        return _to_token_set(payload, fallback_refresh_token=refresh_token)

    async def redeem_bonus(self, id_token: str) -> bool:
        """
        Redeem complimentary credits for Plus/Pro accounts (best-effort).

        Failures are logged and deliberately ignored; redemption never
        blocks or fails a sign-in.

        Args:
            id_token: OAuth ID token

        Returns:
            True if the redemption request succeeded
        """
        try:
            response = await self._post(
                self.config.redeem_credits_url,
                json={},
                headers={"Authorization": f"Bearer {id_token}", **JSON_HEADERS},
            )
            response.raise_for_status()
        except (NetworkError, httpx.HTTPStatusError) as e:
            # Ignored on purpose: redemption is a non-blocking side effect
            logger.warning(f"[{ErrorKind.BONUS_REDEMPTION_FAILED.value}] Credit redemption failed (non-blocking): {e}")
            return False

        logger.info("Complimentary credits redeemed")
        return True
