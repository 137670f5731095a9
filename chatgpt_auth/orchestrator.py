"""Sign-in, sign-out and refresh flows for ChatGPT OAuth"""

import asyncio
import logging
import secrets
from typing import Callable, Optional

from .callback_server import CallbackListener
from .collaborators import (
    AuthEvents,
    BrowserLauncher,
    CredentialVault,
    SecureStore,
    WebBrowserLauncher,
)
from .config import AuthConfig
from .errors import (
    AuthError,
    FlowInProgressError,
    InvalidCredentialError,
    MalformedCallbackError,
    ProviderOAuthError,
    RefreshTokenExpiredError,
    StateMismatchError,
)
from .jwt_utils import get_user_info
from .models import (
    AuthStatus,
    CallbackResult,
    CredentialRecord,
    ImportedCredential,
    PKCEChallenge,
    RefreshOutcome,
    utc_now_iso,
)
from .pkce import build_authorization_url, generate_challenge, generate_state
from .policy import CredentialPolicy
from .token_exchange import TokenExchangeClient

logger = logging.getLogger(__name__)


class AuthOrchestrator:
    """Coordinates the ChatGPT OAuth flows

    Only one sign-in may run at a time per orchestrator; a second call while
    one is in flight fails with ``FlowInProgressError`` instead of queueing.
    Credentials are handed to the secure store and never written anywhere
    else.
    """

    def __init__(
        self,
        config: AuthConfig,
        store: SecureStore,
        browser: Optional[BrowserLauncher] = None,
        events: Optional[AuthEvents] = None,
        exchange_client: Optional[TokenExchangeClient] = None,
        listener_factory: Optional[Callable[[], CallbackListener]] = None,
    ):
        """
        Args:
            config: Sign-in configuration
            store: Secure store receiving the credential record
            browser: Opens the authorization URL (default: system browser)
            events: Receives sign-in outcomes (default: ignored)
            exchange_client: Token endpoint client (default: built from config)
            listener_factory: Creates the callback listener (default: from config)
        """
        self.config = config
        self.vault = CredentialVault(store, config.credential_key)
        self.browser = browser or WebBrowserLauncher()
        self.events = events or AuthEvents()
        self.exchange = exchange_client or TokenExchangeClient(config)
        self.policy = CredentialPolicy(config.grace_seconds, config.max_age_days)
        self._listener_factory = listener_factory or self._create_listener
        self._listener: Optional[CallbackListener] = None
        self._busy = False
        self._refresh_lock = asyncio.Lock()

    def _create_listener(self) -> CallbackListener:
        return CallbackListener(
            port=self.config.callback_port,
            timeout=self.config.callback_timeout,
            callback_path=self.config.callback_path,
            shutdown_delay=self.config.shutdown_delay,
        )

    @property
    def is_busy(self) -> bool:
        """True while a sign-in flow is in flight"""
        return self._busy

    async def sign_in(self) -> CredentialRecord:
        """Run the browser-based sign-in flow

        Returns:
            The stored CredentialRecord

        Raises:
            FlowInProgressError: Another sign-in is running
            AuthError: Any failure of this attempt; the attempt is discarded
                and sign-in can be started again
        """
        if self._busy:
            error = FlowInProgressError()
            self.events.auth_error(error.kind, error.message)
            raise error

        self._busy = True
        try:
            return await self._run_sign_in()
        except AuthError as e:
            logger.warning(f"Sign-in failed ({e.kind.value}): {e.message}")
            self.events.auth_error(e.kind, e.message)
            raise
        finally:
            listener, self._listener = self._listener, None
            if listener is not None:
                await listener.close()
            self._busy = False

    async def _run_sign_in(self) -> CredentialRecord:
        challenge = generate_challenge()
        state = generate_state()

        listener = self._listener_factory()
        self._listener = listener
        port = await listener.start()
        redirect_uri = self.config.redirect_uri(port)

        url = build_authorization_url(self.config, challenge, state, port)
        self.events.authorization_url(url)
        self.browser.open(url)

        logger.info("Waiting for the OAuth callback")
        result = await listener.wait_for_callback()
        return await self._complete_sign_in(result, state, challenge, redirect_uri)

    async def _complete_sign_in(
        self,
        result: CallbackResult,
        expected_state: str,
        challenge: PKCEChallenge,
        redirect_uri: str,
    ) -> CredentialRecord:
        if result.is_error:
            message = f"OAuth error: {result.error}"
            if result.error_description:
                message += f": {result.error_description}"
            raise ProviderOAuthError(
                message,
                error=result.error,
                error_description=result.error_description,
            )

        if not result.state or not secrets.compare_digest(
            result.state.encode("utf-8"), expected_state.encode("utf-8")
        ):
            logger.error("OAuth state mismatch, aborting sign-in")
            raise StateMismatchError()

        if not result.code:
            raise MalformedCallbackError("The authorization callback did not include a code.")

        tokens = await self.exchange.exchange_code_for_tokens(
            result.code, challenge.code_verifier, redirect_uri
        )
        if not tokens.id_token:
            raise ProviderOAuthError("Token response did not include an id_token.")

        api_key = await self.exchange.exchange_id_token_for_api_key(tokens.id_token)

        record = CredentialRecord(
            api_key=api_key,
            id_token=tokens.id_token,
            refresh_token=tokens.refresh_token,
            last_refresh=utc_now_iso(),
        )
        self.vault.save(record)

        if self.config.redeem_bonus:
            await self.exchange.redeem_bonus(tokens.id_token)

        logger.info("Sign-in complete")
        self.events.signed_in(record)
        return record

    def cancel(self) -> None:
        """Abort an in-flight sign-in wait (e.g. the user closed the sign-in UI)"""
        if self._listener is not None:
            self._listener.cancel()

    def sign_out(self) -> None:
        """Delete the stored credential; succeeds even if none exists

        Raises:
            SecureStoreError: The secure store could not be reached
        """
        try:
            self.vault.clear()
        except AuthError as e:
            logger.error(f"Sign-out failed ({e.kind.value}): {e.message}")
            self.events.auth_error(e.kind, e.message)
            raise
        logger.info("Signed out")
        self.events.signed_out()

    async def _mint_record(self, refresh_token: str) -> CredentialRecord:
        tokens = await self.exchange.refresh(refresh_token)
        if not tokens.id_token:
            raise ProviderOAuthError("Token refresh response did not include an id_token.")

        api_key = await self.exchange.exchange_id_token_for_api_key(tokens.id_token)
        return CredentialRecord(
            api_key=api_key,
            id_token=tokens.id_token,
            refresh_token=tokens.refresh_token,
            last_refresh=utc_now_iso(),
        )

    async def refresh_if_needed(self, force: bool = False) -> RefreshOutcome:
        """Refresh the stored credential when the policy says it is stale

        The record is replaced as a whole on success and left untouched on
        failure.

        Args:
            force: Refresh even if the credential looks fresh

        Returns:
            RefreshOutcome; REAUTH_REQUIRED when the refresh token or identity
            token was rejected

        Raises:
            AuthError: Transient or unexpected failures (record retained)
        """
        async with self._refresh_lock:
            record = self.vault.load()
            if record is None:
                return RefreshOutcome.NOT_SIGNED_IN

            if not force and not self.policy.should_refresh(record.last_refresh, record.id_token):
                return RefreshOutcome.FRESH

            if not record.refresh_token:
                logger.info("Credential is stale but has no refresh token")
                return RefreshOutcome.NO_REFRESH_TOKEN

            try:
                new_record = await self._mint_record(record.refresh_token)
                self.vault.save(new_record)
            except (RefreshTokenExpiredError, InvalidCredentialError) as e:
                logger.warning(f"Re-authentication required: {e.message}")
                self.events.auth_error(e.kind, e.message)
                return RefreshOutcome.REAUTH_REQUIRED
            except AuthError as e:
                logger.error(f"Credential refresh failed ({e.kind.value}): {e.message}")
                self.events.auth_error(e.kind, e.message)
                raise

            logger.info("Credential refreshed")
            self.events.refreshed(new_record)
            return RefreshOutcome.REFRESHED

    async def get_api_key(self) -> Optional[str]:
        """Bearer credential for provider API calls, refreshed first if stale"""
        await self.refresh_if_needed()
        record = self.vault.load()
        if record is None or not record.api_key:
            return None
        return record.api_key

    async def import_credentials(self, imported: ImportedCredential) -> CredentialRecord:
        """Store a validated credential import

        An import holding only tokens is refreshed once to mint an API key
        before anything is stored.

        Returns:
            The stored CredentialRecord
        """
        record = imported.record
        try:
            if not record.has_api_key:
                record = await self._mint_record(record.refresh_token)
            self.vault.save(record)
        except AuthError as e:
            logger.error(f"Could not store the imported credentials ({e.kind.value}): {e.message}")
            self.events.auth_error(e.kind, e.message)
            raise

        logger.info("Imported credentials stored")
        self.events.signed_in(record)
        return record

    def get_status(self) -> AuthStatus:
        """Authentication status without secrets"""
        record = self.vault.load()
        if record is None:
            return AuthStatus(is_authenticated=False, has_api_key=False, has_tokens=False)

        info = get_user_info(record.id_token) if record.id_token else {}
        return AuthStatus(
            is_authenticated=record.has_api_key,
            has_api_key=record.has_api_key,
            has_tokens=record.has_tokens,
            last_refresh=record.last_refresh or None,
            email=info.get("email"),
            plan_type=info.get("plan_type"),
            id_token_expired=self.policy.is_token_expired(record.id_token),
        )
