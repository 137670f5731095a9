"""Data models for ChatGPT OAuth sign-in"""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with a Z suffix"""
    return (
        datetime.datetime.now(datetime.timezone.utc)
        .isoformat()
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class PKCEChallenge:
    """PKCE (Proof Key for Code Exchange) codes for one sign-in attempt

    Attributes:
        code_verifier: Random secret kept by the client
        code_challenge: base64url(sha256(code_verifier)), sent in the auth request
        method: Challenge method, always S256
    """
    code_verifier: str
    code_challenge: str
    method: str = "S256"


@dataclass(frozen=True)
class CallbackResult:
    """Query parameters captured from the OAuth redirect"""
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    @property
    def is_malformed(self) -> bool:
        """Neither an authorization code nor an error was supplied"""
        return not self.code and not self.error


@dataclass(frozen=True)
class TokenSet:
    """OAuth token response from the authorization-code or refresh grant"""
    access_token: str
    refresh_token: str
    id_token: str
    token_type: str = "Bearer"
    expires_in: int = 0


@dataclass(frozen=True)
class CredentialRecord:
    """The durable credential, kept only by the secure store

    Attributes:
        api_key: Provider API key used as the bearer credential
        id_token: JWT identity token (expiry hint only)
        refresh_token: Token for minting a new id token
        last_refresh: ISO 8601 timestamp of the last sign-in or refresh
    """
    api_key: str = ""
    id_token: str = ""
    refresh_token: str = ""
    last_refresh: str = ""

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def has_tokens(self) -> bool:
        return bool(self.id_token and self.refresh_token)

    def to_dict(self) -> Dict[str, str]:
        return {
            "api_key": self.api_key,
            "id_token": self.id_token,
            "refresh_token": self.refresh_token,
            "last_refresh": self.last_refresh,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        return cls(
            api_key=data.get("api_key") or "",
            id_token=data.get("id_token") or "",
            refresh_token=data.get("refresh_token") or "",
            last_refresh=data.get("last_refresh") or "",
        )


@dataclass(frozen=True)
class ImportedCredential:
    """A validated import awaiting confirmation

    Attributes:
        record: Credential record built from the import
        preview: Redacted value for each secret that was present
    """
    record: CredentialRecord
    preview: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthStatus:
    """Authentication status for display, without secrets"""
    is_authenticated: bool
    has_api_key: bool
    has_tokens: bool
    last_refresh: Optional[str] = None
    email: Optional[str] = None
    plan_type: Optional[str] = None
    id_token_expired: bool = True


class RefreshOutcome(str, Enum):
    """Result of AuthOrchestrator.refresh_if_needed"""
    NOT_SIGNED_IN = "not_signed_in"
    FRESH = "fresh"
    REFRESHED = "refreshed"
    NO_REFRESH_TOKEN = "no_refresh_token"
    REAUTH_REQUIRED = "reauth_required"
