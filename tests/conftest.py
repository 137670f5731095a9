import base64
import json
import time
from typing import Any, Dict, List, Tuple

import pytest

from chatgpt_auth import AuthConfig, AuthEvents, CredentialRecord, ErrorKind, MemorySecureStore


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def encode_jwt(claims: Dict[str, Any]) -> str:
    header = _b64url(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    payload = _b64url(json.dumps(claims).encode())
    return f"{header}.{payload}.c2lnbmF0dXJl"


class RecordingEvents(AuthEvents):
    def __init__(self):
        self.events: List[Tuple[str, Any]] = []

    def signed_in(self, record: CredentialRecord) -> None:
        self.events.append(("signed_in", record))

    def signed_out(self) -> None:
        self.events.append(("signed_out", None))

    def auth_error(self, kind: ErrorKind, message: str) -> None:
        self.events.append(("auth_error", kind))

    def refreshed(self, record: CredentialRecord) -> None:
        self.events.append(("refreshed", record))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def make_jwt():
    """Build an unsigned JWT; ``expires_in`` seconds from now unless exp is given"""
    def _make(expires_in: float = 3600, **claims: Any) -> str:
        if expires_in is not None and "exp" not in claims:
            claims["exp"] = int(time.time() + expires_in)
        return encode_jwt(claims)
    return _make


@pytest.fixture
def config() -> AuthConfig:
    return AuthConfig(
        callback_port=0,
        callback_timeout=5.0,
        shutdown_delay=0.05,
        request_timeout=5.0,
    )


@pytest.fixture
def store() -> MemorySecureStore:
    return MemorySecureStore()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()
