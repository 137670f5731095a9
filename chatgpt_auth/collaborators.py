"""External collaborators of the sign-in core

The core never writes credentials anywhere itself. It talks to a secure
store, a browser launcher and an event sink supplied by the host
application; default implementations live here.
"""

import json
import logging
import webbrowser
from typing import Dict, Optional, Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import ErrorKind, SecureStoreError
from .models import CredentialRecord

logger = logging.getLogger(__name__)


class SecureStore(Protocol):
    """Key/value store for secrets"""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySecureStore:
    """Secure store kept in process memory only"""

    def __init__(self):
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class KeyringSecureStore:
    """Secure store backed by the OS keychain

    Keyring failures (including a host with no keyring backend) surface as
    ``SecureStoreError``.
    """

    def __init__(self, service_name: str):
        self.service_name = service_name

    def get(self, key: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, key)
        except KeyringError as e:
            logger.error(f"Failed to read {self.service_name}/{key} from keyring: {e}")
            raise SecureStoreError(f"Could not read credentials from the OS keychain: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            keyring.set_password(self.service_name, key, value)
        except KeyringError as e:
            logger.error(f"Failed to save {self.service_name}/{key} to keyring: {e}")
            raise SecureStoreError(f"Could not save credentials to the OS keychain: {e}") from e

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service_name, key)
        except PasswordDeleteError:
            logger.debug(f"No keyring entry to delete for {self.service_name}/{key}")
        except KeyringError as e:
            logger.error(f"Failed to delete {self.service_name}/{key} from keyring: {e}")
            raise SecureStoreError(f"Could not remove credentials from the OS keychain: {e}") from e


class CredentialVault:
    """Reads and writes the credential record as one secure-store value

    Storing the whole record under a single key means every write replaces
    all four fields at once.
    """

    def __init__(self, store: SecureStore, key: str):
        self.store = store
        self.key = key

    def load(self) -> Optional[CredentialRecord]:
        raw = self.store.get(self.key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored credential record is not valid JSON: {e}")
            return None
        if not isinstance(data, dict):
            logger.error("Stored credential record is not a JSON object")
            return None
        return CredentialRecord.from_dict(data)

    def save(self, record: CredentialRecord) -> None:
        self.store.set(self.key, json.dumps(record.to_dict()))
        logger.debug("Saved credential record to secure store")

    def clear(self) -> None:
        self.store.delete(self.key)
        logger.debug("Cleared credential record from secure store")


class BrowserLauncher(Protocol):
    def open(self, url: str) -> None: ...


class WebBrowserLauncher:
    """Opens URLs with the system browser"""

    def open(self, url: str) -> None:
        if not webbrowser.open(url):
            logger.warning("Could not open browser automatically; open the authorization URL manually")


class AuthEvents:
    """Receives sign-in outcomes for display; methods do nothing by default"""

    def signed_in(self, record: CredentialRecord) -> None:
        pass

    def signed_out(self) -> None:
        pass

    def auth_error(self, kind: ErrorKind, message: str) -> None:
        pass

    def refreshed(self, record: CredentialRecord) -> None:
        pass

    def authorization_url(self, url: str) -> None:
        """Called with the authorization URL right before the browser opens"""
        pass
