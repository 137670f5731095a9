import keyring
import pytest
from keyring.errors import NoKeyringError, PasswordDeleteError

from chatgpt_auth import CredentialRecord, CredentialVault, ErrorKind, KeyringSecureStore, SecureStoreError


def _raise(error):
    def _fail(*args, **kwargs):
        raise error
    return _fail


@pytest.mark.parametrize("name", ["get_password", "set_password", "delete_password"])
def test_missing_keyring_backend_is_a_secure_store_error(monkeypatch, name) -> None:
    monkeypatch.setattr(keyring, name, _raise(NoKeyringError("No recommended backend was available")))
    store = KeyringSecureStore("chatgpt-auth-test")

    with pytest.raises(SecureStoreError) as exc_info:
        if name == "get_password":
            store.get("key")
        elif name == "set_password":
            store.set("key", "value")
        else:
            store.delete("key")

    assert exc_info.value.kind is ErrorKind.SECURE_STORE_ERROR
    assert "OS keychain" in exc_info.value.message


def test_deleting_a_missing_entry_succeeds(monkeypatch) -> None:
    monkeypatch.setattr(keyring, "delete_password", _raise(PasswordDeleteError("not found")))

    KeyringSecureStore("chatgpt-auth-test").delete("key")


def test_vault_round_trip(store) -> None:
    vault = CredentialVault(store, "creds")
    record = CredentialRecord(api_key="sk-x", id_token="id", refresh_token="rt", last_refresh="2025-01-01T00:00:00Z")

    vault.save(record)
    assert vault.load() == record

    vault.clear()
    assert vault.load() is None


def test_vault_ignores_corrupt_record(store) -> None:
    store.set("creds", "{not json")
    assert CredentialVault(store, "creds").load() is None
