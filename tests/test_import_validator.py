import json

import pytest

from chatgpt_auth import ErrorKind, MalformedImportError, read_codex_auth_file, redact, validate_import


def test_api_key_only_import() -> None:
    imported = validate_import('{"OPENAI_API_KEY": "sk-xyz"}')

    assert imported.record.api_key == "sk-xyz"
    assert imported.record.id_token == ""
    assert imported.record.refresh_token == ""
    assert imported.record.last_refresh == ""


@pytest.mark.parametrize(
    "raw",
    [
        "{}",
        "[1, 2, 3]",
        '"sk-xyz"',
        "not json",
        '{"id_token": "only-id"}',
        '{"OPENAI_API_KEY": "   "}',
    ],
)
def test_malformed_imports_are_rejected(raw) -> None:
    with pytest.raises(MalformedImportError) as exc_info:
        validate_import(raw)

    assert exc_info.value.kind is ErrorKind.MALFORMED_IMPORT


def test_codex_auth_layout() -> None:
    raw = json.dumps(
        {
            "OPENAI_API_KEY": "sk-codex-api-key-123456",
            "tokens": {
                "id_token": "id.token.value",
                "refresh_token": "refresh-token-value-abcdef",
                "account_id": "acct_1",
            },
            "last_refresh": "2025-01-01T00:00:00Z",
        }
    )

    record = validate_import(raw).record

    assert record.api_key == "sk-codex-api-key-123456"
    assert record.id_token == "id.token.value"
    assert record.refresh_token == "refresh-token-value-abcdef"
    assert record.last_refresh == "2025-01-01T00:00:00Z"


def test_nested_tokens_take_priority() -> None:
    raw = json.dumps(
        {
            "id_token": "outer-id",
            "refresh_token": "outer-refresh",
            "tokens": {"id_token": "inner-id", "refresh_token": "inner-refresh"},
        }
    )

    record = validate_import(raw).record

    assert record.id_token == "inner-id"
    assert record.refresh_token == "inner-refresh"


def test_camel_case_fields() -> None:
    raw = json.dumps({"apiKey": "sk-camel", "idToken": "id", "refreshToken": "rt", "lastRefresh": "2025-02-02T00:00:00Z"})

    record = validate_import(raw).record

    assert record.api_key == "sk-camel"
    assert record.has_tokens
    assert record.last_refresh == "2025-02-02T00:00:00Z"


def test_preview_is_redacted() -> None:
    imported = validate_import(json.dumps({"OPENAI_API_KEY": "sk-proj-abcdefghijklmnop", "id_token": "x"}))

    assert imported.preview == {"api_key": "sk-pro...mnop", "id_token": "*"}
    assert "abcdefghijkl" not in json.dumps(imported.preview)


@pytest.mark.parametrize(
    "secret, expected",
    [
        ("", ""),
        ("short", "*****"),
        ("exactly12chr", "************"),
        ("thirteen-char", "thirte...char"),
    ],
)
def test_redact(secret, expected) -> None:
    assert redact(secret) == expected


def test_read_codex_auth_file(tmp_path) -> None:
    auth_file = tmp_path / "auth.json"
    auth_file.write_text(json.dumps({"OPENAI_API_KEY": "sk-from-file"}), encoding="utf-8")

    assert read_codex_auth_file(auth_file).record.api_key == "sk-from-file"
    assert auth_file.read_text(encoding="utf-8") == json.dumps({"OPENAI_API_KEY": "sk-from-file"})


def test_missing_codex_auth_file(tmp_path) -> None:
    with pytest.raises(MalformedImportError) as exc_info:
        read_codex_auth_file(tmp_path / "missing.json")

    assert "codex login" in exc_info.value.message
