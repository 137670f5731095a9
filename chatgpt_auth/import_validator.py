"""Validation of externally supplied credential bundles"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import MalformedImportError
from .models import CredentialRecord, ImportedCredential

logger = logging.getLogger(__name__)

DEFAULT_CODEX_AUTH_FILE = Path.home() / ".codex" / "auth.json"

# Accepted spellings per record field, first match wins
_FIELD_ALIASES = {
    "api_key": ("OPENAI_API_KEY", "api_key", "apiKey"),
    "id_token": ("id_token", "idToken"),
    "refresh_token": ("refresh_token", "refreshToken"),
    "last_refresh": ("last_refresh", "lastRefresh", "lastRefreshIso"),
}


def redact(secret: str) -> str:
    """Short prefix and suffix of a secret, for confirmation prompts"""
    if len(secret) <= 12:
        return "*" * len(secret)
    return f"{secret[:6]}...{secret[-4:]}"


def _pick(sources: Any, field: str) -> str:
    for source in sources:
        for alias in _FIELD_ALIASES[field]:
            value = source.get(alias)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def validate_import(raw_json: str) -> ImportedCredential:
    """Parse and validate a pasted or file-sourced credential bundle

    Accepts the Codex CLI ``auth.json`` layout (``OPENAI_API_KEY`` plus a
    nested ``tokens`` object) and flat snake_case or camelCase objects.

    Args:
        raw_json: JSON text

    Returns:
        ImportedCredential with the record and a redacted preview

    Raises:
        MalformedImportError: The input is not JSON, not an object, or holds
            neither an API key nor an id/refresh token pair
    """
    try:
        data = json.loads(raw_json)
    except (TypeError, ValueError) as e:
        raise MalformedImportError(f"Credential import is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedImportError("Credential import must be a JSON object")

    sources = [data]
    tokens = data.get("tokens")
    if isinstance(tokens, dict):
        sources.insert(0, tokens)

    fields: Dict[str, str] = {name: _pick(sources, name) for name in _FIELD_ALIASES}

    has_api_key = bool(fields["api_key"])
    has_tokens = bool(fields["id_token"] and fields["refresh_token"])
    if not has_api_key and not has_tokens:
        raise MalformedImportError(
            "Credential import needs an API key or both an id_token and a refresh_token"
        )

    record = CredentialRecord(**fields)
    preview = {
        name: redact(value)
        for name, value in fields.items()
        if value and name != "last_refresh"
    }
    logger.debug(f"Validated credential import with fields: {sorted(preview)}")
    return ImportedCredential(record=record, preview=preview)


def read_codex_auth_file(path: Optional[Path] = None) -> ImportedCredential:
    """Read and validate the Codex CLI credential file (read-only)

    Args:
        path: File to read (default: ~/.codex/auth.json)

    Raises:
        MalformedImportError: The file is missing, unreadable or invalid
    """
    path = Path(path).expanduser() if path else DEFAULT_CODEX_AUTH_FILE
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise MalformedImportError(f"Codex CLI credentials not found at {path}. Run 'codex login' first.") from e
    except OSError as e:
        raise MalformedImportError(f"Could not read {path}: {e}") from e

    logger.info(f"Read Codex CLI credentials from {path}")
    return validate_import(raw)
