from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("LOG_LEVEL", "warning")
DEBUG_LOG_FILE = config.get("DEBUG_LOG_FILE", "chatgpt_auth_debug.log")

# Local callback listener
# The port must match the redirect URI registered for the Codex CLI client,
# so it is only configurable for port-forwarding setups.
CALLBACK_PORT = config.get("CALLBACK_PORT", 1455)
CALLBACK_TIMEOUT = config.get("CALLBACK_TIMEOUT", 300.0)
CALLBACK_SHUTDOWN_DELAY = config.get("CALLBACK_SHUTDOWN_DELAY", 1.0)

# Token endpoint requests
TOKEN_REQUEST_TIMEOUT = config.get("TOKEN_REQUEST_TIMEOUT", 30.0)

# Credential freshness
EXPIRY_GRACE_SECONDS = config.get("EXPIRY_GRACE_SECONDS", 300)
MAX_CREDENTIAL_AGE_DAYS = config.get("MAX_CREDENTIAL_AGE_DAYS", 7.0)

# Best-effort complimentary credit redemption after sign-in
REDEEM_BONUS = config.get("REDEEM_BONUS", True)

# Name prefix for API keys minted by the token exchange
API_KEY_NAME = config.get("API_KEY_NAME", "chatgpt-auth")

# Secure credential store (OS keychain)
KEYRING_SERVICE = config.get("KEYRING_SERVICE", "chatgpt-auth")
CREDENTIAL_KEY = config.get("CREDENTIAL_KEY", "openai-chatgpt-credentials")

# Codex CLI credentials, read-only source for imports
CODEX_AUTH_FILE = config.get("CODEX_AUTH_FILE", "~/.codex/auth.json")
