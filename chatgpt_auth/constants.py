"""
OpenAI OAuth constants (Codex CLI client identity)
"""

# OAuth Configuration
CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
OAUTH_ISSUER = "https://auth.openai.com"
AUTHORIZE_URL = f"{OAUTH_ISSUER}/oauth/authorize"
TOKEN_URL = f"{OAUTH_ISSUER}/oauth/token"
SCOPE = "openid profile email offline_access"
REFRESH_SCOPE = "openid profile email"

# Token exchange (id_token -> API key)
TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
ID_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:id_token"
REQUESTED_TOKEN = "openai-api-key"
PLATFORM_URL = "https://platform.openai.com/"

# Complimentary credit redemption for Plus/Pro accounts
REDEEM_CREDITS_URL = "https://api.openai.com/v1/billing/redeem_credits"

# JWT claim namespace carrying ChatGPT account data
AUTH_CLAIM_PATH = "https://api.openai.com/auth"

# OAuth callback server
OAUTH_CALLBACK_HOST = "127.0.0.1"
OAUTH_CALLBACK_PORT = 1455
OAUTH_CALLBACK_PATH = "/auth/callback"
OAUTH_CALLBACK_TIMEOUT = 300.0
