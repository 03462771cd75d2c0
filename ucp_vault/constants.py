"""Shared constants for UCP Vault."""

APP_NAME = "UCP Vault"
APP_VERSION = "0.1.0"

# Configuration keys (per scope file)
ENDPOINTS_KEY = "endpoints"
STORE_API_KEY_IN_SETTINGS_KEY = "storeApiKeyInSettings"
VERBOSE_KEY = "verbose"

# Environment variables
CONFIG_PATH_ENV = "UCP_VAULT_CONFIG"
SECRET_KEY_ENV = "UCP_VAULT_SECRET_KEY"

# Default file locations
DEFAULT_CONFIG_FILE = "ucp-vault.yaml"
DEFAULT_SECRETS_FILE = "secrets.enc"

# Keyring service name for the OS keyring backend
KEYRING_SERVICE_NAME = "ucp-vault"

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
