"""Constants for flight-cache."""

from pathlib import Path

# Version
CLI_VERSION = "0.4.0"

# Remote service
DEFAULT_HOST = "https://cache.alces-flight.com"
API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT = 60.0  # seconds per request

# Ownership scopes, in display order
SCOPES = ("user", "group", "public")
DEFAULT_SCOPE = "user"

# Sentinel meaning "standard input/output" on the command line
STDIO = "-"

# Environment variables
HOST_ENV = "FLIGHT_CACHE_HOST"
CONFIG_ENV = "FLIGHT_CACHE_CONFIG"
TOKEN_ENV = "FLIGHT_AUTH_TOKEN"
LEGACY_TOKEN_ENV = "FLIGHT_SSO_TOKEN"

# Configuration files
CONFIG_PATH = Path("~/.config/flight/cache.yaml")
ACCOUNT_CONFIG_PATH = Path("~/.config/flight/accounts/config.yml")

# Streaming chunk size for downloads
CHUNK_SIZE = 64 * 1024

# Environment values that leave DEBUG switched off
FALSY_ENV_VALUES = ("", "0", "false", "no", "off")
