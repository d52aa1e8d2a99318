"""Shared constants for cfpulse."""

DIR_MODE = 0o755
FILE_MODE = 0o644

MIN_CF_CLI_VERSION = "7.0"

CLONE_TIMEOUT_SECONDS = 600.0
PUSH_STAGING_TIMEOUT_SECONDS = 180.0
STAGING_TIMEOUT_SECONDS = 480.0
STARTUP_TIMEOUT_SECONDS = 300.0
COMMAND_TIMEOUT_SECONDS = 60.0

# Allowance for upload and CLI overhead on top of platform-side waits.
COMMAND_OVERHEAD_SECONDS = 60.0

RETRY_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0

DEFAULT_CONFIG_FILE = ".cfpulse.yml"
