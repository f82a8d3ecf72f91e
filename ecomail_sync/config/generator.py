"""
Configuration file generator for Notion to Ecomail synchronization.

Generates the documented default configuration file written by
``ecomail-sync init-config``.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Returns:
        String containing YAML configuration with comments

    Example:
        config_yaml = generate_default_config()
        with open("config.yaml", "w") as f:
            f.write(config_yaml)
    """
    return """# Notion -> Ecomail Sync Configuration
# ===================================
#
# Default options for ecomail-sync. CLI arguments override these values.
#
# To use this configuration:
#   1. Save as ~/.ecomail-sync/config.yaml (or custom location)
#   2. Uncomment and modify options as needed
#   3. Run ecomail-sync commands normally


# Credentials
# -----------
#
# Prefer environment variables; they take precedence over this file:
#   NOTION_TOKEN, NOTION_DATABASE_ID, ECOMAIL_API_KEY, ECOMAIL_LIST_ID
#
# notion_token: secret_xxx
# notion_database_id: 0123456789abcdef0123456789abcdef
# ecomail_api_key: xxx
# ecomail_list_id: 1


# Sync Behavior
# -------------

# Preview changes without sending anything to Ecomail
# Default: false
# dry_run: false

# Start the list's autoresponders when a contact is subscribed
# Default: true
# trigger_autoresponders: true

# Allow a previously unsubscribed contact to be subscribed again when it
# opts in in Notion
# Default: true
# resubscribe: true

# Seconds to wait between contacts
# Default: 0.1
# pacing_delay: 0.1


# Notion Columns
# --------------
#
# Column names are matched ignoring case and Unicode normalization.
# intent_type is the Notion type of the intent column: select or status.
#
# properties:
#   email: Email
#   name: Jméno
#   surname: Příjmení
#   company: Firma
#   tags: Tags
#   intent: Marketingový status
#   intent_type: select

# Intent column values meaning "subscribe" / "unsubscribe".
# Any other value, or an empty cell, leaves the contact alone.
# opt_in_values: [Ano]
# opt_out_values: [Ne]


# Requests
# --------

# Per-request timeout in seconds
# Default: 30
# request_timeout: 30

# Attempts per request, including the first
# Default: 3
# max_attempts: 3

# First backoff after a network error (doubles each retry)
# Default: 1.0
# retry_delay: 1.0

# First backoff after HTTP 429 without Retry-After (doubles each retry)
# Default: 2.0
# rate_limit_delay: 2.0

# Upper bound for any computed backoff
# Default: 60.0
# max_retry_delay: 60.0

# Rows per Notion query page (1-100)
# Default: 100
# page_size: 100

# ecomail_base_url: https://api2.ecomailapp.cz
# notion_base_url: https://api.notion.com
# notion_version: "2022-06-28"


# Logging
# -------

# Verbose output with detailed logging
# Default: false
# verbose: false

# Directory for log files
# Default: ./logs
# log_dir: ~/.ecomail-sync/logs

# Number of log files to keep
# Default: 10
# log_retention_count: 10
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save default configuration file to specified path.

    Creates parent directories if needed and restricts the file to its
    owner, since it may hold credentials.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message); error_message is None on success
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
