"""
Entry point for running ecomail_sync as a module.

Usage:
    python -m ecomail_sync --help
    python -m ecomail_sync sync --dry-run
    python -m ecomail_sync pull
"""

from ecomail_sync.cli import cli

if __name__ == "__main__":
    cli()
