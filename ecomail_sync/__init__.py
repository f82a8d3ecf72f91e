"""
ecomail_sync - Notion to Ecomail contact reconciliation.

Keeps subscription status, tags and profile attributes of Ecomail
subscribers consistent with a Notion contact database, and optionally
mirrors subscription status back into Notion.
"""

__version__ = "0.1.0"
