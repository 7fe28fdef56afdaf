"""
NotionRelay: flag-triggered sync between two Notion databases, and
idempotent delivery of generated reports to a chat channel.
"""

__version__ = "0.1.0"
