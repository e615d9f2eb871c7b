"""Inbox Mirror - disposable inbox client with a durable message mirror.

This package talks to a mail.tm compatible provider, keeps a persisted copy
of every message it sees, and merges both into one searchable inbox.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from inbox_mirror.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
