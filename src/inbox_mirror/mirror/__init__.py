"""Persisted mirror of provider messages.

Keeps a copy of every message seen for an account so that the inbox still
shows messages after the provider has purged them.
"""

from .persistence import PersistenceMirror, build_repository
from .repository import MirrorRepository, SqliteMirrorRepository
from .supabase import SupabaseMirrorRepository

__all__ = [
    "MirrorRepository",
    "PersistenceMirror",
    "SqliteMirrorRepository",
    "SupabaseMirrorRepository",
    "build_repository",
]
