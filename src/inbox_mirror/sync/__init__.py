"""Synchronization of the provider inbox with the persisted mirror."""

from .synchronizer import InboxSynchronizer, merge_messages, sort_by_recency

__all__ = ["InboxSynchronizer", "merge_messages", "sort_by_recency"]
