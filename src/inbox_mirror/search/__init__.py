"""Client-side search over the merged inbox."""

from .filter import BodyCache, filter_messages, matches, strip_html

__all__ = ["BodyCache", "filter_messages", "matches", "strip_html"]
