"""Free-text filtering over the merged inbox.

Filtering is pure: it only looks at the messages it is given and at bodies
already present in the cache. Messages that were never opened or prefetched
are matched on their summary fields only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from bs4 import BeautifulSoup

from inbox_mirror.models import Message, MessageBody


class BodyCache(dict[str, MessageBody]):
    """Fetched message bodies keyed by message id."""

    def remember(self, message: Message) -> None:
        """Store the body of a fully fetched message."""
        self[message.id] = MessageBody(text=message.text or "", html=message.html or "")


def strip_html(html: str) -> str:
    """Return the visible text of an HTML document."""

    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(" ")
    return " ".join(text.split())


def _searchable_text(message: Message, body: MessageBody | None) -> str:
    parts = [
        message.subject,
        message.intro,
        message.sender.address,
        message.sender.name or "",
    ]
    parts.extend(f"{r.name or ''} {r.address}" for r in message.recipients)
    if body is not None:
        parts.append(body.text)
        parts.append(strip_html(body.html))
    return " ".join(parts).lower()


def matches(message: Message, query: str, bodies: Mapping[str, MessageBody] | None = None) -> bool:
    """Check whether ``message`` contains ``query`` (case-insensitive)."""

    if not query.strip():
        return True
    needle = query.lower()
    body = bodies.get(message.id) if bodies is not None else None
    return needle in _searchable_text(message, body)


def filter_messages(
    messages: Iterable[Message],
    query: str,
    bodies: Mapping[str, MessageBody] | None = None,
) -> list[Message]:
    """Return the messages matching ``query``, preserving order.

    A blank query returns every message.
    """

    if not query.strip():
        return list(messages)
    return [m for m in messages if matches(m, query, bodies)]
