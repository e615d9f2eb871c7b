"""Render message lists as JSON, Markdown or a standalone HTML page."""

from __future__ import annotations

import html
import json
from datetime import datetime, timezone

from inbox_mirror.models import EmailAddress, Message

FORMATS = {
    "json": "json",
    "markdown": "md",
    "html": "html",
}

_HTML_STYLE = """\
    body { font-family: system-ui, -apple-system, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }
    .email { border: 1px solid #ddd; margin: 20px 0; padding: 20px; border-radius: 8px; }
    .subject { font-size: 1.2em; font-weight: bold; }
    .meta { color: #666; margin: 10px 0; }
    .content { margin-top: 20px; }"""


def format_sender(address: EmailAddress) -> str:
    """Return ``Name <address>`` when a distinct display name exists."""

    if address.name and address.name != address.address:
        return f"{address.name} <{address.address}>"
    return address.address


def _recipients(message: Message) -> str:
    return ", ".join(format_sender(r) for r in message.recipients)


def _date(message: Message) -> str:
    return message.created_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def to_json(messages: list[Message]) -> str:
    payload = [m.model_dump(mode="json", by_alias=True) for m in messages]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def to_markdown(messages: list[Message]) -> str:
    blocks = []
    for m in messages:
        blocks.append(
            f"# {m.subject}\n"
            "\n"
            f"**From:** {format_sender(m.sender)}\n"
            f"**To:** {_recipients(m)}\n"
            f"**Date:** {_date(m)}\n"
            "\n"
            "---\n"
            "\n"
            f"{m.text or m.intro}\n"
            "\n"
            "---\n"
        )
    return "\n\n".join(blocks)


def to_html(messages: list[Message]) -> str:
    items = []
    for m in messages:
        # Message HTML is embedded as-is; everything else is escaped.
        content = m.html or html.escape(m.text or m.intro)
        items.append(
            '  <div class="email">\n'
            f'    <div class="subject">{html.escape(m.subject)}</div>\n'
            '    <div class="meta">\n'
            f"      <div>From: {html.escape(format_sender(m.sender))}</div>\n"
            f"      <div>To: {html.escape(_recipients(m))}</div>\n"
            f"      <div>Date: {html.escape(_date(m))}</div>\n"
            "    </div>\n"
            f'    <div class="content">\n{content}\n    </div>\n'
            "  </div>"
        )

    body = "\n".join(items)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '  <meta charset="utf-8">\n'
        "  <title>Exported Emails</title>\n"
        f"  <style>\n{_HTML_STYLE}\n  </style>\n"
        "</head>\n"
        f"<body>\n{body}\n</body>\n"
        "</html>\n"
    )


def export_messages(messages: list[Message], fmt: str) -> str:
    """Render ``messages`` in the given format.

    Raises:
        ValueError: If the format is unknown.
    """

    if fmt == "json":
        return to_json(messages)
    if fmt == "markdown":
        return to_markdown(messages)
    if fmt == "html":
        return to_html(messages)
    raise ValueError(f"Unsupported export format {fmt!r}; choose from {sorted(FORMATS)}")


def export_filename(fmt: str, now: datetime | None = None) -> str:
    """Return ``emails_<timestamp>.<ext>`` with a filesystem-safe timestamp."""

    if fmt not in FORMATS:
        raise ValueError(f"Unsupported export format {fmt!r}")
    moment = now or datetime.now(timezone.utc)
    stamp = moment.strftime("%Y-%m-%dT%H-%M-%S")
    return f"emails_{stamp}.{FORMATS[fmt]}"
