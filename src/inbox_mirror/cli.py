"""Command-line interface for Inbox Mirror.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import structlog

from inbox_mirror import __version__
from inbox_mirror.config import Settings, get_settings
from inbox_mirror.exceptions import AuthenticationError, InboxMirrorError
from inbox_mirror.export import export_filename, export_messages, format_sender
from inbox_mirror.mailtm import MailTmClient
from inbox_mirror.mirror import PersistenceMirror, build_repository
from inbox_mirror.models import InboxView, Message
from inbox_mirror.search import filter_messages
from inbox_mirror.session import FileCookieStore, SessionState
from inbox_mirror.sync import InboxSynchronizer

logger = structlog.get_logger()


@dataclass
class _Context:
    settings: Settings
    session: SessionState
    client: MailTmClient
    synchronizer: InboxSynchronizer


def _build_context(settings: Settings) -> _Context:
    session = SessionState(
        FileCookieStore(settings.session_path),
        ttl=timedelta(hours=settings.session_ttl_hours),
    )
    client = MailTmClient(settings, session=session)
    mirror = PersistenceMirror(build_repository(settings))
    synchronizer = InboxSynchronizer(client, mirror, session, settings)
    return _Context(settings=settings, session=session, client=client, synchronizer=synchronizer)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inbox-mirror", description="Inbox Mirror")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("domains", help="List domains available for registration")

    register_parser = subparsers.add_parser("register", help="Create a new mailbox and log in")
    register_parser.add_argument("username", help="Local part of the new address")
    register_parser.add_argument("--domain", default=None, help="Domain (default: first active)")
    register_parser.add_argument("--password", default=None, help="Password (prompted if omitted)")

    login_parser = subparsers.add_parser("login", help="Log into an existing mailbox")
    login_parser.add_argument("address", help="Full email address")
    login_parser.add_argument("--password", default=None, help="Password (prompted if omitted)")

    subparsers.add_parser("accounts", help="List remembered accounts")

    switch_parser = subparsers.add_parser("switch", help="Switch the active account")
    switch_parser.add_argument("address", help="Address of a remembered account")

    logout_parser = subparsers.add_parser("logout", help="Forget the active account")
    logout_parser.add_argument(
        "--all", action="store_true", help="Also forget every remembered account"
    )

    inbox_parser = subparsers.add_parser("inbox", help="Show the merged inbox")
    inbox_parser.add_argument("--page", type=int, default=1, help="Provider page to fetch")
    inbox_parser.add_argument("--search", default="", help="Only show matching messages")
    inbox_parser.add_argument(
        "--watch", action="store_true", help="Keep refreshing every refresh_interval seconds"
    )

    read_parser = subparsers.add_parser("read", help="Show a message and mark it read")
    read_parser.add_argument("message_id", help="Message ID")

    delete_parser = subparsers.add_parser("delete", help="Delete a message")
    delete_parser.add_argument("message_id", help="Message ID")

    subparsers.add_parser("delete-account", help="Delete the active mailbox at the provider")

    export_parser = subparsers.add_parser("export", help="Export the merged inbox to a file")
    export_parser.add_argument(
        "--format", choices=["json", "markdown", "html"], default="json", dest="fmt"
    )
    export_parser.add_argument("--search", default="", help="Only export matching messages")
    export_parser.add_argument(
        "--output-dir", type=Path, default=Path("."), help="Directory to write the export to"
    )

    return parser


def _password(value: str | None) -> str:
    return value if value is not None else getpass.getpass("Password: ")


def _print_messages(messages: list[Message]) -> None:
    for m in messages:
        status = "READ" if m.seen else "NEW"
        print(f"{status}\t{m.created_at.isoformat()}\t{m.id}\t{format_sender(m.sender)}\t{m.subject}")


def _print_view(view: InboxView, query: str, ctx: _Context) -> None:
    shown = filter_messages(view.messages, query, ctx.synchronizer.bodies)
    _print_messages(shown)
    suffix = f" ({len(shown)} matching)" if query.strip() else ""
    print(f"{view.total} messages{suffix}")


async def _cmd_domains(ctx: _Context, args: argparse.Namespace) -> int:
    for d in await ctx.client.list_domains():
        state = "active" if d.is_active else "inactive"
        print(f"{d.domain}\t{state}")
    return 0


async def _cmd_register(ctx: _Context, args: argparse.Namespace) -> int:
    account = await ctx.client.register(args.username, _password(args.password), args.domain)
    print(f"Created and logged into {account.address}")
    return 0


async def _cmd_login(ctx: _Context, args: argparse.Namespace) -> int:
    account = await ctx.client.login(args.address, _password(args.password))
    print(f"Logged into {account.address}")
    return 0


async def _cmd_inbox(ctx: _Context, args: argparse.Namespace) -> int:
    if not args.watch:
        view = await ctx.synchronizer.refresh(page=args.page)
        if ctx.settings.prefetch_bodies and args.search.strip():
            await ctx.synchronizer.prefetch_bodies(view.messages)
        _print_view(view, args.search, ctx)
        return 0

    # Runs until interrupted; Ctrl-C ends the loop without aborting in-flight requests.
    await ctx.synchronizer.auto_refresh(
        asyncio.Event(), on_refresh=lambda view: _print_view(view, args.search, ctx)
    )
    return 0


async def _cmd_read(ctx: _Context, args: argparse.Namespace) -> int:
    message = await ctx.synchronizer.get_message(args.message_id)
    await ctx.synchronizer.mark_as_read(args.message_id)

    print(f"Subject: {message.subject}")
    print(f"From: {format_sender(message.sender)}")
    print(f"To: {', '.join(format_sender(r) for r in message.recipients)}")
    print(f"Date: {message.created_at.isoformat()}")
    print()
    print(message.text or message.intro)
    return 0


async def _cmd_delete(ctx: _Context, args: argparse.Namespace) -> int:
    await ctx.synchronizer.delete_message(args.message_id)
    print(f"Deleted {args.message_id}")
    return 0


async def _cmd_delete_account(ctx: _Context, args: argparse.Namespace) -> int:
    account = ctx.session.active_account()
    if account is None:
        raise AuthenticationError("No active account. Log in first.")
    account_id = account.id or (await ctx.client.get_me()).id
    await ctx.client.delete_account(account_id)
    ctx.session.remove_account(account.address)
    print(f"Deleted account {account.address}")
    return 0


async def _cmd_export(ctx: _Context, args: argparse.Namespace) -> int:
    view = await ctx.synchronizer.refresh()
    await ctx.synchronizer.prefetch_bodies(view.messages)
    bodies = ctx.synchronizer.bodies
    # Exports carry full bodies where they are available.
    messages = [
        m.model_copy(update={"text": bodies[m.id].text, "html": bodies[m.id].html})
        if m.id in bodies and not m.has_body
        else m
        for m in filter_messages(view.messages, args.search, bodies)
    ]

    args.output_dir.mkdir(parents=True, exist_ok=True)
    path = args.output_dir / export_filename(args.fmt)
    path.write_text(export_messages(messages, args.fmt), encoding="utf-8")
    print(f"Exported {len(messages)} messages to {path}")
    return 0


def _cmd_accounts(ctx: _Context) -> int:
    active = ctx.session.active_account()
    for entry in ctx.session.accounts():
        marker = "*" if active is not None and active.address == entry.email else " "
        print(f"{marker} {entry.email}\t{entry.label}")
    return 0


def _cmd_switch(ctx: _Context, args: argparse.Namespace) -> int:
    account = ctx.session.switch_account(args.address)
    print(f"Active account: {account.address}")
    return 0


def _cmd_logout(ctx: _Context, args: argparse.Namespace) -> int:
    if args.all:
        ctx.session.clear()
    else:
        ctx.session.clear_active()
    print("Logged out")
    return 0


_ASYNC_COMMANDS = {
    "domains": _cmd_domains,
    "register": _cmd_register,
    "login": _cmd_login,
    "inbox": _cmd_inbox,
    "read": _cmd_read,
    "delete": _cmd_delete,
    "delete-account": _cmd_delete_account,
    "export": _cmd_export,
}


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Inbox Mirror CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
    )

    logger.info("inbox_mirror_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        ctx = _build_context(settings)

        if parsed.command == "accounts":
            return _cmd_accounts(ctx)
        if parsed.command == "switch":
            return _cmd_switch(ctx, parsed)
        if parsed.command == "logout":
            return _cmd_logout(ctx, parsed)

        command = _ASYNC_COMMANDS.get(parsed.command)
        if command is not None:
            return asyncio.run(command(ctx, parsed))
    except KeyboardInterrupt:
        return 130
    except InboxMirrorError as exc:
        logger.error("command_failed", command=parsed.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
