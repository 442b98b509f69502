"""Command-line entry point.

Usage:
    messaging conversations [--page N] [--search TEXT]
    messaging thread PARTNER_ID [--page N]
    messaging send PARTNER_ID TEXT
    messaging chat [PARTNER_ID]
"""

import argparse
import asyncio
import sys

import structlog

from messaging.client.api_client import MessagingClient
from messaging.core.config import settings
from messaging.core.exceptions import AppException
from messaging.core.logger import configure_logging
from messaging.schemas.conversation_schema import ConversationFilters
from messaging.services.conversation_controller import ConversationController
from messaging.utils.urls import conversation_query
from messaging.views.conversation_view import (
    TerminalView,
    render_conversation_list,
    render_message,
    render_thread,
)

logger = structlog.get_logger()

CHAT_HELP = (
    "Commands: /open ID, /next, /prev, /older, /newer, /search TEXT, "
    "/delete KEY, /help, /quit. Anything else is sent."
)


async def show_conversations(page: int, search: str | None) -> int:
    """Print one page of conversations."""
    async with MessagingClient(settings.api) as client:
        try:
            result = await client.list_conversations(
                ConversationFilters(page=page, limit=settings.api.page_limit)
            )
        except AppException as exc:
            print(f"error: {exc.message}", file=sys.stderr)
            return 1

    conversations = result.conversations
    if search:
        needle = search.lower()
        conversations = [c for c in conversations if needle in c.participant.lower()]
    lines = render_conversation_list(
        conversations, None, result.pagination, search_query=search or ""
    )
    print("\n".join(lines))
    return 0


async def show_thread(partner_id: str, page: int) -> int:
    """Print one page of a conversation thread."""
    async with MessagingClient(settings.api) as client:
        try:
            result = await client.get_conversation(partner_id, page)
        except AppException as exc:
            print(f"error: {exc.message}", file=sys.stderr)
            return 1

    user_id = settings.session.user_id
    messages = [
        m.model_copy(update={"sender": m.sender.for_viewer(user_id)})
        for m in result.messages
    ]
    print("\n".join(render_thread(result.partner, partner_id, messages, result.pagination)))
    return 0


async def send_once(partner_id: str, text: str) -> int:
    """Send a single message and print the stored copy."""
    if not text.strip():
        print("error: message is empty", file=sys.stderr)
        return 2
    async with MessagingClient(settings.api) as client:
        try:
            result = await client.send_message(partner_id, text.strip())
        except AppException as exc:
            print(f"error: {exc.message}", file=sys.stderr)
            return 1
    print(render_message(result.message))
    return 0


async def handle_chat_line(controller: ConversationController, line: str) -> bool:
    """Apply one line typed in chat mode. Returns False to leave."""
    command, _, argument = line.strip().partition(" ")
    argument = argument.strip()
    store = controller.store

    if command == "/quit":
        return False
    if command == "/help":
        print(CHAT_HELP)
    elif command == "/open" and argument:
        await controller.select_conversation(argument)
    elif command in ("/next", "/prev"):
        pagination = store.conversation_pagination
        if pagination is not None:
            step = 1 if command == "/next" else -1
            await controller.go_to_conversation_page(pagination.page + step)
    elif command in ("/older", "/newer"):
        pagination = store.message_pagination
        if pagination is not None:
            step = 1 if command == "/older" else -1
            await controller.go_to_message_page(pagination.page + step)
    elif command == "/search":
        controller.search(argument)
    elif command == "/delete" and argument:
        await controller.delete_message(argument)
    elif line.strip():
        controller.set_draft(line)
        await controller.send()
    return True


async def chat(partner_id: str | None) -> int:
    """Interactive conversation view with live updates."""
    async with MessagingClient(settings.api) as client:
        controller = ConversationController(
            client,
            settings.session,
            page_limit=settings.api.page_limit,
            reconnect_delay=settings.stream.reconnect_delay_seconds,
        )
        view = TerminalView(controller.store)
        view.attach()
        try:
            await controller.mount(conversation_query(partner_id) or None)
            view.draw()
            print(CHAT_HELP)
            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                if not await handle_chat_line(controller, line.rstrip("\n")):
                    break
        finally:
            view.detach()
            await controller.unmount()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="messaging", description="Conversation client for the messaging backend"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    conversations = commands.add_parser("conversations", help="List conversations")
    conversations.add_argument("--page", type=int, default=1, help="Page number")
    conversations.add_argument("--search", help="Filter by participant name")

    thread = commands.add_parser("thread", help="Show messages with a partner")
    thread.add_argument("partner_id", help="Partner user id")
    thread.add_argument("--page", type=int, default=1, help="Page number")

    send = commands.add_parser("send", help="Send a message")
    send.add_argument("partner_id", help="Receiver user id")
    send.add_argument("text", help="Message text")

    chat_parser = commands.add_parser("chat", help="Open the live conversation view")
    chat_parser.add_argument("partner_id", nargs="?", help="Conversation to open")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.app)
    logger.debug("Starting", command=args.command, base_url=settings.api.base_url)

    if args.command == "conversations":
        coro = show_conversations(max(args.page, 1), args.search)
    elif args.command == "thread":
        coro = show_thread(args.partner_id, max(args.page, 1))
    elif args.command == "send":
        coro = send_once(args.partner_id, args.text)
    else:
        coro = chat(args.partner_id)

    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
