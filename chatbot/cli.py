"""Terminal chat client for the streaming chat server."""
from __future__ import annotations

import argparse
import logging
import sys
import uuid

from .client import CLIENT_EMPTY_PLACEHOLDER, ChatClient
from .config import setup_logging
from .errors import TransportError


class _Printer:
    """Prints only the newly arrived tail of the growing reply."""

    def __init__(self) -> None:
        self.shown = 0

    def __call__(self, _turn_id: str, text: str) -> None:
        sys.stdout.write(text[self.shown:])
        sys.stdout.flush()
        self.shown = len(text)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Chat with the bot from the terminal.")
    parser.add_argument("--url", default="http://localhost:3000", help="Chat server base URL")
    parser.add_argument("--no-stream", action="store_true", help="Use the non-streaming endpoint")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else "WARNING")
    log = logging.getLogger("chatbot.cli")

    conversation_id = str(uuid.uuid4())
    print("Type a message. /reset clears the conversation, /quit exits.")

    with ChatClient(base_url=args.url) as client:
        while True:
            try:
                prompt = input("> ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return 0
            if not prompt:
                continue
            if prompt == "/quit":
                return 0
            if prompt == "/reset":
                try:
                    print(client.reset(conversation_id).get("message", ""))
                except TransportError as e:
                    log.error("%s", e)
                continue

            try:
                if args.no_stream:
                    print(client.chat(prompt, conversation_id))
                    continue
                printer = _Printer()
                reply = client.stream_chat(prompt, conversation_id, on_update=printer)
                if not reply.text:
                    sys.stdout.write(CLIENT_EMPTY_PLACEHOLDER)
                print()
            except TransportError as e:
                if e.partial_text:
                    print()
                print(f"[Error] {e}")


if __name__ == "__main__":
    sys.exit(main())
