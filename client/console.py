"""Line-oriented console client.

Plain text goes to the assistant; lines starting with `/` are commands.
Input is always collected before a request is made, so the channel never
waits on the user.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from client.api_service import ApiService
from client.connection_manager import ConnectionManager
from client.errors import ApiError, HandshakeError, NotConnectedError
from client.reconnect_policy import ReconnectPolicy
from client.view_model import ConnectionStatus, Message
from services.errors import SessionBusyError, TransportError
from utils.config import ClientSettings, load_client_settings

HELP_TEXT = """Commands:
  /help              show this help
  /list              list saved articles
  /read <name>       print an article
  /delete <name>     delete an article
  /stats             article statistics
  /retry             reconnect after the connection failed
  /quit, /exit       leave
Anything else is sent to the assistant."""


def parse_command(line: str) -> Tuple[str, List[str]]:
    """Split a `/command arg ...` line into a lower-cased command and args."""
    parts = line.strip().split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def format_reply(message: Message) -> str:
    lines = [f"IPA: {message.text}"]
    data = message.data
    if data.get("url"):
        lines.append(f"  link: {data['url']}")
    if data.get("location"):
        lines.append(f"  weather for: {data['location']}")
    if data.get("plotData"):
        lines.append(f"  plot: {data['plotData'].get('title') or 'untitled'}")
    if data.get("schematicSvg"):
        lines.append("  schematic attached (SVG)")
    if message.action in ("ENABLE_TTS", "DISABLE_TTS"):
        lines.append(f"  voice {'enabled' if message.action == 'ENABLE_TTS' else 'disabled'}")
    return "\n".join(lines)


class ConsoleClient:
    def __init__(
        self,
        settings: ClientSettings,
        manager: Optional[ConnectionManager] = None,
        api: Optional[ApiService] = None,
    ) -> None:
        self.settings = settings
        self.manager = manager or ConnectionManager(
            policy=ReconnectPolicy(max_attempts=settings.reconnect_attempts, base_delay=settings.reconnect_delay),
            handshake_timeout=settings.handshake_timeout,
        )
        self.api = api or ApiService(settings.server_url)
        self._subscribe()

    def _subscribe(self) -> None:
        self.manager.on_message(lambda message: print(format_reply(message)))
        self.manager.on_error(lambda error: print(f"Server error: {error}"))
        self.manager.on_document_saved(lambda frame: print(f"Article saved: {frame.get('filename')}"))
        self.manager.on_document_deleted(
            lambda frame: print(
                f"Article deleted: {frame.get('filename')}"
                if frame.get("success")
                else f"Article not found: {frame.get('filename')}"
            )
        )
        self.manager.on_documents_list(self._print_articles)
        self.manager.on_document_content(
            lambda frame: print(f"--- {frame.get('filename')} ---\n{frame.get('content', '')}")
        )
        self.manager.on_connection_change(self._print_status)

    @staticmethod
    def _print_articles(articles: List[str]) -> None:
        if not articles:
            print("No articles saved.")
            return
        for index, name in enumerate(articles, start=1):
            print(f"{index:3d}. {name}")

    @staticmethod
    def _print_status(status: ConnectionStatus) -> None:
        suffix = f" ({status.error})" if status.error else ""
        print(f"[{status.state.value}]{suffix}")

    async def handle_line(self, line: str) -> bool:
        """Handle one input line; return False when the user asked to quit."""
        line = line.strip()
        if not line:
            return True
        if not line.startswith("/"):
            await self._send(line)
            return True
        command, args = parse_command(line)
        if command in ("/quit", "/exit"):
            return False
        if command == "/help":
            print(HELP_TEXT)
        elif command == "/list":
            await self._list()
        elif command == "/read":
            await self._read(args)
        elif command == "/delete":
            await self._delete(args)
        elif command == "/stats":
            await self._stats()
        elif command == "/retry":
            await self.manager.retry()
        else:
            print(f"Unknown command: {command}. Type /help for available commands.")
        return True

    async def _send(self, text: str) -> None:
        try:
            await self.manager.send_turn(text)
        except NotConnectedError as exc:
            print(f"{exc}. Message not sent.")
        except SessionBusyError:
            print("Still waiting for the previous answer.")

    async def _list(self) -> None:
        if self.manager.view.connected:
            await self.manager.request_documents()
            return
        try:
            self._print_articles(await self.api.get_articles())
        except ApiError as exc:
            print(exc)

    async def _read(self, args: List[str]) -> None:
        if not args:
            print("Usage: /read <name>")
            return
        name = " ".join(args)
        if self.manager.view.connected:
            await self.manager.request_document(name)
            return
        try:
            content = await self.api.get_article(name)
        except ApiError as exc:
            print(exc)
            return
        print(f"Article not found: {name}" if content is None else f"--- {name} ---\n{content}")

    async def _delete(self, args: List[str]) -> None:
        if not args:
            print("Usage: /delete <name>")
            return
        name = " ".join(args)
        if self.manager.view.connected:
            await self.manager.delete_document(name)
            return
        try:
            result = await self.api.delete_article(name)
        except ApiError as exc:
            print(exc)
            return
        print(f"Article deleted: {name}" if result.get("success") else f"Article not found: {name}")

    async def _stats(self) -> None:
        try:
            stats = await self.api.get_stats()
        except ApiError as exc:
            print(exc)
            return
        print(f"Articles: {stats['totalArticles']}  total size: {stats['totalSize']} bytes")
        for article in stats["articles"]:
            print(f"  {article['filename']}: {article['size']} bytes, {article['lines']} lines")

    async def run(self) -> None:
        try:
            await self.api.health_check()
        except ApiError as exc:
            print(f"{exc}\nMake sure the server is running and accessible.")
            return
        try:
            await self.manager.connect(self.settings.server_url)
        except (HandshakeError, TransportError, OSError) as exc:
            print(f"Realtime channel unavailable ({exc}); article commands use the REST API.")
        print(HELP_TEXT)
        try:
            while True:
                line = await asyncio.to_thread(input, "> ")
                if not await self.handle_line(line):
                    break
        except (EOFError, KeyboardInterrupt):
            pass
        finally:
            await self.manager.disconnect()
            await self.api.aclose()
        print("Goodbye!")


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(ConsoleClient(load_client_settings()).run())


if __name__ == "__main__":
    main()
