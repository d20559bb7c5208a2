"""Client side of the realtime channel.

`ConnectionManager` keeps one websocket per client process, waits for the
server's `connection_established` frame before declaring the session usable,
reconnects with a `ReconnectPolicy` after transport loss, and fans inbound
events out to subscribers in registration order.

Nothing is buffered while disconnected: calls made during a gap fail with
`NotConnectedError` and are not replayed after reconnecting.
"""

from __future__ import annotations

import asyncio
import base64
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit
from uuid import uuid4

import websockets
from websockets.exceptions import ConnectionClosed

from client.errors import HandshakeError, NotConnectedError
from client.reconnect_policy import ReconnectPolicy
from client.view_model import ConnectionState, ConnectionStatus, ConnectionView
from models.events import utc_timestamp
from models.session_models import Attachment
from services.errors import SessionBusyError, TransportError

LOGGER = logging.getLogger(__name__)

CATEGORIES = (
    "message",
    "error",
    "connectionChange",
    "documentsList",
    "documentSaved",
    "documentDeleted",
    "documentContent",
)

_EVENT_CATEGORIES = {
    "ai_response": "message",
    "error": "error",
    "articles_list": "documentsList",
    "article_saved": "documentSaved",
    "article_deleted": "documentDeleted",
    "article_content": "documentContent",
}

_TRANSPORT_ERRORS = (ConnectionClosed, OSError, TransportError, HandshakeError)

Handler = Callable[[Any], Any]
Connector = Callable[[str], Awaitable[Any]]


def channel_url(server_url: str) -> str:
    """Map an http(s) server URL to its websocket endpoint."""
    parts = urlsplit(server_url)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme or "ws")
    path = parts.path if parts.path not in ("", "/") else "/ws"
    return urlunsplit((scheme, parts.netloc, path, parts.query, ""))


async def websocket_connector(address: str):
    return await websockets.connect(address, max_size=None)


class ConnectionManager:
    """Own the duplex channel lifecycle and the subscription registry."""

    def __init__(
        self,
        *,
        policy: Optional[ReconnectPolicy] = None,
        connector: Optional[Connector] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        handshake_timeout: float = 10.0,
    ) -> None:
        self.view = ConnectionView()
        self.policy = policy or ReconnectPolicy()
        self.handshake_timeout = handshake_timeout
        self._connector = connector or websocket_connector
        self._sleep = sleep
        self._handlers: Dict[str, List[Handler]] = {category: [] for category in CATEGORIES}
        self._address: Optional[str] = None
        self._transport = None
        self._reader: Optional[asyncio.Task] = None
        self._handshake: Optional[asyncio.Future] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closing = False

    @property
    def state(self) -> ConnectionState:
        return self.view.state

    # Subscriptions

    def on(self, category: str, handler: Handler) -> None:
        if category not in self._handlers:
            raise ValueError(f"Unknown event category: {category}")
        self._handlers[category].append(handler)

    def on_message(self, handler: Handler) -> None:
        self.on("message", handler)

    def on_error(self, handler: Handler) -> None:
        self.on("error", handler)

    def on_connection_change(self, handler: Handler) -> None:
        self.on("connectionChange", handler)

    def on_documents_list(self, handler: Handler) -> None:
        self.on("documentsList", handler)

    def on_document_saved(self, handler: Handler) -> None:
        self.on("documentSaved", handler)

    def on_document_deleted(self, handler: Handler) -> None:
        self.on("documentDeleted", handler)

    def on_document_content(self, handler: Handler) -> None:
        self.on("documentContent", handler)

    # Lifecycle

    async def connect(self, address: str) -> None:
        """Open the channel and wait for the server's session handshake.

        Raises:
            HandshakeError: If the server does not confirm the session in time.
            TransportError: If the transport closes before the handshake.
            OSError: If the server cannot be reached.
        """
        self._address = channel_url(address)
        self._closing = False
        await self._set_state(ConnectionState.CONNECTING)
        try:
            await self._open_session()
        except _TRANSPORT_ERRORS as exc:
            await self._set_state(ConnectionState.DISCONNECTED, str(exc) or type(exc).__name__)
            raise
        self.policy.reset()
        if self._transport is None:
            # Dropped between the handshake and now; the reader left recovery to us.
            await self._set_state(ConnectionState.RECONNECTING, "connection closed")
            self._reconnect_task = asyncio.get_running_loop().create_task(self._retry_loop())
            return
        await self._set_state(ConnectionState.CONNECTED)

    async def retry(self) -> None:
        """Leave FAILED by connecting again with a fresh retry budget."""
        if self.state is not ConnectionState.FAILED or self._address is None:
            return
        self.policy.reset()
        await self.connect(self._address)

    async def disconnect(self) -> None:
        """Close the channel without reconnecting."""
        self._closing = True
        if self._reconnect_task is not None and self._reconnect_task is not asyncio.current_task():
            self._reconnect_task.cancel()
        self._reconnect_task = None
        await self._drop_transport()
        await self._set_state(ConnectionState.DISCONNECTED)

    async def _open_session(self) -> None:
        transport = await self._connector(self._address)
        loop = asyncio.get_running_loop()
        self._transport = transport
        self._handshake = loop.create_future()
        self._reader = loop.create_task(self._read_loop(transport))
        try:
            await asyncio.wait_for(asyncio.shield(self._handshake), self.handshake_timeout)
        except asyncio.TimeoutError as exc:
            await self._drop_transport()
            raise HandshakeError("Server did not confirm the session") from exc
        except _TRANSPORT_ERRORS:
            await self._drop_transport()
            raise

    async def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if transport is not None:
            try:
                await transport.close()
            except _TRANSPORT_ERRORS as exc:
                LOGGER.debug("Error closing transport: %s", exc)

    async def _read_loop(self, transport) -> None:
        try:
            while True:
                raw = await transport.recv()
                await self._dispatch_frame(raw)
        except (ConnectionClosed, OSError) as exc:
            reason = str(exc) or "connection closed"
        if transport is not self._transport:
            return
        self._transport = None
        self._reader = None
        LOGGER.warning("Channel closed: %s", reason)
        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_exception(TransportError(reason))
            return
        if self._closing or self.state is not ConnectionState.CONNECTED:
            return
        self._schedule_reconnect(reason)

    def _schedule_reconnect(self, reason: str) -> None:
        if self._closing:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect(reason))

    async def _reconnect(self, reason: str) -> None:
        await self._set_state(ConnectionState.RECONNECTING, reason)
        await self._retry_loop()

    async def _retry_loop(self) -> None:
        while not self._closing:
            delay = self.policy.next_delay()
            if delay is None:
                await self._set_state(ConnectionState.FAILED, "Failed to reconnect to server")
                return
            LOGGER.info("Reconnect attempt %d in %.1fs", self.policy.attempts, delay)
            await self._sleep(delay)
            if self._closing:
                return
            try:
                await self._open_session()
            except _TRANSPORT_ERRORS as exc:
                LOGGER.warning("Reconnect attempt %d failed: %s", self.policy.attempts, exc)
                continue
            if self._transport is None:
                LOGGER.warning("Reconnect attempt %d dropped after handshake", self.policy.attempts)
                continue
            self.policy.reset()
            await self._set_state(ConnectionState.CONNECTED)
            return

    # Inbound events

    async def _dispatch_frame(self, raw: Any) -> None:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring non-JSON frame")
            return
        if not isinstance(frame, dict):
            return
        event_type = frame.get("type")
        if event_type == "connection_established":
            self.view.apply(event_type, frame)
            if self._handshake is not None and not self._handshake.done():
                self._handshake.set_result(frame)
            return
        category = _EVENT_CATEGORIES.get(event_type)
        if category is None:
            LOGGER.debug("Ignoring unknown event: %s", event_type)
            return
        self.view.apply(event_type, frame)
        await self._notify(category, self._handler_argument(event_type, frame))

    def _handler_argument(self, event_type: str, frame: Dict[str, Any]) -> Any:
        if event_type == "ai_response":
            return self.view.messages[-1]
        if event_type == "error":
            return frame.get("message", "")
        if event_type == "articles_list":
            return list(frame.get("articles") or [])
        return frame

    async def _notify(self, category: str, argument: Any) -> None:
        for handler in list(self._handlers[category]):
            try:
                result = handler(argument)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOGGER.exception("Subscriber for %s failed", category)

    async def _set_state(self, state: ConnectionState, error: Optional[str] = None) -> None:
        self.view.apply("connection_state", {"state": state, "error": error})
        await self._notify(
            "connectionChange",
            ConnectionStatus(state=state, connected=state is ConnectionState.CONNECTED, error=error),
        )

    # Outbound requests

    async def send_turn(self, text: str, attachment: Optional[Attachment] = None) -> str:
        """Submit a chat turn and return its request id.

        Raises:
            NotConnectedError: If the channel is not CONNECTED.
            SessionBusyError: If the previous turn has not finished.
        """
        self._require_connected()
        if self.view.pending:
            raise SessionBusyError("A request is already in progress")
        request_id = uuid4().hex
        frame: Dict[str, Any] = {"type": "send_message", "message": text, "request_id": request_id}
        if attachment is not None:
            frame["imageFile"] = {
                "data": base64.b64encode(attachment.data).decode("ascii"),
                "mimeType": attachment.mime_type,
            }
        self.view.apply(
            "turn_submitted",
            {"request_id": request_id, "message": text, "timestamp": utc_timestamp()},
        )
        try:
            await self._send(frame)
        except NotConnectedError:
            self.view.apply("turn_aborted", {"request_id": request_id})
            raise
        return request_id

    async def request_documents(self) -> str:
        return await self._request({"type": "get_articles"})

    async def request_document(self, name: str) -> str:
        return await self._request({"type": "get_article", "filename": name})

    async def delete_document(self, name: str) -> str:
        return await self._request({"type": "delete_article", "filename": name})

    async def _request(self, frame: Dict[str, Any]) -> str:
        self._require_connected()
        request_id = uuid4().hex
        frame["request_id"] = request_id
        await self._send(frame)
        return request_id

    def _require_connected(self) -> None:
        if self.state is not ConnectionState.CONNECTED or self._transport is None:
            raise NotConnectedError("Not connected to server")

    async def _send(self, frame: Dict[str, Any]) -> None:
        transport = self._transport
        if transport is None:
            raise NotConnectedError("Not connected to server")
        try:
            await transport.send(json.dumps(frame))
        except (ConnectionClosed, OSError) as exc:
            raise NotConnectedError(f"Not connected to server: {exc}") from exc
