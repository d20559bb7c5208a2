"""Client view model rebuilt from channel events.

The view is never mutated out-of-band: `ConnectionManager` feeds it every
inbound frame plus a few local events (`connection_state`,
`turn_submitted`, `turn_aborted`), and everything the UI shows is derived
from that stream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass
class ConnectionStatus:
    """Payload handed to `connectionChange` subscribers."""

    state: ConnectionState
    connected: bool
    error: Optional[str] = None


@dataclass
class Message:
    id: str
    text: str
    sender: str
    timestamp: str
    action: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


def expects_followup(frame: Dict[str, Any]) -> bool:
    """True when the turn ends with a store event rather than the reply itself."""
    action = frame.get("action")
    if action in ("CREATE_ARTICLE", "UPDATE_ARTICLE"):
        return bool(frame.get("filename")) and bool(frame.get("content"))
    if action == "DELETE_ARTICLE":
        return bool(frame.get("filename"))
    return action == "LIST_ARTICLES"


@dataclass
class ConnectionView:
    state: ConnectionState = ConnectionState.DISCONNECTED
    last_error: Optional[str] = None
    messages: List[Message] = field(default_factory=list)
    known_documents: Set[str] = field(default_factory=set)
    pending_request: Optional[str] = None
    ai_available: bool = True
    _awaiting_followup: bool = field(default=False, repr=False)

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def pending(self) -> bool:
        """True while a submitted turn has not finished; input stays disabled."""
        return self.pending_request is not None

    def apply(self, event_type: str, frame: Dict[str, Any]) -> None:
        """Reconcile the view against one event."""
        request_id = frame.get("request_id")
        if event_type == "connection_state":
            self.state = ConnectionState(frame["state"])
            if frame.get("error"):
                self.last_error = frame["error"]
            if not self.connected:
                # A turn cut off by the drop is not resumed after reconnecting.
                self._finish_turn()
        elif event_type == "connection_established":
            self.ai_available = bool(frame.get("aiAvailable", True))
        elif event_type == "turn_submitted":
            self.messages.append(
                Message(
                    id=request_id,
                    text=frame.get("message", ""),
                    sender="user",
                    timestamp=frame.get("timestamp", ""),
                )
            )
            self.pending_request = request_id
            self._awaiting_followup = False
        elif event_type == "turn_aborted":
            if request_id == self.pending_request:
                self._finish_turn()
        elif event_type == "ai_response":
            self.messages.append(
                Message(
                    id=str(frame.get("id", "")),
                    text=frame.get("text", ""),
                    sender="bot",
                    timestamp=frame.get("timestamp", ""),
                    action=frame.get("action"),
                    data=dict(frame),
                )
            )
            if self._matches_pending(request_id):
                if expects_followup(frame):
                    self._awaiting_followup = True
                else:
                    self._finish_turn()
        elif event_type == "article_saved":
            if frame.get("filename"):
                self.known_documents.add(frame["filename"])
            self._finish_followup(request_id)
        elif event_type == "article_deleted":
            if frame.get("success"):
                self.known_documents.discard(_document_name(frame))
            self._finish_followup(request_id)
        elif event_type == "articles_list":
            self.known_documents = set(frame.get("articles") or [])
            self._finish_followup(request_id)
        elif event_type == "article_content":
            name = _document_name(frame)
            if name:
                self.known_documents.add(name)
        elif event_type == "error":
            self.last_error = frame.get("message")
            if self._matches_pending(request_id):
                self._finish_turn()

    def _matches_pending(self, request_id: Optional[str]) -> bool:
        return self.pending_request is not None and request_id == self.pending_request

    def _finish_followup(self, request_id: Optional[str]) -> None:
        if self._awaiting_followup and self._matches_pending(request_id):
            self._finish_turn()

    def _finish_turn(self) -> None:
        self.pending_request = None
        self._awaiting_followup = False


def _document_name(frame: Dict[str, Any]) -> str:
    """Return the normalized name, falling back to the echoed request name."""
    if frame.get("normalizedFilename"):
        return frame["normalizedFilename"]
    name = (frame.get("filename") or "").strip()
    if not name or name.endswith(".md"):
        return name
    return f"{name}.md"
