"""Per-connection session state machine.

A coordinator turns each accepted user turn into an ordered sequence of
outbound events:

1. `ai_response`, always, carrying the decoded reply;
2. at most one store side effect, reported as `article_saved`,
   `article_deleted`, `articles_list`, or `error`.

Only one turn may be in flight per session. A second turn is rejected with
`SessionBusyError` before anything is awaited, and the pending flag is
released in a `finally` block however the turn ends.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set
from uuid import uuid4

from models.events import event_frame, utc_timestamp
from models.reply_models import ReplyKind, StructuredReply
from models.session_models import SessionPhase, SessionState, Turn
from services.document_store import DocumentStore, normalize_name
from services.errors import (
	DecodeError,
	DocumentNotFoundError,
	EmptyReplyError,
	ModelGatewayError,
	SessionBusyError,
	SessionClosedError,
	SessionInitError,
	StoreError,
	TransportError,
)
from services.realtime.reply_interpreter import decode_reply, fallback_reply
from services.realtime.session_registry import SessionRegistry

LOGGER = logging.getLogger(__name__)

Emitter = Callable[[Dict[str, Any]], Awaitable[None]]


def reply_payload(reply: StructuredReply) -> Dict[str, Any]:
	"""Return the `ai_response` payload for a decoded reply."""
	payload: Dict[str, Any] = {
		"id": uuid4().hex,
		"text": reply.text,
		"sender": "bot",
		"timestamp": utc_timestamp(),
		"action": reply.action,
	}
	if reply.doc_name is not None:
		payload["filename"] = reply.doc_name
	if reply.doc_content is not None:
		payload["content"] = reply.doc_content
	if reply.url is not None:
		payload["url"] = reply.url
	if reply.location is not None:
		payload["location"] = reply.location
	if reply.plot is not None:
		payload["plotData"] = reply.plot.to_payload()
	if reply.schematic is not None:
		payload["schematicSvg"] = reply.schematic
	return payload


class SessionCoordinator:
	"""Own one connection's chat session and emit its events in order."""

	def __init__(self, registry: SessionRegistry, store: DocumentStore, emit: Emitter) -> None:
		self.registry = registry
		self.store = store
		self._emit_frame = emit
		self.connection_id: Optional[str] = None
		self.session: Optional[SessionState] = None
		self._closed = False
		self._tasks: Set[asyncio.Task] = set()

	@property
	def ai_available(self) -> bool:
		return self.session is not None and not self._closed

	@property
	def busy(self) -> bool:
		return self.session is not None and self.session.pending

	@property
	def closed(self) -> bool:
		return self._closed

	def open(self, connection_id: str) -> SessionState:
		"""Register the connection's session.

		Raises:
			SessionInitError: If no model context could be allocated. The
				coordinator stays usable for article requests.
		"""
		self.connection_id = connection_id
		self.session = self.registry.open(connection_id)
		return self.session

	def start_turn(self, turn: Turn, request_id: Any = None) -> asyncio.Task:
		"""Reserve the session and schedule the turn.

		Raises:
			SessionBusyError: If a turn is already in flight.
			SessionInitError: If the session has no model context.
			SessionClosedError: If the coordinator was closed.
		"""
		if self._closed:
			raise SessionClosedError("Session is closed")
		if self.session is None:
			raise SessionInitError("AI chat session is unavailable")
		if self.session.pending:
			LOGGER.warning("Rejected turn while busy: %s", self.connection_id)
			raise SessionBusyError("A request is already in progress")
		state = self.session
		state.pending = True
		state.phase = SessionPhase.PROCESSING
		task = asyncio.get_running_loop().create_task(self._run_turn(state, turn, request_id))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return task

	async def submit_turn(self, turn: Turn, request_id: Any = None) -> None:
		"""Process one turn to completion."""
		await self.start_turn(turn, request_id)

	def close(self) -> None:
		"""Terminate the session; safe to call more than once."""
		if self._closed:
			return
		self._closed = True
		if self.session is not None:
			self.registry.close(self.session.connection_id)

	async def _run_turn(self, state: SessionState, turn: Turn, request_id: Any) -> None:
		try:
			await self._process_turn(state, turn, request_id)
		except Exception as exc:
			LOGGER.exception("Error processing message: %s", state.connection_id)
			await self._emit_error("Failed to process message", request_id, details=str(exc))
		finally:
			state.pending = False
			if not state.terminated:
				state.phase = SessionPhase.IDLE

	async def _process_turn(self, state: SessionState, turn: Turn, request_id: Any) -> None:
		LOGGER.info(
			"Processing message: session=%s length=%d image=%s",
			state.connection_id,
			len(turn.text),
			turn.attachment is not None,
		)
		failure: Optional[ModelGatewayError] = None
		try:
			raw = await self.registry.gateway.generate(state.context, turn)
		except ModelGatewayError as exc:
			failure = exc
			raw = exc.raw_text

		if state.terminated:
			LOGGER.info("Discarding reply for terminated session: %s", state.connection_id)
			return

		reply = self._interpret(raw, failure)
		if reply is None:
			details = str(failure) if failure is not None else "Invalid or empty response from AI."
			await self._emit_error("Failed to process message", request_id, details=details)
			return

		state.phase = SessionPhase.DISPATCHING
		await self._emit("ai_response", reply_payload(reply), request_id)
		if state.terminated:
			return
		await self._apply_side_effect(reply, request_id)

	def _interpret(self, raw: str, failure: Optional[ModelGatewayError]) -> Optional[StructuredReply]:
		if failure is None:
			try:
				return decode_reply(raw)
			except DecodeError as exc:
				LOGGER.warning("Invalid structured reply, falling back to chat: %s", exc)
		try:
			return fallback_reply(raw)
		except EmptyReplyError:
			return None

	async def _apply_side_effect(self, reply: StructuredReply, request_id: Any) -> None:
		if reply.kind.mutates_document and reply.doc_name and reply.doc_content:
			try:
				document = await self.store.put(reply.doc_name, reply.doc_content)
			except StoreError as exc:
				LOGGER.error("Error saving article via socket: %s", exc)
				await self._emit_error("Failed to save article", request_id, details=str(exc))
				return
			await self._emit(
				"article_saved",
				{"filename": document.name, "message": "Article saved successfully", "timestamp": utc_timestamp()},
				request_id,
			)
		elif reply.kind is ReplyKind.DELETE_DOC and reply.doc_name:
			await self.delete_document(reply.doc_name, request_id)
		elif reply.kind is ReplyKind.LIST_DOCS:
			await self.list_documents(request_id)

	async def list_documents(self, request_id: Any = None) -> None:
		try:
			articles = await self.store.list()
		except StoreError as exc:
			LOGGER.error("Error listing articles via socket: %s", exc)
			await self._emit_error("Failed to list articles", request_id)
			return
		LOGGER.info("Articles list sent: count=%d", len(articles))
		await self._emit("articles_list", {"articles": articles, "timestamp": utc_timestamp()}, request_id)

	async def read_document(self, filename: str, request_id: Any = None) -> None:
		try:
			content = await self.store.get(filename)
		except DocumentNotFoundError:
			await self._emit_error("Article not found", request_id, details=filename)
			return
		except StoreError as exc:
			LOGGER.error("Error getting article via socket: %s", exc)
			await self._emit_error("Failed to get article", request_id, details=str(exc))
			return
		await self._emit(
			"article_content",
			{
				"filename": filename,
				"normalizedFilename": normalize_name(filename),
				"content": content,
				"timestamp": utc_timestamp(),
			},
			request_id,
		)

	async def delete_document(self, filename: str, request_id: Any = None) -> None:
		try:
			deleted = await self.store.delete(filename)
		except StoreError as exc:
			LOGGER.error("Error deleting article via socket: %s", exc)
			await self._emit_error("Failed to delete article", request_id, details=str(exc))
			return
		await self._emit(
			"article_deleted",
			{
				"filename": filename,
				"normalizedFilename": normalize_name(filename),
				"success": deleted,
				"message": "Article deleted successfully" if deleted else "Article not found",
				"timestamp": utc_timestamp(),
			},
			request_id,
		)

	async def _emit_error(self, message: str, request_id: Any = None, details: Optional[str] = None) -> None:
		payload: Dict[str, Any] = {"message": message}
		if details:
			payload["details"] = details
		await self._emit("error", payload, request_id)

	async def _emit(self, event_type: str, payload: Dict[str, Any], request_id: Any = None) -> bool:
		if self._closed:
			LOGGER.debug("Dropping %s for closed session %s", event_type, self.connection_id)
			return False
		try:
			await self._emit_frame(event_frame(event_type, payload, request_id))
		except TransportError as exc:
			LOGGER.warning("Connection lost while sending %s: %s", event_type, exc)
			self.close()
			return False
		return True
