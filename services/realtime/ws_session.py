"""Dispatch realtime websocket events to the session coordinator."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from models.events import ArticleRequestPayload, SendMessagePayload, event_frame
from models.session_models import Attachment, Turn
from services.errors import SessionBusyError, SessionClosedError, SessionInitError, TransportError
from services.realtime.session_coordinator import SessionCoordinator
from utils.media_validation import decode_base64_image, validate_image_mime

LOGGER = logging.getLogger(__name__)


class WebSocketEmitter:
	"""Serialize outbound frames onto one websocket."""

	def __init__(self, websocket: WebSocket) -> None:
		self.websocket = websocket
		self._lock = asyncio.Lock()

	async def __call__(self, frame: Dict[str, Any]) -> None:
		async with self._lock:
			try:
				await self.websocket.send_text(json.dumps(frame))
			except (WebSocketDisconnect, RuntimeError, OSError) as exc:
				raise TransportError(str(exc) or "websocket closed") from exc


def build_turn(payload: Dict[str, Any]) -> Turn:
	"""Validate a `send_message` payload and return the turn it describes."""
	try:
		parsed = SendMessagePayload.model_validate(payload)
	except ValidationError as exc:
		raise ValueError("Invalid send_message payload.") from exc
	attachment = None
	if parsed.image_file is not None:
		attachment = Attachment(
			data=decode_base64_image(parsed.image_file.data),
			mime_type=validate_image_mime(parsed.image_file.mime_type),
		)
	text = parsed.message.strip()
	if not text and attachment is None:
		raise ValueError("Message text is required.")
	return Turn(text=text, attachment=attachment)


def _filename(payload: Dict[str, Any]) -> str:
	try:
		return ArticleRequestPayload.model_validate(payload).filename
	except ValidationError as exc:
		raise ValueError("A filename is required.") from exc


class RealtimeSessionHandler:
	"""Route websocket messages for a single chat connection."""

	def __init__(self, coordinator: SessionCoordinator, emit: WebSocketEmitter) -> None:
		self.coordinator = coordinator
		self.emit = emit

	async def handle(self, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "send_message":
				# The turn runs as a task so the receive loop keeps serving requests.
				self.coordinator.start_turn(build_turn(payload), request_id)
			elif message_type == "get_articles":
				await self.coordinator.list_documents(request_id)
			elif message_type == "get_article":
				await self.coordinator.read_document(_filename(payload), request_id)
			elif message_type == "delete_article":
				await self.coordinator.delete_document(_filename(payload), request_id)
			else:
				raise ValueError("Unsupported message type.")
		except SessionBusyError as exc:
			await self.send_error(str(exc), request_id, details="busy")
		except (SessionInitError, SessionClosedError) as exc:
			await self.send_error("Chat session not available", request_id, details=str(exc))
		except ValueError as exc:
			await self.send_error(str(exc), request_id)

	async def send_error(self, message: str, request_id: Any = None, details: str = "") -> None:
		payload: Dict[str, Any] = {"message": message}
		if details:
			payload["details"] = details
		try:
			await self.emit(event_frame("error", payload, request_id))
		except TransportError as exc:
			LOGGER.warning("Could not deliver error frame: %s", exc)
