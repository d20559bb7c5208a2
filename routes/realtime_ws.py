"""WebSocket endpoint for realtime chat and article events."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from models.events import event_frame, utc_timestamp
from services.document_store import DocumentStore
from services.errors import SessionInitError, TransportError
from services.realtime.session_coordinator import SessionCoordinator
from services.realtime.session_registry import SessionRegistry
from services.realtime.ws_session import RealtimeSessionHandler, WebSocketEmitter

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
	"""Handle one client connection: a session, its turns, and article requests."""
	await websocket.accept()
	registry: SessionRegistry = websocket.app.state.session_registry
	store: DocumentStore = websocket.app.state.document_store
	connection_id = registry.new_connection_id()
	LOGGER.info("Client connected: %s", connection_id)

	emit = WebSocketEmitter(websocket)
	coordinator = SessionCoordinator(registry, store, emit)
	handler = RealtimeSessionHandler(coordinator, emit)
	try:
		try:
			coordinator.open(connection_id)
		except SessionInitError as exc:
			LOGGER.error("Error creating chat session: %s", exc)
			await handler.send_error("Failed to create chat session", details=str(exc))
		await emit(
			event_frame(
				"connection_established",
				{
					"message": "Connected to IPA Server",
					"timestamp": utc_timestamp(),
					"aiAvailable": coordinator.ai_available,
				},
			)
		)

		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			except KeyError:
				# Binary frame: starlette looks up "text" on the message.
				await handler.send_error("Invalid websocket frame")
				continue
			try:
				payload = json.loads(raw)
			except (TypeError, ValueError):
				await handler.send_error("Payload must be JSON")
				continue
			if not isinstance(payload, dict):
				await handler.send_error("Payload must be a JSON object")
				continue
			await handler.handle(payload)
	except TransportError as exc:
		LOGGER.warning("Connection %s lost: %s", connection_id, exc)
	finally:
		coordinator.close()
		LOGGER.info("Client disconnected: %s", connection_id)
	try:
		await websocket.close()
	except RuntimeError:
		pass
