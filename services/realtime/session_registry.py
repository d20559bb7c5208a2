"""In-memory registry of chat sessions keyed by connection id."""

from __future__ import annotations

import logging
from typing import Dict, Optional
from uuid import uuid4

from models.session_models import SessionPhase, SessionState
from services.realtime.model_gateway import ModelGateway

LOGGER = logging.getLogger(__name__)


class SessionRegistry:
	"""Own session lifecycles; opened on connect, closed on disconnect."""

	def __init__(self, gateway: ModelGateway) -> None:
		self.gateway = gateway
		self._sessions: Dict[str, SessionState] = {}

	@staticmethod
	def new_connection_id() -> str:
		return uuid4().hex

	def open(self, connection_id: str) -> SessionState:
		"""Create a session with a fresh model context.

		Raises:
			SessionInitError: If the gateway cannot allocate a context.
			ValueError: If the connection id is already registered.
		"""
		if connection_id in self._sessions:
			raise ValueError(f"Session {connection_id} already open")
		context = self.gateway.create_context(connection_id)
		state = SessionState(connection_id=connection_id, context=context)
		self._sessions[connection_id] = state
		LOGGER.info("Chat session created: %s", connection_id)
		return state

	def lookup(self, connection_id: str) -> Optional[SessionState]:
		return self._sessions.get(connection_id)

	def close(self, connection_id: str) -> Optional[SessionState]:
		"""Terminate and forget a session; closing twice is a no-op."""
		state = self._sessions.pop(connection_id, None)
		if state is None:
			return None
		state.phase = SessionPhase.TERMINATED
		if state.context is not None:
			self.gateway.discard_context(state.context)
		LOGGER.info("Chat session closed: %s", connection_id)
		return state

	def __len__(self) -> int:
		return len(self._sessions)
