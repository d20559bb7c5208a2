"""Session domain models for realtime chat workflows."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionPhase(str, Enum):
	IDLE = "idle"
	PROCESSING = "processing"
	DISPATCHING = "dispatching"
	TERMINATED = "terminated"


@dataclass(frozen=True)
class Attachment:
	"""Binary attachment sent alongside a user turn."""

	data: bytes
	mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class Turn:
	"""One user request within a session."""

	text: str
	attachment: Optional[Attachment] = None


@dataclass
class ModelContext:
	"""Conversation history kept for one session by the model gateway."""

	session_id: str
	history: List[Dict[str, Any]] = field(default_factory=list)
	discarded: bool = False


@dataclass
class SessionState:
	"""In-memory state bound to one live connection."""

	connection_id: str
	context: Optional[ModelContext]
	pending: bool = False
	phase: SessionPhase = SessionPhase.IDLE
	created_at: float = field(default_factory=lambda: time.time())

	@property
	def terminated(self) -> bool:
		return self.phase is SessionPhase.TERMINATED
