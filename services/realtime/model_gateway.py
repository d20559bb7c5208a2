"""Per-session conversation contexts backed by the OpenAI Responses API."""
from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from models.session_models import ModelContext, Turn
from services.errors import ModelGatewayError, ModelTimeoutError, SessionInitError
from services.realtime.prompts import assistant_system_prompt
from services.realtime.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)


def _data_url(data: bytes, mime_type: str) -> str:
	encoded = base64.b64encode(data).decode("utf-8")
	return f"data:{mime_type};base64,{encoded}"


def _user_message(turn: Turn) -> Dict[str, Any]:
	content: List[Dict[str, Any]] = [
		{"type": "input_text", "text": turn.text or "Identify and describe the attached image."}
	]
	if turn.attachment is not None:
		content.append(
			{"type": "input_image", "image_url": _data_url(turn.attachment.data, turn.attachment.mime_type)}
		)
	return {"type": "message", "role": "user", "content": content}


class ModelGateway:
	"""Forward user turns to the model while keeping one history per session."""

	def __init__(
		self,
		client: Optional[AsyncOpenAI],
		*,
		model: str = "gpt-5",
		timeout_seconds: float = 25.0,
		max_output_tokens: int = 4000,
		history_limit: int = 40,
	) -> None:
		self.client = client
		self.model = model
		self.timeout_seconds = timeout_seconds
		self.max_output_tokens = max_output_tokens
		self.history_limit = history_limit

	def create_context(self, session_id: str) -> ModelContext:
		"""Allocate a fresh context for a connection.

		Raises:
			SessionInitError: If no OpenAI client is configured.
		"""
		if self.client is None:
			raise SessionInitError("Failed to create chat session: OPENAI_API_KEY is not configured")
		return ModelContext(session_id=session_id)

	def discard_context(self, context: ModelContext) -> None:
		context.history.clear()
		context.discarded = True

	async def generate(self, context: ModelContext, turn: Turn) -> str:
		"""Send one turn and return the raw reply text.

		Args:
			context: Session context created by `create_context`.
			turn: The user turn to forward.

		Returns:
			The raw text emitted by the model (expected to be a JSON object).

		Raises:
			ModelTimeoutError: If the call exceeds `timeout_seconds`.
			ModelGatewayError: For any other API failure.
		"""
		if context.discarded or self.client is None:
			raise ModelGatewayError("Model context is no longer available")
		user_message = _user_message(turn)
		inputs = [
			{"type": "message", "role": "system", "content": [{"type": "input_text", "text": assistant_system_prompt()}]},
			*context.history,
			user_message,
		]
		LOGGER.info(
			"Sending message to model: session=%s length=%d image=%s",
			context.session_id,
			len(turn.text or ""),
			turn.attachment is not None,
		)
		start = time.time()
		try:
			response = await asyncio.wait_for(
				self.client.responses.create(
					model=self.model,
					input=inputs,
					text={"format": {"type": "json_object"}},
					max_output_tokens=self.max_output_tokens,
				),
				timeout=self.timeout_seconds,
			)
		except asyncio.TimeoutError as exc:
			LOGGER.error("Model call timed out after %.1fs: session=%s", self.timeout_seconds, context.session_id)
			raise ModelTimeoutError(f"Model did not answer within {self.timeout_seconds:g}s") from exc
		except Exception as exc:
			LOGGER.error("Model call failed: session=%s error=%s", context.session_id, exc)
			raise ModelGatewayError(f"Model request failed: {exc}") from exc

		text = extract_text(response)
		usage = extract_usage(response)
		LOGGER.info(
			"Model replied: session=%s latency=%.3fs input_tokens=%s output_tokens=%s",
			context.session_id,
			time.time() - start,
			usage["input_tokens"],
			usage["output_tokens"],
		)
		self._remember(context, turn, text)
		return text

	def _remember(self, context: ModelContext, turn: Turn, reply_text: str) -> None:
		# Images are not replayed; later turns only see that one was attached.
		user_text = turn.text or ""
		if turn.attachment is not None:
			user_text = f"{user_text}\n[image attached]".strip()
		context.history.append(
			{"type": "message", "role": "user", "content": [{"type": "input_text", "text": user_text}]}
		)
		context.history.append({"type": "message", "role": "assistant", "content": reply_text})
		if self.history_limit and len(context.history) > self.history_limit:
			del context.history[: len(context.history) - self.history_limit]
