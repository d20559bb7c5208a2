"""Payload models for the realtime channel and the REST fallback."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def utc_timestamp() -> str:
	"""Return the current UTC time as an ISO-8601 string."""
	return datetime.now(timezone.utc).isoformat()


class ImageFilePayload(BaseModel):
	data: str
	mime_type: str = Field(default="image/jpeg", alias="mimeType")

	model_config = {"populate_by_name": True}


class SendMessagePayload(BaseModel):
	message: str = ""
	image_file: Optional[ImageFilePayload] = Field(default=None, alias="imageFile")

	model_config = {"populate_by_name": True}


class ArticleRequestPayload(BaseModel):
	filename: str


class CreateArticlePayload(BaseModel):
	filename: str
	content: str


class UpdateArticlePayload(BaseModel):
	content: str


def event_frame(event_type: str, payload: Dict[str, Any], request_id: Any = None) -> Dict[str, Any]:
	"""Build an outbound frame, echoing the client's correlation token."""
	frame: Dict[str, Any] = {"type": event_type}
	frame.update(payload)
	if request_id is not None:
		frame["request_id"] = request_id
	return frame
