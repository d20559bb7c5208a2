"""Decode raw model text into a `StructuredReply`.

This is the only place model output is trusted; everything downstream works
with the tagged variant.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from models.reply_models import PlotDataset, PlotSpec, ReplyKind, StructuredReply
from services.errors import DecodeError, EmptyReplyError

LOGGER = logging.getLogger(__name__)

# Action names accepted from the model, including the kind names themselves.
_ACTIONS: Dict[str, ReplyKind] = {kind.value: kind for kind in ReplyKind}
_ACTIONS.update({kind.name: kind for kind in ReplyKind})
_ACTIONS.update({"ENABLE_TTS": ReplyKind.SET_VOICE_MODE, "DISABLE_TTS": ReplyKind.SET_VOICE_MODE})

_PLOT_TYPES = {"line", "bar"}


def _strip_fences(raw: str) -> str:
	text = raw.strip()
	if text.startswith("```"):
		lines = text.splitlines()
		if lines and lines[0].startswith("```"):
			lines = lines[1:]
		if lines and lines[-1].strip() == "```":
			lines = lines[:-1]
		text = "\n".join(lines).strip()
	return text


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
	value = data.get(key)
	if isinstance(value, str) and value.strip():
		return value
	return None


def _decode_plot(value: Any) -> Optional[PlotSpec]:
	"""Return a PlotSpec or None when the plot payload is unusable."""
	if not isinstance(value, dict):
		return None
	chart_type = value.get("type")
	data = value.get("data")
	if chart_type not in _PLOT_TYPES or not isinstance(data, dict):
		return None
	labels = data.get("labels")
	datasets = data.get("datasets")
	if not isinstance(labels, list) or not isinstance(datasets, list):
		return None
	decoded: List[PlotDataset] = []
	for item in datasets:
		if not isinstance(item, dict) or not isinstance(item.get("data"), list):
			return None
		try:
			points = [float(point) for point in item["data"]]
		except (TypeError, ValueError):
			return None
		decoded.append(PlotDataset(label=str(item.get("label", "")), data=points))
	return PlotSpec(
		chart_type=chart_type,
		labels=[str(label) for label in labels],
		datasets=decoded,
		title=str(value.get("title") or ""),
		x_axis_label=str(value.get("xAxisLabel") or ""),
		y_axis_label=str(value.get("yAxisLabel") or ""),
	)


def decode_reply(raw: str) -> StructuredReply:
	"""Validate and decode one model reply.

	Args:
		raw: Raw text returned by the model, expected to be a JSON object with
			at least `action` and `responseText`.

	Returns:
		The decoded reply. Actions missing the fields they need are degraded
		to CHAT so the text still reaches the user.

	Raises:
		DecodeError: If the text is not a JSON object, the action is unknown,
			or the response text is blank.
	"""
	try:
		data = json.loads(_strip_fences(raw or ""))
	except (TypeError, ValueError) as exc:
		raise DecodeError(f"Reply is not valid JSON: {exc}") from exc
	if not isinstance(data, dict):
		raise DecodeError("Reply must be a JSON object.")

	action = data.get("action")
	kind = _ACTIONS.get(action) if isinstance(action, str) else None
	if kind is None:
		raise DecodeError(f"Unknown reply action: {action!r}")
	text = data.get("responseText")
	if not isinstance(text, str) or not text.strip():
		raise DecodeError("Reply text is missing or empty.")

	reply = StructuredReply(
		kind=kind,
		text=text,
		doc_name=_optional_str(data, "filename"),
		doc_content=_optional_str(data, "content"),
		url=_optional_str(data, "url"),
		location=_optional_str(data, "location"),
		schematic=_optional_str(data, "schematicSvg"),
	)
	if kind is ReplyKind.SET_VOICE_MODE:
		reply.voice_enabled = action != "DISABLE_TTS"
	if "plotData" in data:
		reply.plot = _decode_plot(data["plotData"])

	if not _has_required_fields(reply):
		LOGGER.warning("Reply action %s is missing required fields; treating as chat", kind.name)
		reply.kind = ReplyKind.CHAT
	return reply


def _has_required_fields(reply: StructuredReply) -> bool:
	if reply.kind.mutates_document:
		return reply.doc_name is not None and reply.doc_content is not None
	if reply.kind is ReplyKind.DELETE_DOC:
		return reply.doc_name is not None
	if reply.kind is ReplyKind.OPEN_LINK:
		return reply.url is not None
	if reply.kind is ReplyKind.GET_WEATHER:
		return reply.location is not None
	if reply.kind is ReplyKind.PLOT:
		return reply.plot is not None
	if reply.kind is ReplyKind.SCHEMATIC:
		return reply.schematic is not None
	return True


def fallback_reply(raw: str) -> StructuredReply:
	"""Return a plain CHAT reply for undecodable text.

	Raises:
		EmptyReplyError: If there is no text to fall back to.
	"""
	text = (raw or "").strip()
	if not text:
		raise EmptyReplyError("Invalid or empty response from AI.")
	return StructuredReply.chat(text)
