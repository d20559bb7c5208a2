"""Helpers to extract text and usage from Responses API output."""

from __future__ import annotations

from typing import Any, Dict, Optional


def _field(item: Any, name: str, default: Any = None) -> Any:
	if isinstance(item, dict):
		return item.get(name, default)
	return getattr(item, name, default)


def extract_text(response: Any) -> str:
	"""Concatenate the output_text entries of the response's messages."""
	parts = []
	for item in _field(response, "output", None) or []:
		if _field(item, "type") != "message":
			continue
		for content in _field(item, "content", None) or []:
			if _field(content, "type") == "output_text":
				parts.append(_field(content, "text", "") or "")
	if parts:
		return "".join(parts)
	return _field(response, "output_text", "") or ""


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
	"""Return token usage if present."""
	usage = _field(response, "usage", None)
	return {
		"input_tokens": _field(usage, "input_tokens") if usage else None,
		"output_tokens": _field(usage, "output_tokens") if usage else None,
	}
