"""Tagged reply variant decoded from model output."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ReplyKind(str, Enum):
	"""Closed set of reply kinds; values are the actions sent on the wire."""

	CHAT = "CHAT"
	CREATE_DOC = "CREATE_ARTICLE"
	UPDATE_DOC = "UPDATE_ARTICLE"
	LIST_DOCS = "LIST_ARTICLES"
	DELETE_DOC = "DELETE_ARTICLE"
	OPEN_LINK = "OPEN_BROWSER"
	GET_WEATHER = "GET_WEATHER"
	SET_VOICE_MODE = "SET_VOICE_MODE"
	PLOT = "GENERATE_PLOT"
	SCHEMATIC = "GENERATE_SCHEMATIC"

	@property
	def mutates_document(self) -> bool:
		return self in (ReplyKind.CREATE_DOC, ReplyKind.UPDATE_DOC)


@dataclass
class PlotDataset:
	label: str
	data: List[float]


@dataclass
class PlotSpec:
	"""Chart description produced by the model for line or bar plots."""

	chart_type: str
	labels: List[str]
	datasets: List[PlotDataset]
	title: str = ""
	x_axis_label: str = ""
	y_axis_label: str = ""

	def to_payload(self) -> Dict[str, Any]:
		return {
			"type": self.chart_type,
			"data": {
				"labels": list(self.labels),
				"datasets": [{"label": ds.label, "data": list(ds.data)} for ds in self.datasets],
			},
			"title": self.title,
			"xAxisLabel": self.x_axis_label,
			"yAxisLabel": self.y_axis_label,
		}


@dataclass
class StructuredReply:
	"""Validated model output for one turn."""

	kind: ReplyKind
	text: str
	doc_name: Optional[str] = None
	doc_content: Optional[str] = None
	url: Optional[str] = None
	location: Optional[str] = None
	plot: Optional[PlotSpec] = None
	schematic: Optional[str] = None
	voice_enabled: Optional[bool] = None

	@classmethod
	def chat(cls, text: str) -> "StructuredReply":
		return cls(kind=ReplyKind.CHAT, text=text)

	@property
	def action(self) -> str:
		"""Return the action name clients understand for this reply."""
		if self.kind is ReplyKind.SET_VOICE_MODE:
			return "ENABLE_TTS" if self.voice_enabled else "DISABLE_TTS"
		return self.kind.value
