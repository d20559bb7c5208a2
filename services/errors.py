"""Error taxonomy shared by the session coordinator, gateway, and store."""

from __future__ import annotations


class SessionInitError(RuntimeError):
	"""The model gateway could not allocate a conversation context."""


class SessionBusyError(RuntimeError):
	"""A turn was submitted while another one is still in flight."""


class SessionClosedError(RuntimeError):
	"""The session was terminated and accepts no further turns."""


class DecodeError(ValueError):
	"""The model reply was not valid structured output."""


class EmptyReplyError(ValueError):
	"""The model reply carried no usable text."""


class ModelGatewayError(RuntimeError):
	"""The model call failed; `raw_text` holds whatever text came back."""

	def __init__(self, message: str, raw_text: str = "") -> None:
		super().__init__(message)
		self.raw_text = raw_text


class ModelTimeoutError(ModelGatewayError):
	"""The model call exceeded the configured timeout."""


class StoreError(RuntimeError):
	"""Base class for document store failures."""


class StoreWriteError(StoreError):
	pass


class StoreReadError(StoreError):
	pass


class DocumentNotFoundError(StoreError, KeyError):
	"""No document exists under the normalized name."""

	def __str__(self) -> str:
		# KeyError quotes its argument; keep the plain message instead.
		return str(self.args[0]) if self.args else "Document not found"


class InvalidDocumentNameError(StoreError, ValueError):
	pass


class TransportError(ConnectionError):
	"""The connection carrying session events is gone."""
