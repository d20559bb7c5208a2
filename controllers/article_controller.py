"""Article helpers for the REST fallback surface."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, Request

from services.document_store import DocumentStore
from services.errors import DocumentNotFoundError, InvalidDocumentNameError, StoreError

LOGGER = logging.getLogger(__name__)


def _store(request: Request) -> DocumentStore:
	store = getattr(request.app.state, "document_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Document store unavailable")
	return store


async def list_articles(request: Request) -> List[str]:
	"""Return all article names, sorted."""
	LOGGER.info("API: listing articles")
	try:
		return await _store(request).list()
	except StoreError as exc:
		raise HTTPException(status_code=500, detail="Failed to list articles") from exc


async def read_article(request: Request, filename: str) -> Dict[str, Any]:
	"""Return one article's content or 404."""
	LOGGER.info("API: reading article %s", filename)
	try:
		content = await _store(request).get(filename)
	except DocumentNotFoundError as exc:
		raise HTTPException(status_code=404, detail="Article not found") from exc
	except InvalidDocumentNameError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except StoreError as exc:
		raise HTTPException(status_code=500, detail="Failed to read article") from exc
	return {"filename": filename, "content": content}


async def save_article(request: Request, filename: str, content: str) -> Dict[str, Any]:
	"""Create or overwrite an article."""
	if not filename.strip() or not content:
		raise HTTPException(status_code=400, detail="Filename and content are required")
	LOGGER.info("API: saving article %s", filename)
	try:
		document = await _store(request).put(filename, content)
	except InvalidDocumentNameError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except StoreError as exc:
		raise HTTPException(status_code=500, detail="Failed to save article") from exc
	return {"success": True, "filename": document.name}


async def delete_article(request: Request, filename: str) -> Dict[str, Any]:
	"""Delete an article; a missing article is reported, not raised."""
	LOGGER.info("API: deleting article %s", filename)
	try:
		deleted = await _store(request).delete(filename)
	except InvalidDocumentNameError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except StoreError as exc:
		raise HTTPException(status_code=500, detail="Failed to delete article") from exc
	if not deleted:
		return {"success": False, "error": "Article not found"}
	return {"success": True}


async def article_stats(request: Request) -> Dict[str, Any]:
	"""Return totals and per-article sizes, newest first."""
	LOGGER.info("API: stats requested")
	try:
		stats = await _store(request).stats()
	except StoreError as exc:
		raise HTTPException(status_code=500, detail="Failed to get stats") from exc
	return stats.to_dict()
