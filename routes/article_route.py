"""FastAPI routes mirroring the realtime article operations."""

from fastapi import APIRouter, HTTPException, Request

from controllers.article_controller import (
	article_stats,
	delete_article,
	list_articles,
	read_article,
	save_article,
)
from models.events import CreateArticlePayload, UpdateArticlePayload

router = APIRouter()


@router.get("/articles")
async def list_articles_route(request: Request):
	try:
		return await list_articles(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/articles/{filename}")
async def read_article_route(request: Request, filename: str):
	try:
		return await read_article(request, filename)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/articles")
async def create_article_route(request: Request, payload: CreateArticlePayload):
	try:
		return await save_article(request, payload.filename, payload.content)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.put("/articles/{filename}")
async def update_article_route(request: Request, filename: str, payload: UpdateArticlePayload):
	try:
		return await save_article(request, filename, payload.content)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/articles/{filename}")
async def delete_article_route(request: Request, filename: str):
	try:
		return await delete_article(request, filename)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/stats")
async def stats_route(request: Request):
	try:
		return await article_stats(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
