import inspect
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from routes.article_route import router as article_router
from routes.realtime_ws import router as realtime_router
from services.document_store import DocumentStore
from services.realtime.model_gateway import ModelGateway
from services.realtime.session_registry import SessionRegistry
from utils.config import Settings, load_settings
from utils.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def _openai_client(settings: Settings) -> Optional[AsyncOpenAI]:
    """Return an OpenAI client, or None when no key is configured.

    Without a key the server still starts; each connection then reports a
    session initialization error and only article operations work.
    """
    if not settings.openai_api_key:
        LOGGER.warning("OPENAI_API_KEY is not configured; chat sessions will be unavailable")
        return None
    try:
        return AsyncOpenAI(api_key=settings.openai_api_key)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc


async def _close_client(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        # Shutdown errors must not mask the reason the app is stopping.
        LOGGER.warning("Error closing OpenAI client: %s", exc)


def create_app(settings: Optional[Settings] = None, model_gateway: Optional[ModelGateway] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    `model_gateway` replaces the OpenAI-backed gateway when given; the
    lifespan then leaves client creation alone.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_dir, settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the article store (at ARTICLES_DIR)
          - the OpenAI async client and the session registry
        and attach them to `app.state`.
        """
        app.state.settings = settings
        app.state.document_store = DocumentStore(settings.articles_dir)

        openai_client = None
        gateway = model_gateway
        if gateway is None:
            openai_client = _openai_client(settings)
            gateway = ModelGateway(
                openai_client,
                model=settings.openai_model,
                timeout_seconds=settings.model_timeout_seconds,
            )
        app.state.openai_client = openai_client
        app.state.session_registry = SessionRegistry(gateway)
        LOGGER.info("IPA server ready: articles=%s model=%s", settings.articles_dir, settings.openai_model)

        try:
            yield
        finally:
            if openai_client is not None:
                await _close_client(openai_client)

    app = FastAPI(title="IPA Server", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        """
        Health check reporting store and model availability.
        """
        registry = getattr(request.app.state, "session_registry", None)
        return {
            "status": "OK",
            "articles_dir": settings.articles_dir,
            "model_available": registry is not None and getattr(registry.gateway, "client", None) is not None,
            "active_sessions": len(registry) if registry is not None else 0,
        }

    app.include_router(article_router)
    app.include_router(realtime_router)

    return app


app = create_app()
