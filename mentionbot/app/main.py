from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mentionbot.app.api.mentions import router as mentions_router
from mentionbot.app.core.config import Settings, settings as default_settings
from mentionbot.app.core.http_client import init_http_client
from mentionbot.app.core.logging import get_logger, setup_logging
from mentionbot.app.middleware.request_id import RequestIdMiddleware
from mentionbot.app.providers.deepseek import DeepSeekTransport
from mentionbot.app.services.mention_handler import MentionHandler
from mentionbot.app.services.orchestrator import CompletionOrchestrator
from mentionbot.app.services.rate_limit import SlidingWindowLimiter
from mentionbot.app.services.web_search import WebSearchTool


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to wire the components with (defaults to the
            environment-loaded settings)

    Returns:
        Configured FastAPI application instance
    """
    cfg = app_settings or default_settings

    setup_logging(cfg)
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Wire the limiter, transport, search tool and handler on startup.

        The shared HTTP client is closed on shutdown; the ASGI server turns
        SIGINT/SIGTERM into this shutdown phase.
        """
        async with init_http_client(cfg) as http_client:
            transport = DeepSeekTransport(
                url=cfg.deepseek_url,
                api_key=cfg.deepseek_api_key,
                model=cfg.deepseek_model,
                temperature=cfg.deepseek_temperature,
                http_client=http_client,
                timeout=cfg.transport_timeout,
            )
            search_tool = None
            if cfg.search_available:
                search_tool = WebSearchTool(
                    api_key=cfg.tavily_api_key,
                    url=cfg.tavily_url,
                    http_client=http_client,
                    timeout=cfg.search_timeout,
                )
            elif cfg.search_enabled:
                logger.warning("Web search enabled but TAVILY_API_KEY is empty; search disabled")

            limiter = SlidingWindowLimiter(
                limit=cfg.rate_limit_requests,
                window_seconds=cfg.rate_limit_window_seconds,
            )
            orchestrator = CompletionOrchestrator(transport, deadline=cfg.completion_deadline)

            app.state.limiter = limiter
            app.state.ingress_token = cfg.ingress_token
            app.state.mention_handler = MentionHandler(
                limiter=limiter,
                orchestrator=orchestrator,
                bot_user_id=cfg.bot_user_id,
                system_prompt=cfg.system_prompt,
                tool_executor=search_tool,
                history_limit=cfg.history_limit,
                reply_max_length=cfg.reply_max_length,
            )

            if not cfg.bot_user_id:
                logger.warning("BOT_USER_ID is empty; no message will be treated as a mention")

            logger.info(
                "Application startup complete",
                extra={
                    "model": cfg.deepseek_model,
                    "search_enabled": search_tool is not None,
                    "rate_limit": f"{cfg.rate_limit_requests}/{cfg.rate_limit_window_seconds:g}s",
                },
            )

            yield {"http_client": http_client}

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Mention Bot",
        description="Chat assistant answering channel mentions with an LLM and web search",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(RequestIdMiddleware)

    app.include_router(mentions_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check reporting the wired components."""
        limiter = getattr(request.app.state, "limiter", None)
        handler = getattr(request.app.state, "mention_handler", None)
        return {
            "status": "ok" if handler is not None else "starting",
            "components": {
                "model": cfg.deepseek_model,
                "search": {"enabled": bool(handler and handler.tool_executor)},
                "rate_limiter": {
                    "limit": cfg.rate_limit_requests,
                    "window_seconds": cfg.rate_limit_window_seconds,
                    "tracked_keys": limiter.tracked_keys() if limiter else 0,
                },
            },
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled exceptions server-side and return a generic 500."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={"request_id": request_id, "exception_type": type(exc).__name__},
        )
        content = {
            "error": "internal_error",
            "message": str(exc) if cfg.debug else "Internal server error",
            "request_id": request_id,
        }
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
