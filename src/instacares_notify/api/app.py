"""FastAPI application factory for the notifications service."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from instacares_notify.api.routes import router
from instacares_notify.dispatch.pipeline import NotificationPipeline, build_pipeline
from instacares_notify.domain import notify


def create_app(pipeline: NotificationPipeline | None = None) -> FastAPI:
    """Build the app. The domain must be initialized before the first request."""
    app = FastAPI(
        title="InstaCares Notifications API",
        description="Multi-channel notification delivery with retries and delivery receipts",
    )
    app.state.pipeline = pipeline or build_pipeline()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the notifications domain context for each request."""
        if request.url.path.startswith("/notifications"):
            with notify.domain_context():
                return await call_next(request)
        return await call_next(request)

    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": notify.name})

    return app
