from __future__ import annotations
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from relay.core.config import Settings, settings as default_settings
from relay.core.logging import setup_logging
from relay.infra.registry import Registry


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.registry = Registry.from_settings(settings)

    if settings.CORS_ALLOW_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ALLOW_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("shutdown")
    def on_shutdown():
        # ends every open stream so the server can drain
        app.state.registry.close_all()

    from relay.api.page_routes import router as page_router
    from relay.api.publish_routes import router as publish_router
    from relay.api.stream_routes import router as stream_router

    for router in (page_router, stream_router, publish_router):
        app.include_router(router)

    @app.get("/health")
    def health(request: Request):
        return {
            "status": "ok",
            "app": settings.APP_NAME,
            "participants": len(request.app.state.registry),
        }

    return app


app = create_app()
