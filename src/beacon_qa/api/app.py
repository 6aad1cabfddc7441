"""FastAPI application factory for Beacon."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from beacon_qa import __version__
from beacon_qa.api.routes import health


def create_app() -> FastAPI:
    app = FastAPI(title="Beacon", version=__version__, description="Synthetic monitoring for web applications")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(health.router, prefix="/api")
    return app


app = create_app()
