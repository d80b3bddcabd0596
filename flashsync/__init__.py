from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flashsync.config import settings
from flashsync.runtime import Runtime, build_runtime


def create_app(runtime: Runtime | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        rt = runtime or await build_runtime(settings)
        app.state.runtime = rt
        yield
        await rt.close()

    application = FastAPI(
        title="flashsync", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from flashsync.routers import decks, health, practice, progress, session

    application.include_router(health.router)
    application.include_router(
        session.router, prefix="/session", tags=["session"]
    )
    application.include_router(
        decks.router, prefix="/decks", tags=["decks"]
    )
    application.include_router(
        practice.router, prefix="/practice", tags=["practice"]
    )
    application.include_router(
        progress.router, prefix="/progress", tags=["progress"]
    )

    return application


app = create_app()
