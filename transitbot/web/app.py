"""FastAPI surface for the transit assistant."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transitbot.agent.service import TransitAssistant
from transitbot.session.sweeper import SessionSweeper


def create_app(
    assistant: TransitAssistant,
    sweep_interval_s: float | None = None,
) -> FastAPI:
    """Create the API application.

    The expiry sweep runs for the lifetime of the app when
    ``sweep_interval_s`` is given.
    """
    sweeper = (
        SessionSweeper(assistant.sweep_expired, interval_s=sweep_interval_s)
        if sweep_interval_s
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if sweeper:
            sweeper.start()
        yield
        if sweeper:
            sweeper.stop()
        assistant.agent.errors.close()

    app = FastAPI(
        title="transitbot",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.assistant = assistant
    app.state.sweeper = sweeper

    from transitbot.web.routes.chat import router as chat_router
    from transitbot.web.routes.context import router as context_router

    app.include_router(chat_router)
    app.include_router(context_router)

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        assistant: TransitAssistant = request.app.state.assistant
        return JSONResponse(
            {
                "status": "ok",
                "sessions": len(assistant.store),
                "errors": assistant.agent.errors.get_metrics(),
            }
        )

    return app
