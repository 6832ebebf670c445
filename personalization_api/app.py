"""
Personalization API — FastAPI app factory.

Use: uvicorn personalization_api.app:app
Or:  from personalization_api import app
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from personalization import InvalidArgument, NotFound, PersonalizationError, PreconditionFailed, __version__

from .routes import register_routes
from .state import get_state

# Error taxonomy -> HTTP status
STATUS_CODES = {
    NotFound: 404,
    InvalidArgument: 400,
    PreconditionFailed: 409,
}


def _status_for(exc: PersonalizationError) -> int:
    for error_type, status in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status
    return 500


def create_app() -> FastAPI:
    """Build FastAPI app with CORS, routes, error mapping, and startup."""
    app = FastAPI(
        title="Personalization API",
        description="Behavioral profiles, recommendations, and A/B experimentation",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_routes(app)

    @app.exception_handler(PersonalizationError)
    async def personalization_error_handler(request: Request, exc: PersonalizationError):
        return JSONResponse(
            status_code=_status_for(exc),
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.on_event("startup")
    async def _startup_logging():
        state = get_state()
        print("Personalization API starting...")
        print(f"[startup] Host: {state.config.host}:{state.config.port}")
        print(f"[startup] Log level: {state.config.log_level}")

    return app


app = create_app()
