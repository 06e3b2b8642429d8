import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bracket_league import __version__
from bracket_league.core.config import get_settings
from bracket_league.core.errors import AppError
from bracket_league.core.logging_config import configure_logging
from bracket_league.routes import player_routes, tournament_routes

logger = logging.getLogger(__name__)


async def handle_app_error(request: Request, error: AppError) -> JSONResponse:
    if error.status_code >= 500:
        logger.error("%s on %s %s: %s", type(error).__name__, request.method, request.url.path, error.message)
    else:
        logger.warning("%s on %s %s: %s", type(error).__name__, request.method, request.url.path, error.message)
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.message, "error": type(error).__name__},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    if not settings.admin_wallets:
        logger.warning("ADMIN_WALLETS is not set; admin routes are open to every caller")

    app = FastAPI(title="Bracket League API", version=__version__)
    app.add_exception_handler(AppError, handle_app_error)

    app.include_router(player_routes.router, prefix="/api/players", tags=["Players"])
    app.include_router(tournament_routes.router, prefix="/api/tournaments", tags=["Tournaments"])

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()
