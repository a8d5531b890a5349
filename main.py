import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from portal.config import settings
from portal.database import Base, engine
from portal.exception_handlers import register_exception_handlers
from portal.middleware.language import SetLocaleMiddleware
from portal.middleware.rate_limit import configure_rate_limiting
from portal.routes import account, auth, dashboard, two_factor
from portal.scheduler import schedule_maintenance_jobs, scheduler

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting up the application...")
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")

    if settings.scheduler_enabled:
        schedule_maintenance_jobs()
        scheduler.start()

    yield

    logger.info("Shutting down the application...")
    if scheduler.running:
        scheduler.shutdown(wait=False)
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Account portal with email verification and two-factor authentication",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Starlette runs the last added middleware first; the locale needs the session
    app.add_middleware(SetLocaleMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_lifetime_minutes * 60,
        same_site="lax",
        https_only=settings.https_only,
    )

    configure_rate_limiting(app)
    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.guest)
    app.include_router(auth.router)
    app.include_router(two_factor.router)
    app.include_router(account.router)
    app.include_router(dashboard.router)

    Path(settings.storage_path).mkdir(parents=True, exist_ok=True)
    app.mount(settings.storage_url, StaticFiles(directory=settings.storage_path), name="storage")

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse("/login", status_code=302)

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
