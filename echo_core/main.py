import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from the package directory before settings are read
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from echo_core.core.config import settings, validate_config  # noqa: E402
from echo_core.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from echo_core.core.logging import configure_logging  # noqa: E402
from echo_core.core.middleware.metrics import MetricsMiddleware  # noqa: E402
from echo_core.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from echo_core.api import echo, health, matches, moderation, plans, swipes  # noqa: E402
from echo_core.engine import EchoCore, build_echo_core  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("echo")
    logger.info("Starting Echo core...")
    try:
        yield
    finally:
        logging.getLogger("echo").info("Stopping Echo core...")


def create_app(core: Optional[EchoCore] = None) -> FastAPI:
    configure_logging(settings.ENV)
    validate_config(strict=getattr(settings, "CONFIG_STRICT", False))

    app = FastAPI(title="Echo - Lifecycle & Entitlements", lifespan=lifespan)
    app.state.echo_core = core or build_echo_core(settings)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(echo.router, tags=["echo"])
    app.include_router(matches.router, tags=["matches"])
    app.include_router(swipes.router, tags=["swipes"])
    app.include_router(moderation.router, tags=["moderation"])
    app.include_router(plans.router, tags=["plans"])
    app.include_router(health.router)
    return app


app = create_app()
