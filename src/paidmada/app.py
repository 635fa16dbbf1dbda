import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from paidmada import exceptions
from paidmada.config import Settings, build_gateway_config, settings as default_settings
from paidmada.core.auditlogging.service.logservice import APILoggingMiddleware
from paidmada.core.exceptions.PaymentException import PaymentError
from paidmada.core.payments.controller.callbackcontroller import callback_routes
from paidmada.core.payments.controller.paymentcontroller import payment_routes
from paidmada.core.payments.service.paymentgateway import PaymentGateway
from paidmada.routes import api_routes, base_routes
from paidmada.utilities.ratelimit import RateLimitMiddleware


def configure_logging(settings: Settings):
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper())


def create_app(settings: Optional[Settings] = None, gateway: Optional[PaymentGateway] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)
    gateway = gateway or PaymentGateway(build_gateway_config(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application startup and shutdown"""
        mode = "MOCK (simulation)" if gateway.is_simulation_mode() else settings.ENVIRONMENT
        networks = ", ".join(network.value for network in gateway.available_networks()) or "none"
        logger.info(f"[APP_STARTUP] {settings.SERVICE_NAME} {settings.VERSION} starting ({mode})")
        logger.info(f"[APP_STARTUP] Active providers: {networks}")
        if settings.is_production and not settings.API_SECRET_KEY:
            logger.warning("[APP_STARTUP] API_SECRET_KEY is not set in production")
        yield
        logger.info("[APP_SHUTDOWN] Application shutting down...")
        await gateway.aclose()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.VERSION,
        description="""**PaidMada API** Unified mobile money payments for Madagascar.

    Providers:
    - MVola (Telma)
    - Orange Money
    - Airtel Money
    """,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway

    # -----------------------------------------------------------
    # Middleware (CORS, rate limiting, request logging)
    # -----------------------------------------------------------
    if settings.is_production:
        allowed_origins = settings.allowed_origins
        if not allowed_origins:
            logger.warning("ALLOWED_ORIGINS is not set - cross-origin requests are blocked in production")
    else:
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        request_limit=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.add_middleware(APILoggingMiddleware)

    # Exception Handlers

    app.add_exception_handler(PaymentError, exceptions.payment_exception_handler)
    app.add_exception_handler(RequestValidationError, exceptions.validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, exceptions.http_exception_handler)
    app.add_exception_handler(Exception, exceptions.unhandled_exception_handler)

    # Routes Registration

    app.include_router(base_routes, tags=["Base Routes"])
    app.include_router(api_routes, prefix="/api", tags=["Base Routes"])
    app.include_router(payment_routes, prefix="/api", tags=["Payment Routes"])
    app.include_router(callback_routes, prefix="/api/callback", tags=["Callback Routes"])

    return app


app = create_app()
