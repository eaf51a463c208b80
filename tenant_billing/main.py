# 📄 File: tenant_billing/main.py
#
# 🧭 Purpose (Layman Explanation):
# Starts the billing service: connects to the database and the payment provider, and exposes the
# web endpoints used to run the billing sweep by hand and manage scheduled plan changes.
#
# 🧪 Purpose (Technical Summary):
# FastAPI application factory with lifespan-managed BillingContainer, router registration and
# the BillingEngineException handler.
#
# 🔗 Dependencies:
# - FastAPI framework, uvicorn
# - tenant_billing.shared.config.settings
# - tenant_billing.modules.subscription_billing.container
#
# 🔄 Connected Modules / Calls From:
# - uvicorn server startup
# - tests (create_app with an injected container)

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tenant_billing.api.v1.router import api_v1_router
from tenant_billing.modules.subscription_billing.container import BillingContainer
from tenant_billing.shared.config.settings import get_settings
from tenant_billing.shared.core.exceptions import BillingEngineException, exception_to_dict
from tenant_billing.shared.utils.logging import log_shutdown_event, log_startup_event, setup_logging

logger = logging.getLogger(__name__)


def create_app(container: Optional[BillingContainer] = None) -> FastAPI:
    """
    Application factory function.

    Args:
        container: Pre-built billing container; the production graph is built when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = container.settings if container else get_settings()
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        billing_container = app.state.billing_container
        log_startup_event(settings.APP_NAME, settings.APP_VERSION, {"environment": settings.ENVIRONMENT})

        try:
            await billing_container.startup()
            logger.info("✅ Tenant billing startup complete")
            yield
        except Exception as e:
            logger.error(f"❌ Startup failed: {e}")
            raise
        finally:
            log_shutdown_event(settings.APP_NAME)
            try:
                await billing_container.shutdown()
            except Exception as e:
                logger.error(f"❌ Shutdown error: {e}")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.billing_container = container or BillingContainer(settings)

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    app.include_router(api_v1_router, prefix="/api/v1")

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(BillingEngineException)
    async def billing_exception_handler(request: Request, exc: BillingEngineException) -> JSONResponse:
        """Handle custom billing exceptions."""
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        body = exc.to_dict()
        body["error"]["timestamp"] = datetime.now(timezone.utc).isoformat()
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(500)
    async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle 500 Internal Server Error."""
        logger.error(f"Internal server error on {request.url.path}: {exc}", exc_info=True)
        body = exception_to_dict(exc)
        if not settings.debug:
            body["error"]["message"] = "An internal server error occurred"
            body["error"]["details"] = {}
        body["error"]["timestamp"] = datetime.now(timezone.utc).isoformat()
        return JSONResponse(status_code=500, content=body)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "health_check": "/api/v1/health",
            "api_base": "/api/v1",
        }

    return app


# Create the FastAPI application
app = create_app()


def main():
    """Run the application in development."""
    settings = get_settings()
    uvicorn.run(
        "tenant_billing.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
