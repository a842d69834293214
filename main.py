"""
BMI Calculator API application.

Wires logging, error tracking, middleware, error handlers and routers into
a single FastAPI app. Run with `uvicorn main:app` or `python main.py`.
"""
import logging
import time
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import APP_VERSION, settings
from core.exceptions import APIException, api_exception_handler, request_validation_handler
from core.logging import setup_logging
from core.rate_limit import RateLimitMiddleware
from core.security_headers import SecurityHeadersMiddleware
from routers import admin, bmi, health, records, stats, users

setup_logging()
logger = logging.getLogger(__name__)

DEV_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def init_sentry() -> None:
    """Error tracking, enabled only when SENTRY_DSN is configured."""
    if not settings.SENTRY_DSN:
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=f"{settings.SERVICE_NAME}@{APP_VERSION}",
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[FastApiIntegration(transaction_style="endpoint"), SqlalchemyIntegration()],
        # Names, ages and body measurements stay out of error reports
        send_default_pii=False,
    )
    logger.info(f"Sentry enabled for {settings.ENVIRONMENT}")


def cors_origins() -> List[str]:
    if settings.DEBUG:
        return ["*"]
    if settings.CORS_ORIGINS:
        return [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    return DEV_ORIGINS


init_sentry()

app = FastAPI(
    title="BMI Calculator API",
    description="BMI calculation with stored history, admin table views, export and statistics",
    version=APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# Last added runs first: request logging, rate limit, security headers, CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)
app.add_middleware(SecurityHeadersMiddleware)
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware, default_limit=settings.RATE_LIMIT_PER_MINUTE, window=60)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One log line per request with status and duration."""
    started = time.perf_counter()
    context = {
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else None,
    }

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"{request.method} {request.url.path} failed",
            exc_info=True,
            extra={"extra_fields": {**context, "error": str(e)}},
        )
        raise

    elapsed = time.perf_counter() - started
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={"extra_fields": {**context, "status_code": response.status_code, "process_time_ms": round(elapsed * 1000, 2)}},
    )
    response.headers["X-Process-Time"] = f"{elapsed:.6f}"
    return response


app.add_exception_handler(APIException, api_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=exc,
        extra={"extra_fields": {"method": request.method, "path": request.url.path}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


for module in (health, bmi, records, users, stats, admin):
    app.include_router(module.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_RELOAD)
