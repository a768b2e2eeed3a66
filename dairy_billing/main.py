from contextlib import asynccontextmanager
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from dairy_billing.config import settings
from dairy_billing.api.v1.router import api_router
from dairy_billing.core.exceptions import BillingError, IntegrityFault
from dairy_billing.database import init_db, async_session_factory
from dairy_billing.jobs.scheduler import start_scheduler, shutdown_scheduler, get_job_status


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create billing tables if missing
    - Start background scheduler (overdue sweep, nightly reconciliation)
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Customers", "description": "Customer accounts, billing plans and statements"},
    {"name": "Deliveries", "description": "Daily delivery (attendance) ledger"},
    {"name": "Bill Generation", "description": "Monthly bill generation"},
    {"name": "Bills & Payments", "description": "Bills, payments, status transitions and day breakdowns"},
    {"name": "Balance Reconciliation", "description": "Stored balance vs bill/payment ledger"},
]

API_DESCRIPTION = """
## Dairy Billing API

Monthly billing and payment reconciliation for daily milk delivery.

### Authentication

All endpoints (except `/health`) require a JWT issued by the authentication
service. Include token in Authorization header: `Bearer <token>`

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Bad Request - Validation failed |
| 401 | Unauthorized - Invalid/expired token |
| 403 | Forbidden - Insufficient permissions |
| 404 | Not Found - Resource doesn't exist |
| 409 | Conflict - Bill already exists / invoice number taken |
| 500 | Integrity fault - balance disagrees with the ledger |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


def _error_response(request: Request, status_code: int, exc: Exception, message: str) -> JSONResponse:
    error_detail = {
        "error": message,
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if settings.DEBUG and status_code >= 500:
        error_detail["traceback"] = traceback.format_exc()
    return JSONResponse(status_code=status_code, content=error_detail)


@app.exception_handler(BillingError)
async def billing_exception_handler(request: Request, exc: BillingError):
    """Map billing domain errors to their HTTP status."""
    if isinstance(exc, IntegrityFault):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return _error_response(request, exc.status_code, exc, exc.message)


# Global exception handler for anything the domain did not anticipate
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return error information for unexpected failures."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(request, 500, exc, str(exc))


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        },
        "jobs": get_job_status(),
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status
