from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, Response
from contextlib import asynccontextmanager
from typing import Callable, Optional
import structlog
import time
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from app.core.config import settings
from app.core.database import init_db
from app.core.exceptions import ConflictError, TenantError
from app.core.tenant_context import TenantContext
from app.api.v1.router import api_router, admin_router
from app.middleware.tenant import TenantMiddleware, TenantResolver
from app.middleware.logging import LoggingMiddleware

# Metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration')

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Jewelry ERP")
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down Jewelry ERP")


def create_app(
    resolver: Optional[TenantResolver] = None,
    context_factory: Optional[Callable[[], TenantContext]] = None,
    lifespan=lifespan,
) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant jewelry business ERP",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    )

    # Tenant middleware sits inside logging so rejections are logged too
    app.add_middleware(TenantMiddleware, resolver=resolver, context_factory=context_factory)
    app.add_middleware(LoggingMiddleware)

    # Security Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

    if settings.PROMETHEUS_ENABLED:
        @app.middleware("http")
        async def metrics_middleware(request: Request, call_next):
            start_time = time.time()
            response = await call_next(request)
            process_time = time.time() - start_time

            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code
            ).inc()
            REQUEST_DURATION.observe(process_time)

            return response

    @app.exception_handler(TenantError)
    async def tenant_exception_handler(request: Request, exc: TenantError):
        if exc.status_code >= 500:
            logger.error("Tenant error", error=exc.kind.value, message=exc.message, path=request.url.path)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(ConflictError)
    async def conflict_exception_handler(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content={"error": "Conflict", "message": str(exc), "details": exc.details}
        )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": settings.APP_NAME}

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/admin")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development"
    )
