from fastapi import Request
import logging
import time
import uuid
import structlog

from app.core.config import settings

logger = structlog.get_logger()


def _tenant_fields(request: Request) -> dict:
    tenant = getattr(request.state, "tenant", None)
    if tenant is None:
        return {"tenant_id": None, "subdomain": None}
    return {"tenant_id": str(tenant.id), "subdomain": tenant.subdomain}


class LoggingMiddleware:
    """Request/Response logging middleware"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.time()

        logger.info(
            "HTTP Request",
            request_id=request.state.request_id,
            method=request.method,
            path=request.url.path,
            host=request.headers.get("host", ""),
            tenant_header=request.headers.get(settings.TENANT_HEADER),
            client_ip=self.get_client_ip(request),
            event_type="request",
        )

        response_info = {}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                response_info["status_code"] = message["status"]
            elif message["type"] == "http.response.body":
                response_info["body_size"] = response_info.get("body_size", 0) + len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            logger.error(
                "HTTP Error",
                request_id=request.state.request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.time() - start_time) * 1000, 2),
                error_type=type(e).__name__,
                error_message=str(e),
                success=False,
                event_type="error",
                **_tenant_fields(request),
            )
            raise

        status_code = response_info.get("status_code", 0)
        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "HTTP Response",
            request_id=request.state.request_id,
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round((time.time() - start_time) * 1000, 2),
            response_size_bytes=response_info.get("body_size", 0),
            event_type="response",
            **_tenant_fields(request),
        )

    def get_client_ip(self, request: Request) -> str:
        """Get client IP address considering proxies"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        return request.client.host if request.client else "unknown"


class StructuredLogger:
    """Structured logging setup"""

    @staticmethod
    def configure_logging():
        """Configure structured logging"""
        renderer = (
            structlog.processors.JSONRenderer()
            if settings.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer()
        )

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            level=getattr(logging, settings.LOG_LEVEL.upper()),
            format="%(message)s"
        )


# Initialize structured logging
StructuredLogger.configure_logging()
