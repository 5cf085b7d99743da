from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from prometheus_client import Counter
import ipaddress
import structlog
from typing import AsyncGenerator, Callable, List, Optional

from app.core.config import settings
from app.core.exceptions import (
    TenantConnectionError, TenantError, TenantInactive, TenantNotBound,
    TenantNotFound, TenantResolutionError, TenantSuspended,
)
from app.core.tenant_context import TenantContext
from app.models.tenant import Tenant, TenantStatus
from app.services.tenant_registry import TenantRegistry

logger = structlog.get_logger()

TENANT_RESOLUTIONS = Counter(
    "tenant_resolutions_total", "Tenant resolution outcomes", ["outcome"]
)


class TenantResolver:
    """Map an inbound request to a routable tenant"""

    def __init__(
        self,
        registry: Optional[TenantRegistry] = None,
        skip_paths: Optional[List[str]] = None,
        header_name: Optional[str] = None,
    ):
        self.registry = registry or TenantRegistry()
        self.skip_paths = skip_paths if skip_paths is not None else settings.TENANT_SKIP_PATHS
        self.header_name = header_name or settings.TENANT_HEADER

    def extract_subdomain(self, request: Request) -> Optional[str]:
        """Subdomain from the override header, else from the Host header"""
        # Explicit header wins (server-to-server calls without DNS hosts)
        override = request.headers.get(self.header_name)
        if override and override.strip():
            return override.strip().lower()

        host = request.headers.get("host", "").strip().lower()
        if not host:
            return None

        # Strip port, including bracketed IPv6 hosts
        if host.startswith("["):
            return None
        host = host.split(":", 1)[0].rstrip(".")

        try:
            ipaddress.ip_address(host)
            return None
        except ValueError:
            pass

        parts = host.split(".")

        # subdomain.domain.tld
        if len(parts) >= 3 and parts[0]:
            return parts[0]

        # Local development: subdomain.localhost
        if len(parts) == 2 and parts[1] == "localhost" and parts[0]:
            return parts[0]

        return None

    def should_skip(self, request: Request) -> bool:
        """Paths that never go through tenant resolution"""
        path = request.url.path
        for prefix in self.skip_paths:
            if prefix == "/":
                return True
            if path == prefix or path.startswith(prefix + "/"):
                return True
        return False

    async def resolve(self, request: Request) -> Optional[Tenant]:
        """Resolve the routable tenant; None for skipped paths"""
        if self.should_skip(request):
            return None

        subdomain = self.extract_subdomain(request)
        if not subdomain:
            raise TenantNotFound("No valid subdomain provided")

        tenant = await self.registry.get_by_subdomain(subdomain)

        # Rows whose database is not ready yet are not valid tenants
        if tenant is None or not tenant.is_provisioned:
            raise TenantNotFound(
                f"Tenant '{subdomain}' not found", {"subdomain": subdomain}
            )

        if tenant.status == TenantStatus.SUSPENDED:
            raise TenantSuspended(
                f"Tenant '{subdomain}' is suspended", {"subdomain": subdomain}
            )
        if tenant.status != TenantStatus.ACTIVE:
            raise TenantInactive(
                f"Tenant '{subdomain}' is inactive", {"subdomain": subdomain}
            )

        return tenant


class TenantMiddleware:
    """Multi-tenant middleware: resolve the tenant and bind its database per request"""

    def __init__(
        self,
        app,
        resolver: Optional[TenantResolver] = None,
        context_factory: Optional[Callable[[], TenantContext]] = None,
    ):
        self.app = app
        self.resolver = resolver or TenantResolver()
        self.context_factory = context_factory or TenantContext

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)

        # Health checks and administrative routes are global
        if self.resolver.should_skip(request):
            await self.app(scope, receive, send)
            return

        try:
            tenant = await self.resolver.resolve(request)
        except TenantResolutionError as e:
            TENANT_RESOLUTIONS.labels(outcome=e.kind.value).inc()
            logger.warning(
                "Tenant resolution rejected",
                outcome=e.kind.value,
                host=request.headers.get("host", ""),
                path=request.url.path,
                **e.details,
            )
            await self._reject(e, scope, receive, send)
            return

        response_started = False
        bound = False

        async def send_wrapper(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        # Fresh context per request: no binding outlives its request
        context = self.context_factory()
        try:
            async with context.scoped(tenant):
                bound = True
                TENANT_RESOLUTIONS.labels(outcome="resolved").inc()
                request.state.tenant_context = context
                request.state.tenant = tenant
                await self._touch(tenant)
                await self.app(scope, receive, send_wrapper)
        except TenantConnectionError as e:
            if not bound:
                TENANT_RESOLUTIONS.labels(outcome=e.kind.value).inc()
            if response_started:
                raise
            await self._reject(e, scope, receive, send)

    async def _touch(self, tenant: Tenant):
        try:
            await self.resolver.registry.touch(tenant)
        except Exception as e:
            logger.warning("Failed to update tenant last access", subdomain=tenant.subdomain, error=str(e))

    async def _reject(self, error: TenantError, scope, receive, send):
        response = JSONResponse(status_code=error.status_code, content=error.to_dict())
        await response(scope, receive, send)


def get_tenant_context(request: Request) -> TenantContext:
    """Tenant context bound by ``TenantMiddleware``; fails loudly when absent"""
    context = getattr(request.state, "tenant_context", None)
    if context is None or not context.is_bound:
        raise TenantNotBound(
            "No tenant is bound to this request", {"path": request.url.path}
        )
    return context


async def get_current_tenant(context: TenantContext = Depends(get_tenant_context)) -> Tenant:
    """Get current tenant from the request context"""
    return context.current()


async def get_tenant_session(
    context: TenantContext = Depends(get_tenant_context),
) -> AsyncGenerator[AsyncSession, None]:
    """Database session scoped to the current tenant"""
    async with context.session() as session:
        yield session
