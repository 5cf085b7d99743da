from fastapi import APIRouter

from app.api.v1.endpoints import tenants, users

api_router = APIRouter()
api_router.include_router(tenants.router, tags=["tenant"])
api_router.include_router(users.router, prefix="/users", tags=["users"])

admin_router = APIRouter()
admin_router.include_router(tenants.admin_router, prefix="/tenants", tags=["admin"])
