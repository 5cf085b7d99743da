from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.exceptions import ConflictError
from app.middleware.tenant import get_tenant_session
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse

router = APIRouter()


@router.get("", response_model=List[UserResponse])
async def list_users(db: AsyncSession = Depends(get_tenant_session)):
    """List users of the current tenant"""
    result = await db.execute(select(User).order_by(User.email))
    return result.scalars().all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_tenant_session)):
    """Create a user in the current tenant"""
    user = User(**data.model_dump())
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        raise ConflictError("User with this email already exists", {"email": data.email})
    return user
