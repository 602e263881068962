from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.security import decode_token
from app.database import get_db
from app.schemas.user import AuthUser, Role
from app.services.workshop_catalog import SqlWorkshopCatalog, WorkshopCatalog

bearer_scheme = HTTPBearer()


async def get_redis(request: Request) -> Redis:
    return request.app.state.redis


async def get_workshop_catalog(db: AsyncSession = Depends(get_db)) -> WorkshopCatalog:
    return SqlWorkshopCatalog(db)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> AuthUser:
    try:
        return decode_token(credentials.credentials, expected_type="access")
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired access token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_manager_user(
    current_user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    if current_user.role.value not in settings.MANAGER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Gamification management access required",
        )
    return current_user


async def get_admin_user(
    current_user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    if current_user.role != Role.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


async def get_grader_user(
    current_user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    """Callers allowed to report graded test results for students."""
    if current_user.role.value not in settings.GRADER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Grading access required",
        )
    return current_user
