"""API Dependencies - Authentication and service wiring"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB
from infrastructure.config import get_settings
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData
from application.services import AvailabilityService, PricingService, ReservationService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Fixed UUID for the configured admin
ADMIN_USER_ID = "123e4567-e89b-12d3-a456-426614174000"


@lru_cache()
def _admin_user() -> UserInDB:
    """Admin account from settings; the password is hashed on first access"""
    settings = get_settings()
    return UserInDB(
        user_id=ADMIN_USER_ID,
        username=settings.admin_username,
        full_name="Admin User",
        email=settings.admin_email,
        hashed_password=get_password_hash(settings.admin_password),
        disabled=False
    )


def get_user(username: str) -> Optional[UserInDB]:
    admin = _admin_user()
    if username == admin.username:
        return admin
    return None


async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = get_user(username=token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


# Services are built once per app in the lifespan and kept on app.state
def get_reservation_service(request: Request) -> ReservationService:
    return request.app.state.reservation_service


def get_availability_service(request: Request) -> AvailabilityService:
    return request.app.state.availability_service


def get_pricing_service(request: Request) -> PricingService:
    return request.app.state.pricing_service
