"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from observach.auth import create_access_token, get_current_user, hash_password, verify_password
from observach.config import get_settings
from observach.deps import get_store
from observach.models import Role, User
from observach.schemas import LoginRequest, MeResponse, RegisterRequest, TokenResponse, UserOut
from observach.store import ContentStore

settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])
limiter = Limiter(key_func=get_remote_address)


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(token=create_access_token(user), user=UserOut.model_validate(user))


@router.post("/register", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
async def register(request: Request, data: RegisterRequest, store: ContentStore = Depends(get_store)):
    """Create a regular user account and log it in."""
    user = store.create_user(data.name, data.email, hash_password(data.password), Role.USER)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
async def login(request: Request, data: LoginRequest, store: ContentStore = Depends(get_store)):
    """Login and get access token."""
    user = store.get_user_by_email(data.email)
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _token_response(user)


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return MeResponse(user=UserOut.model_validate(current_user))
