"""
Routes Utilisateurs / User routes.
Création (boutique), authentification et profil (assureur).
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.api.deps import get_current_user
from coverdesk.config import settings
from coverdesk.database import get_db
from coverdesk.models.user import User
from coverdesk.rate_limit import limiter
from coverdesk.schemas.user import LoginRequest, PasswordUpdate, TokenResponse, UserCreate, UserRead
from coverdesk.services import catalog
from coverdesk.utils.auth import create_access_token

router = APIRouter()


@router.post("/", response_model=UserRead, status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await catalog.create_user(db, data.username, data.password, data.first_name, data.last_name)


@router.post("/authenticate", response_model=TokenResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def authenticate(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Connexion par identifiants / Login with credentials."""
    user = await catalog.authenticate_user(db, data.username, data.password)
    return TokenResponse(access_token=create_access_token(user.username))


@router.get("/me", response_model=UserRead)
async def me(user: User = Depends(get_current_user)):
    """Profil de l'utilisateur connecté / Current user profile."""
    return user


@router.get("/{username}", response_model=UserRead)
async def get_user(username: str, db: AsyncSession = Depends(get_db)):
    return await catalog.get_user(db, username)


@router.put("/{username}/password", status_code=204)
async def update_password(
    username: str,
    data: PasswordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Changer son propre mot de passe / Change one's own password."""
    if current_user.username != username:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot change another user's password")
    await catalog.update_password(db, username, data.new_password)
