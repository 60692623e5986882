"""
Dépendances partagées / Shared dependencies.
Injectées dans les routes via Depends().
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.database import async_session, get_db
from coverdesk.models.user import User
from coverdesk.services.lifecycle import LifecycleManager
from coverdesk.utils.auth import decode_token

security = HTTPBearer()

# Une seule instance : les verrous par agrégat sont partagés entre requêtes
# Single instance: per-aggregate locks are shared across requests
_lifecycle = LifecycleManager(async_session)


def get_lifecycle() -> LifecycleManager:
    return _lifecycle


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extraire et valider l'utilisateur depuis le JWT / Extract and validate user from JWT."""
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = await db.get(User, payload["sub"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user
