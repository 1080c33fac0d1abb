from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.core.deps import get_current_user
from satsgame.database import get_db
from satsgame.models.user import User
from satsgame.schemas.profile import ProfileUpdate

router = APIRouter(prefix="/api/auth", tags=["auth"])

def _profile(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "is_admin": user.is_admin,
        "is_public": bool(user.is_public),
    }

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return _profile(user)

@router.patch("/me")
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # a public profile lets shared Set & Forget portfolios show the username
    user.is_public = body.is_public
    await db.commit()
    return _profile(user)
