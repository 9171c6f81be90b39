"""User settings API: digest schedule, timezone and contact email."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.db.session import get_db
from bookspark.models.user import User
from bookspark.schemas.settings import SettingsUpdate
from bookspark.services.auth_service import get_current_user
from bookspark.services.user_service import settings_out, update_user_settings

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/settings")
async def get_user_settings(user: User = Depends(get_current_user)):
    return {"success": True, "settings": settings_out(user).model_dump()}


@router.put("/settings")
async def put_user_settings(
    updates: SettingsUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await update_user_settings(db, user, updates)
    return {
        "success": True,
        "message": "Settings updated successfully",
        "settings": settings_out(user).model_dump(),
    }
