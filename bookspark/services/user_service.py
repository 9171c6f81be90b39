"""User lookup, sign-in upsert and digest settings."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookspark.models.user import User
from bookspark.schemas.settings import SettingsUpdate, UserSettingsOut
from bookspark.services.twitter_oauth import store_tokens


async def get_user_by_x_id(db: AsyncSession, x_user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.x_user_id == x_user_id))
    return result.scalar_one_or_none()


async def upsert_x_user(db: AsyncSession, profile: dict[str, Any], token_data: dict[str, Any]) -> User:
    """Create or refresh the user behind an X OAuth sign-in, keyed by X user id."""
    user = await get_user_by_x_id(db, profile["id"])
    if not user:
        user = User(x_user_id=profile["id"], x_username=profile["username"])
        db.add(user)

    user.x_username = profile["username"]
    user.name = profile.get("name")
    user.avatar_url = profile.get("profile_image_url")
    if profile.get("email"):
        user.email = profile["email"]
    user.is_active = True
    store_tokens(user, token_data)

    await db.commit()
    await db.refresh(user)
    return user


def settings_out(user: User) -> UserSettingsOut:
    return UserSettingsOut(
        digest_enabled=user.digest_enabled,
        digest_time=user.digest_time,
        timezone=user.timezone,
        email=user.digest_email,
    )


async def update_user_settings(db: AsyncSession, user: User, updates: SettingsUpdate) -> User:
    update_data = updates.model_dump(exclude_unset=True)
    # The settings form edits the digest address, not the provider email
    if "email" in update_data:
        user.contact_email = update_data.pop("email")

    for key, value in update_data.items():
        if value is not None:
            setattr(user, key, value)

    await db.commit()
    await db.refresh(user)
    return user
