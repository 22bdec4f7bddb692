"""Credential verification for the login endpoint."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.users import check_password, get_user_by_email


async def check_login_credentials(db: AsyncSession, email: str, password: str) -> dict | None:
    """
    Check an email/password pair against the stored account.

    Returns:
        Login payload (email, name, user_id) or None when the email is
        unknown or the password does not match
    """
    user = await get_user_by_email(db, email)
    if user is None:
        return None

    if not await check_password(user, password):
        return None

    return {
        "email": user.email,
        "name": user.name,
        "user_id": user.id,
    }
