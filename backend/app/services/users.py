"""User account service: listing, creation and password management."""

import logging
import math
import uuid

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import validation_error
from app.core.logging import mask_email
from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.utils.crud import CRUDOperations

logger = logging.getLogger(__name__)

user_crud = CRUDOperations[User, UserCreate, UserUpdate](User)

SORTABLE_FIELDS = {"name", "email", "created_at"}
SEARCHABLE_FIELDS = {"name", "email"}


def parse_sort(sort: str) -> tuple[str, bool]:
    """Parse ``field:order`` into (field, descending)."""
    field, _, order = sort.partition(":")
    if field not in SORTABLE_FIELDS:
        raise validation_error(
            f"Cannot sort by '{field}'",
            details={"allowed": sorted(SORTABLE_FIELDS)},
        )
    return field, order.lower() == "desc"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so search keys match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_search(search: str | None) -> tuple[str, str] | None:
    """Parse ``field:key`` into (field, key); empty keys disable the filter."""
    if not search:
        return None
    field, _, key = search.partition(":")
    if field not in SEARCHABLE_FIELDS:
        raise validation_error(
            f"Cannot search by '{field}'",
            details={"allowed": sorted(SEARCHABLE_FIELDS)},
        )
    if not key:
        return None
    return field, key


async def list_users(
    db: AsyncSession,
    page_number: int = 1,
    page_size: int = 10,
    sort: str = "email:asc",
    search: str | None = None,
) -> dict:
    """Return one page of users with pagination metadata."""
    sort_field, descending = parse_sort(sort)
    search_filter = parse_search(search)

    where = None
    if search_filter:
        field, key = search_filter
        where = getattr(User, field).ilike(f"%{escape_like(key)}%", escape="\\")

    column = getattr(User, sort_field)
    total_count = await user_crud.count(db, where=where)
    total_pages = math.ceil(total_count / page_size)

    users = await user_crud.get_multi(
        db,
        skip=(page_number - 1) * page_size,
        limit=page_size,
        where=where,
        order_by=column.desc() if descending else column.asc(),
    )

    return {
        "page_number": page_number,
        "page_size": page_size,
        "count": len(users),
        "total_pages": total_pages,
        "has_previous_page": page_number > 1,
        "has_next_page": page_number < total_pages,
        "data": users,
    }


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def email_is_registered(
    db: AsyncSession, email: str, exclude_id: uuid.UUID | None = None
) -> bool:
    user = await get_user_by_email(db, email)
    if user is None:
        return False
    return user.id != exclude_id


async def create_user(db: AsyncSession, name: str, email: str, password: str) -> User:
    password_hash = await run_in_threadpool(get_password_hash, password)
    user = await user_crud.create(
        db, {"name": name, "email": email.lower(), "password_hash": password_hash}
    )
    logger.info("Created user %s", mask_email(email))
    return user


async def check_password(user: User, password: str) -> bool:
    return await run_in_threadpool(verify_password, password, user.password_hash)


async def change_password(db: AsyncSession, user: User, password: str) -> User:
    password_hash = await run_in_threadpool(get_password_hash, password)
    user = await user_crud.update(db, user, {"password_hash": password_hash})
    logger.info("Changed password for %s", mask_email(user.email))
    return user
