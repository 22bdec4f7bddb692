import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_login_guard
from app.core.errors import ErrorCode, too_many_attempts, unauthorized
from app.core.exceptions import InvalidCredentialsError, TooManyAttemptsError
from app.schemas.auth import LoginRequest, LoginResponse
from app.services.authentication import check_login_credentials
from app.services.login_guard import LoginAttemptGuard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/authentication", tags=["authentication"])

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 32


def validate_password_complexity(password: str) -> tuple[bool, str]:
    """
    Validate password meets complexity requirements.

    Requirements:
    - Between 6 and 32 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one number
    - At least one special character
    - No whitespace
    - Latin (ASCII) characters only

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"

    if len(password) > PASSWORD_MAX_LENGTH:
        return False, f"Password must not exceed {PASSWORD_MAX_LENGTH} characters"

    if any(c.isspace() for c in password):
        return False, "Password must not contain whitespace"

    if not password.isascii():
        return False, "Password must contain only Latin characters"

    if not any(c.isupper() for c in password):
        return False, "Password must contain at least one uppercase letter (A-Z)"

    if not any(c.islower() for c in password):
        return False, "Password must contain at least one lowercase letter (a-z)"

    if not any(c.isdigit() for c in password):
        return False, "Password must contain at least one number (0-9)"

    if all(c.isalnum() for c in password):
        return False, "Password must contain at least one special character"

    return True, ""


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    guard: Annotated[LoginAttemptGuard, Depends(get_login_guard)],
):
    async def credential_check(email: str, password: str) -> dict | None:
        return await check_login_credentials(db, email, password)

    try:
        return await guard.attempt_login(request.email, request.password, credential_check)
    except TooManyAttemptsError as e:
        raise too_many_attempts("Too many failed login attempts.", e.retry_after)
    except InvalidCredentialsError as e:
        logger.info("Failed login attempt %d", e.failure_count)
        raise unauthorized("Wrong email or password", code=ErrorCode.INVALID_CREDENTIALS)
