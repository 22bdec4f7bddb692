from app.schemas.auth import LoginRequest, LoginResponse
from app.schemas.purchase import PurchaseCreate, PurchaseResponse, PurchaseUpdate
from app.schemas.user import (
    ChangePasswordRequest,
    UserCreate,
    UserCreatedResponse,
    UserListResponse,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "ChangePasswordRequest",
    "LoginRequest",
    "LoginResponse",
    "PurchaseCreate",
    "PurchaseResponse",
    "PurchaseUpdate",
    "UserCreate",
    "UserCreatedResponse",
    "UserListResponse",
    "UserResponse",
    "UserUpdate",
]
