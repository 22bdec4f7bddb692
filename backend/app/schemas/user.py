from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Accounts are identified by the lower-cased email."""
        return v.lower()


class UserCreate(UserBase):
    password: str
    password_confirm: str


class UserUpdate(UserBase):
    pass


class ChangePasswordRequest(BaseModel):
    password_old: str
    password_new: str
    password_confirm: str


class UserCreatedResponse(BaseModel):
    name: str
    email: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    page_number: int
    page_size: int
    count: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool
    data: list[UserResponse]
