from uuid import UUID

from pydantic import BaseModel, Field, field_validator

MAX_AMOUNT = 99999999.99


class PurchaseAmounts(BaseModel):
    price: float = Field(ge=0, le=MAX_AMOUNT)
    quantity: float = Field(ge=0, le=MAX_AMOUNT)

    @field_validator("price", "quantity")
    @classmethod
    def validate_precision(cls, v: float, info) -> float:
        """Amounts carry at most two decimal places."""
        if round(v, 2) != v:
            raise ValueError(f"{info.field_name} must have at most 2 decimal places")
        return v


class PurchaseCreate(PurchaseAmounts):
    product: str = Field(min_length=1)
    description: str = Field(min_length=1)


class PurchaseUpdate(PurchaseAmounts):
    pass


class PurchaseResponse(BaseModel):
    id: UUID
    product: str
    description: str
    price: float
    quantity: float

    class Config:
        from_attributes = True
