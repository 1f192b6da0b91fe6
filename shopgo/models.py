"""API Models - Pydantic models for the backend's JSON payloads."""
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from shopgo.money import to_decimal as _to_decimal


class User(BaseModel):
    """Authenticated user profile (GET /auth/me)."""
    id: str
    email: str
    full_name: str = Field(default="", alias="fullName")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True
        extra = "ignore"


class AuthTokens(BaseModel):
    """Login/refresh result. The refresh credential travels as an http-only cookie."""
    access_token: str = Field(alias="accessToken")

    class Config:
        populate_by_name = True
        extra = "ignore"


class ProductRating(BaseModel):
    rate: float = 0
    count: int = 0


class Product(BaseModel):
    """Catalog product, as handed over by the UI when adding to cart."""
    id: int
    title: str
    price: Decimal
    description: str = ""
    category: str = ""
    image: str = ""
    rating: Optional[ProductRating] = None

    class Config:
        extra = "ignore"

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)


class CartItemRequest(BaseModel):
    """Body of POST /cart and an entry of POST /cart/merge."""
    product_id: int = Field(alias="productId")
    quantity: int = Field(default=1, ge=1)

    class Config:
        populate_by_name = True

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class WishlistItem(BaseModel):
    """Entry of GET /wishlist."""
    id: str
    product_id: int = Field(alias="productId")
    product: Optional[Product] = None

    class Config:
        populate_by_name = True
        extra = "ignore"


class ToggleWishlistResponse(BaseModel):
    """Result of POST /wishlist/{productId}."""
    added: bool
    product_id: int = Field(alias="productId")

    class Config:
        populate_by_name = True
        extra = "ignore"


class ApiErrorBody(BaseModel):
    code: str = ""
    message: str = ""


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint."""
    success: bool
    data: Any = None
    meta: Optional[Any] = None
    error: Optional[ApiErrorBody] = None

    class Config:
        extra = "ignore"
