"""Wishlist endpoints."""
from typing import List

from pydantic import ValidationError as PydanticValidationError

from shopgo.errors import CODE_INVALID_RESPONSE, ERROR_INVALID_RESPONSE, ApiError
from shopgo.models import ToggleWishlistResponse, WishlistItem

from .client import ApiClient


class WishlistApi:
    """Thin wrappers around /wishlist."""

    def __init__(self, client: ApiClient):
        self._client = client

    async def get_wishlist(self) -> List[WishlistItem]:
        data = await self._client.get("/wishlist")
        try:
            return [WishlistItem.model_validate(entry) for entry in (data or [])]
        except (PydanticValidationError, TypeError) as e:
            raise ApiError(ERROR_INVALID_RESPONSE, code=CODE_INVALID_RESPONSE, payload=data) from e

    async def toggle(self, product_id: int) -> ToggleWishlistResponse:
        """Add or remove a product; the response says which."""
        data = await self._client.post(f"/wishlist/{product_id}")
        try:
            return ToggleWishlistResponse.model_validate(data)
        except PydanticValidationError as e:
            raise ApiError(ERROR_INVALID_RESPONSE, code=CODE_INVALID_RESPONSE, payload=data) from e
