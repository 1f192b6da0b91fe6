"""Cart endpoints (authenticated users only)."""
from typing import List, Optional

from shopgo.errors import CODE_INVALID_RESPONSE, ERROR_INVALID_RESPONSE, ApiError
from shopgo.cart.models import CartLine
from shopgo.models import CartItemRequest

from .client import ApiClient


def _line(data) -> CartLine:
    try:
        return CartLine.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ApiError(ERROR_INVALID_RESPONSE, code=CODE_INVALID_RESPONSE, payload=data) from e


class CartApi:
    """Thin wrappers around /cart."""

    def __init__(self, client: ApiClient):
        self._client = client

    async def get_cart(self) -> List[CartLine]:
        data = await self._client.get("/cart")
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiError(ERROR_INVALID_RESPONSE, code=CODE_INVALID_RESPONSE, payload=data)
        return [_line(entry) for entry in data]

    async def add_item(self, item: CartItemRequest) -> Optional[CartLine]:
        data = await self._client.post("/cart", json=item.to_payload())
        return _line(data) if isinstance(data, dict) and "productId" in data else None

    async def update_quantity(self, line_id: str, quantity: int) -> Optional[CartLine]:
        """PATCH a line. Some servers only acknowledge ({"updated": true}); then None."""
        data = await self._client.patch(f"/cart/{line_id}", json={"quantity": quantity})
        return _line(data) if isinstance(data, dict) and "productId" in data else None

    async def remove_item(self, line_id: str) -> None:
        await self._client.delete(f"/cart/{line_id}")

    async def clear_cart(self) -> None:
        await self._client.delete("/cart")

    async def merge_guest_cart(self, items: List[CartItemRequest]) -> None:
        """Merge guest lines (product id + quantity only) into the server cart."""
        await self._client.post("/cart/merge", json={"items": [item.to_payload() for item in items]})
