"""Cart backends: one capability, two storage modes.

GuestBackend works on the device-local GuestCartStore and never touches the
network. ServerBackend works on the server cart through a cached view with
optimistic quantity changes and removals.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from shopgo.cache import CachedQuery
from shopgo.errors import (
    CODE_GUEST_LINE_ID,
    ERROR_CART_FETCH,
    ERROR_CART_UPDATE,
    ERROR_GUEST_LINE_ID,
    FetchFailed,
    MutationFailed,
    ShopGoError,
    ValidationError,
)
from shopgo.logging import get_logger, sanitize_id_for_logging
from shopgo.models import CartItemRequest, Product
from shopgo.optimistic import OptimisticMutation

from .models import CartLine, is_guest_line_id, new_guest_line_id
from .storage import GuestCartStore

if TYPE_CHECKING:
    from shopgo.api.cart import CartApi

logger = get_logger(__name__)


class CartMode(str, Enum):
    GUEST = "guest"
    SERVER = "server"


class CartBackend(ABC):
    """read / add / update_quantity / remove / clear."""

    mode: CartMode

    @abstractmethod
    async def read(self) -> List[CartLine]:
        ...

    @abstractmethod
    def cached(self) -> List[CartLine]:
        """Current local view without I/O."""

    @abstractmethod
    async def add(self, product: Product, quantity: int) -> Optional[CartLine]:
        ...

    @abstractmethod
    async def update_quantity(self, line_id: str, quantity: int) -> None:
        ...

    @abstractmethod
    async def remove(self, line_id: str) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


class GuestBackend(CartBackend):
    """Anonymous cart kept on the device."""

    mode = CartMode.GUEST

    def __init__(self, store: GuestCartStore):
        self.store = store

    async def read(self) -> List[CartLine]:
        return self.store.items

    def cached(self) -> List[CartLine]:
        return self.store.items

    async def add(self, product: Product, quantity: int) -> CartLine:
        line = CartLine(
            id=new_guest_line_id(),
            product_id=product.id,
            title=product.title,
            image=product.image,
            unit_price=product.price,
            quantity=quantity,
        )
        self.store.add_item(line)
        return line

    async def update_quantity(self, line_id: str, quantity: int) -> None:
        self.store.update_quantity(line_id, quantity)

    async def remove(self, line_id: str) -> None:
        self.store.remove_item(line_id)

    async def clear(self) -> None:
        self.store.clear()


class ServerBackend(CartBackend):
    """Server-owned cart behind a cached, optimistically updated view."""

    mode = CartMode.SERVER

    def __init__(self, api: "CartApi"):
        self._api = api
        self.cache: CachedQuery[List[CartLine]] = CachedQuery("cart", api.get_cart, ERROR_CART_FETCH)

    async def read(self) -> List[CartLine]:
        return list(await self.cache.get() or [])

    def cached(self) -> List[CartLine]:
        return list(self.cache.data or [])

    @staticmethod
    def _reject_guest_id(line_id: str) -> None:
        if is_guest_line_id(line_id):
            raise ValidationError(ERROR_GUEST_LINE_ID, code=CODE_GUEST_LINE_ID)

    async def _reconcile(self) -> None:
        """Invalidate and refetch; a failed refetch leaves the cache stale."""
        self.cache.invalidate()
        try:
            await self.cache.refetch()
        except FetchFailed:
            logger.warning("Cart refetch after mutation failed, cache left stale")

    async def add(self, product: Product, quantity: int) -> Optional[CartLine]:
        request = CartItemRequest(product_id=product.id, quantity=quantity)
        try:
            line = await self._api.add_item(request)
        except ShopGoError as e:
            logger.warning("Add to cart failed for product %s: %s", sanitize_id_for_logging(product.id), e.message)
            raise MutationFailed(ERROR_CART_UPDATE, code=e.code) from e
        await self._reconcile()
        return line

    async def update_quantity(self, line_id: str, quantity: int) -> None:
        self._reject_guest_id(line_id)
        if quantity <= 0:
            await self.remove(line_id)
            return

        def set_quantity(lines: Optional[List[CartLine]]) -> List[CartLine]:
            return [line.with_quantity(quantity) if line.id == line_id else line for line in (lines or [])]

        await self._run_optimistic(
            OptimisticMutation(self.cache, set_quantity),
            lambda: self._api.update_quantity(line_id, quantity),
        )

    async def remove(self, line_id: str) -> None:
        self._reject_guest_id(line_id)

        def drop(lines: Optional[List[CartLine]]) -> List[CartLine]:
            return [line for line in (lines or []) if line.id != line_id]

        await self._run_optimistic(
            OptimisticMutation(self.cache, drop),
            lambda: self._api.remove_item(line_id),
        )

    async def _run_optimistic(self, mutation: OptimisticMutation, call) -> None:
        try:
            await mutation.execute(call, ERROR_CART_UPDATE)
        except MutationFailed as e:
            logger.warning("Cart mutation rolled back: %s", e.code or "unknown")
            if mutation.superseded:
                # A newer write owns the cache; let the server settle it
                await self._reconcile()
            raise
        await self._reconcile()

    async def clear(self) -> None:
        try:
            await self._api.clear_cart()
        except ShopGoError as e:
            raise MutationFailed(ERROR_CART_UPDATE, code=e.code) from e
        await self._reconcile()
