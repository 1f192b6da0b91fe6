"""Cart sync engine: one cart view for guests and logged-in users."""
import asyncio
from typing import TYPE_CHECKING, Dict, List, Optional

from shopgo.auth.session import SessionStore
from shopgo.errors import ERROR_CART_MERGE, MergeConflict, MergeFailed, ShopGoError
from shopgo.logging import get_logger
from shopgo.models import CartItemRequest, Product
from shopgo.money import to_float

from .backends import CartBackend, CartMode, GuestBackend, ServerBackend
from .models import CartLine, lines_count, lines_total
from .storage import GuestCartStore

if TYPE_CHECKING:
    from shopgo.api.cart import CartApi

logger = get_logger(__name__)


def merge_payload(lines: List[CartLine]) -> List[CartItemRequest]:
    """
    Guest lines as merge entries: product id + quantity, local ids dropped.

    Lines for the same product are summed, first-seen order kept.
    """
    quantities: Dict[int, int] = {}
    for line in lines:
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    return [CartItemRequest(product_id=pid, quantity=qty) for pid, qty in quantities.items()]


class CartSyncEngine:
    """
    Dispatches cart operations to the guest or server backend.

    Features:
    - Mode picked per call from the session (no network for guests)
    - Optimistic quantity changes/removals with rollback on the server cart
    - One-time guest -> user merge after login/registration
    """

    def __init__(self, session: SessionStore, guest_store: GuestCartStore, api: "CartApi"):
        self._session = session
        self._guest = GuestBackend(guest_store)
        self._server = ServerBackend(api)
        self._api = api
        self._merge_task: Optional["asyncio.Task[bool]"] = None

    @property
    def mode(self) -> CartMode:
        return CartMode.SERVER if self._session.is_authenticated else CartMode.GUEST

    @property
    def guest_store(self) -> GuestCartStore:
        return self._guest.store

    @property
    def server(self) -> ServerBackend:
        return self._server

    def _backend(self) -> CartBackend:
        return self._server if self.mode is CartMode.SERVER else self._guest

    async def get_items(self) -> List[CartLine]:
        """Cart contents; fetched (and cached) from the server when logged in."""
        return await self._backend().read()

    def cached_items(self) -> List[CartLine]:
        """Current local view, no I/O."""
        return self._backend().cached()

    async def add(self, product: Product, quantity: int = 1) -> Optional[CartLine]:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")
        return await self._backend().add(product, quantity)

    async def update_quantity(self, line_id: str, quantity: int) -> None:
        """Set a line's quantity; 0 or less removes it."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError("quantity must be an integer")
        await self._backend().update_quantity(line_id, quantity)

    async def remove(self, line_id: str) -> None:
        await self._backend().remove(line_id)

    async def clear(self) -> None:
        await self._backend().clear()

    async def get_summary(self) -> dict:
        """Totals for display."""
        items = await self.get_items()
        if not items:
            return {"is_empty": True, "total_items": 0, "items": [], "total": 0.0}
        return {
            "is_empty": False,
            "total_items": lines_count(items),
            "items": [
                {
                    "id": line.id,
                    "product_id": line.product_id,
                    "title": line.title,
                    "quantity": line.quantity,
                    "unit_price": to_float(line.unit_price),
                    "subtotal": to_float(line.subtotal),
                }
                for line in items
            ],
            "total": to_float(lines_total(items)),
        }

    # ==================== MERGE ====================

    async def merge_guest_cart(self) -> bool:
        """
        Move the guest cart into the server cart.

        Runs as a shielded task, so a caller going away does not abort it;
        concurrent callers share the same run.

        Returns:
            True if a merge call was made, False when there was nothing to merge

        Raises:
            MergeFailed: the guest cart is kept for a later attempt
        """
        task = self._merge_task
        if task is None:
            task = asyncio.ensure_future(self._merge())
            task.add_done_callback(lambda t: t.cancelled() or t.exception())
            self._merge_task = task
        return await asyncio.shield(task)

    async def _merge(self) -> bool:
        try:
            store = self._guest.store
            if store.is_empty:
                return False
            items = merge_payload(store.items)
            try:
                await self._api.merge_guest_cart(items)
            except ShopGoError as e:
                logger.error("Guest cart merge failed (%d entries): %s", len(items), e.message)
                error_cls = MergeConflict if getattr(e, "status_code", None) == 409 else MergeFailed
                raise error_cls(ERROR_CART_MERGE, code=e.code) from e
            store.clear()
            self._server.cache.invalidate()
            logger.info("Merged %d guest cart entries", len(items))
            return True
        finally:
            self._merge_task = None

    def reset(self) -> None:
        """Forget the server cart view (logout)."""
        self._server.cache.reset()
