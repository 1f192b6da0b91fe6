"""Wishlist Sync Engine.

Membership toggles with optimistic update and rollback. Only logged-in
users have a wishlist; anonymous toggles are refused with a prompt to log
in and nothing is stored locally for them.
"""

from typing import TYPE_CHECKING, FrozenSet

from shopgo.auth.session import SessionStore
from shopgo.errors import (
    ERROR_WISHLIST_FETCH,
    ERROR_WISHLIST_UPDATE,
    AuthenticationRequired,
    FetchFailed,
    MutationFailed,
    ShopGoError,
)
from shopgo.logging import get_logger, sanitize_id_for_logging
from shopgo.optimistic import OptimisticMutation

from .store import WishlistMembership, toggled

if TYPE_CHECKING:
    from shopgo.api.wishlist import WishlistApi

logger = get_logger(__name__)


class WishlistSyncEngine:
    """Wishlist operations for the current session."""

    def __init__(self, session: SessionStore, membership: WishlistMembership, api: "WishlistApi") -> None:
        self._session = session
        self.membership = membership
        self._api = api

    @property
    def product_ids(self) -> FrozenSet[int]:
        return self.membership.product_ids

    def contains(self, product_id: int) -> bool:
        return self.membership.contains(product_id)

    async def load(self) -> FrozenSet[int]:
        """Fetch membership from the server.

        Anonymous sessions get the local view back without a request.

        Raises:
            FetchFailed: membership left unchanged
        """
        if not self._session.is_authenticated:
            return self.membership.product_ids
        try:
            items = await self._api.get_wishlist()
        except ShopGoError as e:
            logger.warning("Failed to get wishlist: %s", e.message)
            raise FetchFailed(ERROR_WISHLIST_FETCH, code=e.code) from e
        self.membership.set_ids(item.product_id for item in items)
        return self.membership.product_ids

    async def toggle(self, product_id: int) -> bool:
        """Add or remove a product.

        Args:
            product_id: Catalog product id

        Returns:
            True if the product is now in the wishlist

        Raises:
            AuthenticationRequired: not logged in
            MutationFailed: server rejected the toggle, membership restored
        """
        if not self._session.is_authenticated:
            raise AuthenticationRequired()

        mutation = OptimisticMutation(self.membership, toggled(product_id))
        try:
            result = await mutation.execute(lambda: self._api.toggle(product_id), ERROR_WISHLIST_UPDATE)
        except MutationFailed:
            logger.warning("Wishlist toggle rolled back for product %s", sanitize_id_for_logging(product_id))
            await self._settle()
            raise
        await self._settle()
        return result.added

    async def _settle(self) -> None:
        """Refetch after a toggle, whatever its outcome."""
        try:
            await self.load()
        except FetchFailed:
            logger.warning("Wishlist refetch after toggle failed, keeping local view")

    def reset(self) -> None:
        """Forget membership (logout)."""
        self.membership.set_ids(())
