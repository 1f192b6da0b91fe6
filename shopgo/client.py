"""Wiring for the ShopGo client.

    async with ShopClient.from_config(load_config(), on_session_expired=go_to) as shop:
        await shop.auth.initialize()
        await shop.cart.add(product)
"""

from typing import Optional

import httpx

from shopgo.api import ApiClient, AuthApi, CartApi, WishlistApi
from shopgo.auth import RefreshCoordinator, SessionStore
from shopgo.auth.service import AuthService
from shopgo.cart import CartSyncEngine, GuestCartStore
from shopgo.config import ClientConfig, load_config
from shopgo.recently_viewed import RecentlyViewedStore
from shopgo.storage import PersistentKeyValueStore, create_store
from shopgo.wishlist import WishlistMembership, WishlistSyncEngine


class ShopClient:
    """Owns every component; one instance per signed-in device/profile."""

    def __init__(
        self,
        config: ClientConfig,
        storage: PersistentKeyValueStore,
        *,
        on_session_expired=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.storage = storage
        self.coordinator = RefreshCoordinator()
        self.session = SessionStore(storage, self.coordinator)
        self.http = ApiClient(
            self.session,
            self.coordinator,
            config.base_url,
            timeout=config.http_timeout,
            refresh_timeout=config.refresh_timeout,
            login_path=config.login_path,
            on_session_expired=on_session_expired,
            transport=transport,
        )
        self.auth_api = AuthApi(self.http)
        self.session.bind_api(self.auth_api)

        self.cart = CartSyncEngine(self.session, GuestCartStore(storage), CartApi(self.http))
        self.wishlist = WishlistSyncEngine(self.session, WishlistMembership(storage), WishlistApi(self.http))
        self.recently_viewed = RecentlyViewedStore(storage)
        self.auth = AuthService(self.session, self.auth_api, self.cart, self.wishlist)
        # A forced logout must not leave the old user's cart or wishlist behind
        self.http.add_teardown_hook(self.auth.reset_user_state)

    @classmethod
    def from_config(
        cls,
        config: Optional[ClientConfig] = None,
        *,
        storage: Optional[PersistentKeyValueStore] = None,
        on_session_expired=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ShopClient":
        config = config or load_config()
        return cls(
            config,
            storage if storage is not None else create_store(config.state_dir),
            on_session_expired=on_session_expired,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ShopClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


# Singleton instance
_shop_client: Optional[ShopClient] = None


def get_shop_client() -> ShopClient:
    """Get ShopClient singleton built from the environment."""
    global _shop_client
    if _shop_client is None:
        _shop_client = ShopClient.from_config()
    return _shop_client
