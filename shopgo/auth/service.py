"""Login, registration and logout flows.

Login/registration success installs the session and then merges the guest
cart exactly once; logout returns the client to a clean guest state.
"""

from shopgo.api.auth import AuthApi
from shopgo.cart.service import CartSyncEngine
from shopgo.errors import FetchFailed
from shopgo.logging import get_logger
from shopgo.models import User
from shopgo.wishlist.service import WishlistSyncEngine

from .session import SessionStore

logger = get_logger(__name__)


class AuthService:
    """Auth flows tying session, cart and wishlist together."""

    def __init__(
        self,
        session: SessionStore,
        api: AuthApi,
        cart: CartSyncEngine,
        wishlist: WishlistSyncEngine,
    ) -> None:
        self.session = session
        self.api = api
        self.cart = cart
        self.wishlist = wishlist

    async def login(self, email: str, password: str) -> User:
        """
        Log in, install the session, merge the guest cart.

        Raises:
            Unauthorized / ValidationError: credentials rejected, nothing changed
            MergeFailed: logged in, but guest items stay local for a later login
        """
        tokens = await self.api.login(email, password)
        previous_user = self.session.user
        previous_credential = self.session.access_credential
        self.session.set_credential(tokens.access_token)
        try:
            user = await self.api.me()
        except Exception:
            self.session.set_credential(previous_credential)
            raise
        self.cart.reset()
        if previous_user is None or previous_user.id != user.id:
            self.wishlist.reset()
        self.session.set_session(user, tokens.access_token)

        await self.cart.merge_guest_cart()
        await self._load_wishlist()
        return user

    async def register(self, email: str, password: str, full_name: str) -> User:
        """Create the account, then run the login flow."""
        await self.api.register(email, password, full_name)
        return await self.login(email, password)

    async def logout(self) -> None:
        """
        Local logout (never raises) and reset of per-user state.

        Guest lines still present were not merged (a merge failed); they are
        kept for the next login.
        """
        await self.session.logout()
        self.reset_user_state()

    def reset_user_state(self) -> None:
        """Drop the server cart view and wishlist of the previous user."""
        self.cart.reset()
        self.wishlist.reset()

    async def initialize(self) -> None:
        """Restore a session from the refresh cookie at startup."""
        await self.session.initialize()
        if self.session.is_authenticated:
            await self._load_wishlist()

    async def _load_wishlist(self) -> None:
        try:
            await self.wishlist.load()
        except FetchFailed:
            logger.warning("Wishlist not loaded after sign-in")
