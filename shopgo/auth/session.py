"""Session store: who is logged in and the current access credential.

The session is split in two parts combined at read time:
- Durable: the user profile, persisted so a name can be shown before the
  first round-trip completes after a restart.
- Volatile: the access credential, held in memory only and re-acquired
  through a refresh on startup.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError as PydanticValidationError

from shopgo.logging import get_logger, sanitize_id_for_logging
from shopgo.models import User
from shopgo.storage import PersistentKeyValueStore, StorageKeys, read_json, remove_key, write_json

from .refresh import RefreshCoordinator

if TYPE_CHECKING:
    from shopgo.api.auth import AuthApi

logger = get_logger(__name__)


@dataclass(frozen=True)
class Durable:
    """Serialized part of the session."""
    user: Optional[User] = None

    def to_dict(self) -> dict:
        return {"user": self.user.model_dump(by_alias=True) if self.user else None}

    @classmethod
    def from_dict(cls, data) -> "Durable":
        """Corrupt or unexpected blobs come back as an empty Durable."""
        if not isinstance(data, dict) or not data.get("user"):
            return cls()
        try:
            return cls(user=User.model_validate(data["user"]))
        except PydanticValidationError:
            logger.warning("Persisted user profile is invalid, ignoring it")
            return cls()


@dataclass(frozen=True)
class Volatile:
    """Never serialized."""
    access_credential: Optional[str] = None


@dataclass(frozen=True)
class Session:
    """Read-only view of the combined session."""
    user: Optional[User]
    access_credential: Optional[str]

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.access_credential is not None


class SessionStore:
    """Single source of truth for the current user and credential."""

    def __init__(
        self,
        storage: PersistentKeyValueStore,
        coordinator: RefreshCoordinator,
        key: str = StorageKeys.AUTH,
    ):
        self._storage = storage
        self._coordinator = coordinator
        self._key = key
        self._durable = Durable.from_dict(read_json(storage, key))
        self._volatile = Volatile()
        self._api: Optional["AuthApi"] = None

    def bind_api(self, api: "AuthApi") -> None:
        """Attach the auth endpoints used by logout() and initialize()."""
        self._api = api

    @property
    def session(self) -> Session:
        return Session(user=self._durable.user, access_credential=self._volatile.access_credential)

    @property
    def user(self) -> Optional[User]:
        return self._durable.user

    @property
    def access_credential(self) -> Optional[str]:
        return self._volatile.access_credential

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    def _persist(self) -> None:
        if self._durable.user is None:
            remove_key(self._storage, self._key)
        else:
            write_json(self._storage, self._key, self._durable.to_dict())

    def set_session(self, user: User, credential: str) -> None:
        """Install user and credential together and re-arm refresh."""
        self._coordinator.reset()
        self._durable = Durable(user=user)
        self._volatile = Volatile(access_credential=credential)
        self._persist()
        logger.info("Session established for user %s", sanitize_id_for_logging(user.id))

    def set_credential(self, credential: Optional[str]) -> None:
        """Replace the credential only (right after a refresh, or None to drop it)."""
        self._volatile = Volatile(access_credential=credential)

    def clear(self) -> None:
        """Drop user and credential locally. Synchronous."""
        self._durable = Durable()
        self._volatile = Volatile()
        self._persist()

    async def logout(self) -> None:
        """
        Log out locally, then tell the server.

        Never raises: a failed server-side logout must not block the local one.
        """
        self.clear()
        if self._api is None:
            return
        try:
            await self._api.logout()
        except Exception as e:
            # Silent: user is already logged out locally.
            logger.debug("Server logout failed: %s", type(e).__name__)

    async def initialize(self) -> None:
        """
        Restore the session at startup.

        Without a credential, try a silent refresh using the side-channel
        cookie, then load the profile. Any failure leaves the store logged
        out; that is a normal state, not an error.
        """
        if self._api is None:
            raise RuntimeError("SessionStore.initialize() called before bind_api()")
        try:
            if self.access_credential is None:
                await self._api.refresh_token()

            user = await self._api.me()
            credential = self.access_credential
            if credential is None:
                logger.debug("Profile loaded without a credential, staying logged out")
                return
            self.set_session(user, credential)
        except Exception as e:
            # Silent: remain logged out.
            logger.debug("Session restore skipped: %s", type(e).__name__)
            self._volatile = Volatile()
