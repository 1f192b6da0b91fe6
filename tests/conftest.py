"""Pytest configuration and fixtures"""
import asyncio
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import pytest

# Keep the client away from the real home directory and backend
os.environ.setdefault("SHOPGO_STATE_DIR", "")
os.environ.setdefault("SHOPGO_API_URL", "http://testserver")

from shopgo.client import ShopClient  # noqa: E402
from shopgo.config import ClientConfig  # noqa: E402
from shopgo.models import Product, User  # noqa: E402
from shopgo.storage import MemoryKeyValueStore  # noqa: E402

API_PREFIX = "/api/v1"

PRODUCTS = {
    5: {"id": 5, "title": "Desk Lamp", "price": 24.5, "image": "lamp.png"},
    7: {"id": 7, "title": "Backpack", "price": 10.0, "image": "backpack.png"},
    9: {"id": 9, "title": "Water Bottle", "price": 3.99, "image": "bottle.png"},
}


@dataclass
class Call:
    method: str
    path: str
    body: Any
    authorization: Optional[str]


def _ok(data: Any = None, status: int = 200, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return httpx.Response(status, json={"success": True, "data": data}, headers=headers)


def _error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(status, json={"success": False, "error": {"code": code, "message": message}})


class FakeShopServer:
    """In-memory ShopGo backend behind httpx.MockTransport."""

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.valid_tokens: Dict[str, str] = {}  # token -> email
        self.refresh_email: Optional[str] = None  # owner of the refresh cookie
        self.refresh_ok = True
        self.refresh_delay = 0.0
        self.offline = False
        self.always_unauthorized: set = set()
        self.cart: List[dict] = []
        self.wishlist: List[int] = []
        self.calls: List[Call] = []
        self._rules: List[dict] = []
        self._token_seq = 0
        self._line_seq = 0

    # ==================== SETUP HELPERS ====================

    def add_user(self, email: str = "ada@example.com", password: str = "secret", full_name: str = "Ada Lovelace") -> dict:
        user = {
            "id": f"user-{len(self.users) + 1}",
            "email": email,
            "fullName": full_name,
            "createdAt": "2025-01-01T00:00:00Z",
            "password": password,
        }
        self.users[email] = user
        return user

    def issue_token(self, email: str) -> str:
        """New access token; older ones stop working."""
        self._token_seq += 1
        token = f"token-{self._token_seq}"
        self.valid_tokens = {token: email}
        return token

    def expire_tokens(self) -> None:
        self.valid_tokens = {}

    def add_cart_line(self, product_id: int, quantity: int, line_id: Optional[str] = None, price: Any = None) -> dict:
        self._line_seq += 1
        product = PRODUCTS[product_id]
        unit_price = product["price"] if price is None else price
        line = {
            "id": line_id or f"srv-{self._line_seq}",
            "productId": product_id,
            "title": product["title"],
            "image": product["image"],
            "price": unit_price,
            "quantity": quantity,
            "subtotal": 0,  # deliberately wrong; clients recompute
        }
        self.cart.append(line)
        return line

    def fail(self, method: str, path: str, status: int = 500, code: str = "INTERNAL_ERROR", gate: Optional[asyncio.Event] = None) -> None:
        """Fail the next matching request (optionally after gate is set)."""
        self._rules.append({"method": method, "path": path, "status": status, "code": code, "gate": gate})

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call.method == method and call.path == path)

    def bodies(self, method: str, path: str) -> List[Any]:
        return [call.body for call in self.calls if call.method == method and call.path == path]

    # ==================== TRANSPORT ====================

    def _take_rule(self, method: str, path: str) -> Optional[dict]:
        for rule in self._rules:
            if rule["method"] == method and rule["path"] == path:
                self._rules.remove(rule)
                return rule
        return None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        body = json.loads(request.content) if request.content else None
        authorization = request.headers.get("authorization")
        self.calls.append(Call(request.method, path, body, authorization))

        if self.offline:
            raise httpx.ConnectError("offline", request=request)

        rule = self._take_rule(request.method, path)
        if rule is not None:
            if rule["gate"] is not None:
                await rule["gate"].wait()
            return _error(rule["status"], rule["code"], "injected failure")

        return await self._route(request.method, path, body, authorization)

    def _authorize(self, authorization: Optional[str]) -> Optional[str]:
        if not authorization or not authorization.startswith("Bearer "):
            return None
        return self.valid_tokens.get(authorization[len("Bearer "):])

    async def _route(self, method: str, path: str, body: Any, authorization: Optional[str]) -> httpx.Response:
        if method == "POST" and path == "/auth/register":
            if body["email"] in self.users:
                return _error(409, "EMAIL_TAKEN", "email already registered")
            user = self.add_user(body["email"], body["password"], body["fullName"])
            return _ok(_public(user), status=201)

        if method == "POST" and path == "/auth/login":
            user = self.users.get(body.get("email"))
            if user is None or user["password"] != body.get("password"):
                return _error(401, "INVALID_CREDENTIALS", "invalid email or password")
            self.refresh_email = user["email"]
            token = self.issue_token(user["email"])
            return _ok({"accessToken": token}, headers={"set-cookie": "refresh_token=rt; HttpOnly; Path=/"})

        if method == "POST" and path == "/auth/refresh":
            if self.refresh_delay:
                await asyncio.sleep(self.refresh_delay)
            if not self.refresh_ok or self.refresh_email is None:
                return _error(401, "INVALID_REFRESH_TOKEN", "refresh token invalid")
            return _ok({"accessToken": self.issue_token(self.refresh_email)})

        if method == "POST" and path == "/auth/logout":
            self.refresh_email = None
            return _ok({"loggedOut": True})

        email = self._authorize(authorization)
        if email is None or path in self.always_unauthorized:
            return _error(401, "UNAUTHORIZED", "invalid or expired token")

        if method == "GET" and path == "/auth/me":
            return _ok(_public(self.users[email]))

        if path == "/cart":
            if method == "GET":
                return _ok(self.cart)
            if method == "POST":
                if body["productId"] not in PRODUCTS:
                    return _error(404, "PRODUCT_NOT_FOUND", "product not found")
                return _ok(self.add_cart_line(body["productId"], body["quantity"]), status=201)
            if method == "DELETE":
                self.cart = []
                return _ok({"cleared": True})

        if method == "POST" and path == "/cart/merge":
            for item in body["items"]:
                existing = next((line for line in self.cart if line["productId"] == item["productId"]), None)
                if existing:
                    existing["quantity"] += item["quantity"]
                else:
                    self.add_cart_line(item["productId"], item["quantity"])
            return _ok({"merged": True})

        if path.startswith("/cart/"):
            line_id = path[len("/cart/"):]
            line = next((line for line in self.cart if line["id"] == line_id), None)
            if line is None:
                return _error(404, "ITEM_NOT_FOUND", "cart item not found")
            if method == "PATCH":
                if body["quantity"] < 1:
                    return _error(400, "VALIDATION_ERROR", "quantity must be at least 1")
                line["quantity"] = body["quantity"]
                return _ok(line)
            if method == "DELETE":
                self.cart.remove(line)
                return _ok({"deleted": True})

        if method == "GET" and path == "/wishlist":
            return _ok([{"id": f"wl-{pid}", "productId": pid} for pid in self.wishlist])

        if method == "POST" and path.startswith("/wishlist/"):
            product_id = int(path[len("/wishlist/"):])
            if product_id in self.wishlist:
                self.wishlist.remove(product_id)
                return _ok({"added": False, "productId": product_id})
            self.wishlist.append(product_id)
            return _ok({"added": True, "productId": product_id})

        return _error(404, "NOT_FOUND", "not found")


def _public(user: dict) -> dict:
    return {key: value for key, value in user.items() if key != "password"}


# ==================== FIXTURES ====================


@pytest.fixture
def server() -> FakeShopServer:
    return FakeShopServer()


@pytest.fixture
def storage() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def redirects() -> List[str]:
    """Login paths handed to the session-expired callback."""
    return []


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_url="http://testserver", state_dir=None, http_timeout=5.0, refresh_timeout=5.0)


@pytest.fixture
def make_shop(server, storage, redirects, config):
    """Factory so tests can build a second client over the same storage (restart)."""
    def _make(**overrides) -> ShopClient:
        return ShopClient(
            overrides.get("config", config),
            overrides.get("storage", storage),
            on_session_expired=redirects.append,
            transport=httpx.MockTransport(server.handler),
        )
    return _make


@pytest.fixture
def shop(make_shop) -> ShopClient:
    return make_shop()


@pytest.fixture
def user(server) -> dict:
    return server.add_user()


@pytest.fixture
def sample_user() -> User:
    return User(id="user-42", email="grace@example.com", fullName="Grace Hopper")


def product(product_id: int) -> Product:
    return Product.model_validate(PRODUCTS[product_id])


async def sign_in(shop: ShopClient, server: FakeShopServer, email: str = "ada@example.com") -> str:
    """Install a session directly (no login flow, no merge)."""
    user = server.users[email]
    server.refresh_email = email
    token = server.issue_token(email)
    shop.session.set_session(User.model_validate(_public(user)), token)
    return token
