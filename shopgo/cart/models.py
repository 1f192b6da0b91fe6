"""Cart models with Decimal-based pricing."""
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import List

from shopgo.money import line_total, parse_money

GUEST_ID_PREFIX = "guest-"


def new_guest_line_id() -> str:
    """Locally generated id, never confused with a server id."""
    return f"{GUEST_ID_PREFIX}{uuid.uuid4().hex}"


def is_guest_line_id(line_id: str) -> bool:
    return str(line_id).startswith(GUEST_ID_PREFIX)


@dataclass(frozen=True)
class CartLine:
    """
    Single line of the cart.

    Frozen so cached snapshots can be restored verbatim; quantity changes go
    through with_quantity(). The subtotal is derived, never stored.
    """
    id: str
    product_id: int
    title: str
    image: str
    unit_price: Decimal
    quantity: int

    def __post_init__(self):
        object.__setattr__(self, "unit_price", parse_money(self.unit_price))
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError("quantity must be an integer")
        if self.quantity < 1:
            raise ValueError("quantity must be at least 1")

    @property
    def subtotal(self) -> Decimal:
        """unit_price * quantity, rounded to cents."""
        return line_total(self.unit_price, self.quantity)

    @property
    def is_guest(self) -> bool:
        return is_guest_line_id(self.id)

    def with_quantity(self, quantity: int) -> "CartLine":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to the wire/storage shape."""
        return {
            "id": self.id,
            "productId": self.product_id,
            "title": self.title,
            "image": self.image,
            "price": str(self.unit_price),
            "quantity": self.quantity,
            "subtotal": str(self.subtotal),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from the wire/storage shape.

        A supplied "subtotal" is ignored; it is recomputed from price and
        quantity. Raises KeyError/TypeError/ValueError on malformed input.
        """
        if not isinstance(data, dict):
            raise TypeError("cart line must be an object")
        return cls(
            id=str(data["id"]),
            product_id=int(data["productId"]),
            title=str(data.get("title", "")),
            image=str(data.get("image", "")),
            unit_price=data["price"],
            quantity=int(data["quantity"]),
        )


def lines_total(lines: List[CartLine]) -> Decimal:
    """Sum of line subtotals."""
    return sum((line.subtotal for line in lines), Decimal("0.00"))


def lines_count(lines: List[CartLine]) -> int:
    """Total number of units."""
    return sum(line.quantity for line in lines)
