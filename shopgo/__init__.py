"""ShopGo client: session renewal and guest/user cart consistency."""
from shopgo.client import ShopClient, get_shop_client
from shopgo.config import ClientConfig, load_config

__version__ = "0.1.0"

__all__ = [
    "ShopClient",
    "ClientConfig",
    "get_shop_client",
    "load_config",
]
