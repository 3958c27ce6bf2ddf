from . import admin_shared_carts
from . import auth
from . import shared_carts

__all__ = [
    "admin_shared_carts",
    "auth",
    "shared_carts",
]
