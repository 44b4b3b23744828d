"""Collaborator interfaces: product catalog and identity provider.

The engine never owns catalog data and never authenticates; it only asks
these collaborators for a product by item code and for the current user id.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from .errors import ProductNotFound
from .models import Product


class ProductCatalog(ABC):
    @abstractmethod
    def get_product(self, item_code: str) -> Product:
        """Return the product for ``item_code``. Raises ProductNotFound if unknown."""


class InMemoryCatalog(ProductCatalog):
    def __init__(self, products: Iterable[Product] = ()):
        self._products = {p.item_code: p for p in products}

    def add(self, product: Product) -> None:
        self._products[product.item_code] = product

    def get_product(self, item_code: str) -> Product:
        try:
            return self._products[item_code]
        except KeyError:
            raise ProductNotFound(item_code) from None


class IdentityProvider(ABC):
    @abstractmethod
    def current_user_id(self) -> str:
        """Return the id of the signed-in cashier."""


class StaticIdentity(IdentityProvider):
    def __init__(self, user_id: str):
        self.user_id = user_id

    def current_user_id(self) -> str:
        return self.user_id
