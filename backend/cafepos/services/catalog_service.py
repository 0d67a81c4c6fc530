# Overview: Catalog management for products and discounts, including erase-vs-deactivate removal.

from __future__ import annotations

from ..errors import DiscountNotFound, ProductNotFound
from ..models import Discount, Product
from ..validation import enforce_rules_discount, enforce_rules_product

PRODUCT_FIELDS = ("name", "description", "category", "price_cents", "cost_cents", "is_available")
DISCOUNT_FIELDS = (
    "name", "description", "discount_type", "value", "is_active",
    "starts_at", "ends_at", "min_item_count",
)


def _discount_rule_view(discount: Discount) -> dict:
    return {field: getattr(discount, field) for field in DISCOUNT_FIELDS}


class CatalogService:
    """
    Product and discount maintenance.

    Removal follows one policy for both: a row nothing references is erased;
    a referenced row is deactivated instead so historical orders keep their
    foreign keys. Callers learn which happened from the returned outcome.
    """

    def __init__(self, session, catalog_repo):
        self.session = session
        self.catalog = catalog_repo

    # -- products ---------------------------------------------------------

    def list_products(self, available_only: bool = False) -> list[Product]:
        return self.catalog.list_products(available_only=available_only)

    def get_product(self, product_id: int) -> Product:
        product = self.catalog.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def create_product(self, data: dict) -> Product:
        enforce_rules_product(data)
        product = Product(**{k: v for k, v in data.items() if k in PRODUCT_FIELDS})
        self.catalog.add(product)
        self.session.commit()
        return product

    def update_product(self, product_id: int, patch: dict) -> Product:
        enforce_rules_product(patch)
        product = self.get_product(product_id)
        for key in PRODUCT_FIELDS:
            if key in patch:
                setattr(product, key, patch[key])
        self.session.commit()
        return product

    def remove_product(self, product_id: int) -> str:
        product = self.get_product(product_id)
        if self.catalog.product_is_referenced(product_id):
            product.is_available = False
            self.session.commit()
            return "deactivated"
        self.catalog.delete(product)
        self.session.commit()
        return "erased"

    # -- discounts --------------------------------------------------------

    def list_discounts(self, active_only: bool = False) -> list[Discount]:
        return self.catalog.list_discounts(active_only=active_only)

    def get_discount(self, discount_id: int) -> Discount:
        discount = self.catalog.get_discount(discount_id)
        if discount is None:
            raise DiscountNotFound(discount_id)
        return discount

    def create_discount(self, data: dict) -> Discount:
        enforce_rules_discount(data)
        discount = Discount(**{k: v for k, v in data.items() if k in DISCOUNT_FIELDS})
        discount.usage_count = 0
        self.catalog.add(discount)
        self.session.commit()
        return discount

    def update_discount(self, discount_id: int, patch: dict) -> Discount:
        discount = self.get_discount(discount_id)
        enforce_rules_discount(patch, current=_discount_rule_view(discount))
        for key in DISCOUNT_FIELDS:
            if key in patch:
                setattr(discount, key, patch[key])
        self.session.commit()
        return discount

    def remove_discount(self, discount_id: int) -> str:
        discount = self.get_discount(discount_id)
        if self.catalog.discount_is_referenced(discount_id):
            discount.is_active = False
            self.session.commit()
            return "deactivated"
        self.catalog.delete(discount)
        self.session.commit()
        return "erased"
