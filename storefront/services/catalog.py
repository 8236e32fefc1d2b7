import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from storefront.errors import CatalogError, ProductValidationError
from storefront.models.schemas import Product

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("itemName", "price", "color", "itemSize")

NEW_PRODUCT_DEFAULTS = {
    "stockQuantity": 0,
    "averageRating": "N/A",
    "material": "N/A",
    "subCategoryID": "N/A",
    "dimension": "N/A",
    "status": "Active",
    "reviewCount": "N/A",
    "discount": 0,
    "categoryID": "N/A",
    "isOnSale": False,
    "description": "",
    "imgURL1": "",
    "imgURL2": "",
    "imgURL3": "",
}


def prepare_new_product(draft: dict[str, Any]) -> Product:
    """Validate an admin draft and fill in the defaults of a new record."""
    if not all(draft.get(field) for field in REQUIRED_FIELDS):
        raise ProductValidationError(
            "Please fill all required fields: " + ", ".join(REQUIRED_FIELDS)
        )
    stamp = int(time.time() * 1000)
    record = {key: value for key, value in draft.items() if value not in (None, "")}
    for key, value in NEW_PRODUCT_DEFAULTS.items():
        record.setdefault(key, value)
    record.setdefault("itemID", stamp)
    record.setdefault("SKU", f"SKU-{stamp}")
    try:
        return Product.model_validate(record)
    except ValidationError as exc:
        raise ProductValidationError(str(exc)) from exc


def validate_product_update(product_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    if not product_id:
        raise ProductValidationError("Please enter a product ID to update")
    if not updates:
        raise ProductValidationError("Please provide at least one field to update")
    return updates


class CatalogStore:
    """Remote product table (rows API, token authorized)."""

    def __init__(self, rows_url: str, api_token: str, client: httpx.AsyncClient | None = None):
        self.rows_url = rows_url
        self.api_token = api_token
        self._client = client or httpx.AsyncClient(timeout=15.0)

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"Token {self.api_token}",
            "Content-Type": "application/json",
        }

    def _check_config(self):
        if not self.rows_url or not self.api_token:
            raise CatalogError("API config missing")

    async def fetch_raw(self) -> list[dict]:
        """Raw product records, as returned under ``results``."""
        self._check_config()
        try:
            response = await self._client.get(
                self.rows_url, headers=self.headers, params={"user_field_names": "true"}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch products: %s", exc)
            raise CatalogError("Failed to fetch products") from exc
        if not isinstance(data, dict) or not isinstance(data.get("results") or [], list):
            raise CatalogError("Invalid product data structure")
        return data.get("results") or []

    async def fetch_all_products(self) -> list[Product]:
        products = []
        for raw in await self.fetch_raw():
            try:
                products.append(Product.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Skipping malformed product record %s: %s", raw.get("id"), exc)
        return products

    async def get_product(self, item_id) -> Product | None:
        """Look a product up by its ``itemID``."""
        for product in await self.fetch_all_products():
            if str(product.item_id) == str(item_id):
                return product
        return None

    async def add_product(self, draft: dict[str, Any]) -> str:
        """Create a product row. Returns the new row id."""
        product = prepare_new_product(draft)
        self._check_config()
        try:
            response = await self._client.post(
                self.rows_url,
                headers=self.headers,
                params={"user_field_names": "true"},
                json=product.model_dump(mode="json", by_alias=True, exclude={"row_id"}),
            )
            response.raise_for_status()
            row = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error adding product: %s", exc)
            raise CatalogError("Failed to add product") from exc
        row_id = str(row.get("id", ""))
        logger.info("Product written with id %s", row_id)
        return row_id

    async def update_product(self, product_id: str, updates: dict[str, Any]):
        validate_product_update(product_id, updates)
        self._check_config()
        try:
            response = await self._client.patch(
                f"{self.rows_url}{product_id}/",
                headers=self.headers,
                params={"user_field_names": "true"},
                json=updates,
            )
            if response.status_code == 404:
                raise CatalogError("Product not found")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Error updating product %s: %s", product_id, exc)
            raise CatalogError("Failed to update product") from exc
        logger.info("Product %s successfully updated", product_id)

    async def close(self):
        await self._client.aclose()
