import httpx

from storefront.errors import CartStoreError
from storefront.models.schemas import CartLine, CartSyncRequest, RemoteCart


class RemoteCartStore:
    """Per-user cart mirror behind two bearer-authorized endpoints."""

    def __init__(self, fetch_url: str, sync_url: str, client: httpx.AsyncClient | None = None):
        self.fetch_url = fetch_url
        self.sync_url = sync_url
        self._client = client or httpx.AsyncClient(timeout=15.0)

    def _headers(self, token: str) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    async def fetch_cart(self, token: str) -> list[CartLine]:
        """Read the authenticated user's stored cart. A missing cart is empty."""
        if not self.fetch_url:
            raise CartStoreError("Cart fetch URL is not configured")
        response = await self._client.get(self.fetch_url, headers=self._headers(token))
        response.raise_for_status()
        remote = RemoteCart.model_validate(response.json())
        return remote.cart or []

    async def push_cart(self, request: CartSyncRequest, token: str) -> dict | None:
        """Write the full cart snapshot. The response body carries no contract."""
        if not self.sync_url:
            raise CartStoreError("Cart sync URL is not configured")
        response = await self._client.post(
            self.sync_url,
            headers=self._headers(token),
            json=request.model_dump(mode="json", by_alias=True),
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError:
            return None

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
