import json
import logging

import httpx
from pydantic import ValidationError

from storefront.core.debounce import Clock, Debouncer
from storefront.errors import (
    AuthError,
    CartStoreError,
    InsufficientStock,
    InvalidQuantity,
    describe_http_error,
)
from storefront.models.schemas import AICartProduct, CartLine, CartSyncRequest, Product
from storefront.services.auth import Identity
from storefront.services.cart_store import RemoteCartStore

logger = logging.getLogger(__name__)

SYNC_ERRORS = (httpx.HTTPError, AuthError, CartStoreError, ValidationError)


class CartManager:
    """Owns the local cart and mirrors it to the remote cart store.

    Local state is authoritative for the session: every mutation applies
    immediately and schedules a debounced write of the whole snapshot. The
    remote copy only wins once, when an identity is set.
    """

    def __init__(
        self,
        store: RemoteCartStore,
        identity: Identity | None = None,
        debounce_seconds: float = 0.5,
        clock: Clock | None = None,
    ):
        self.store = store
        self.identity = identity
        self._lines: list[CartLine] = []
        self._sync = Debouncer(debounce_seconds, self._push, clock=clock)
        self._closed = False
        self.is_loading = False
        self.error: str | None = None

    # -- Read side --

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_price(self) -> float:
        return round(sum(line.product.price * line.quantity for line in self._lines), 2)

    @property
    def pending_sync(self) -> list[CartLine] | None:
        """Snapshot waiting in the debounce window, if any."""
        return self._sync.pending

    def find_line(self, product_ref, size: str, color: str) -> CartLine | None:
        key = (str(product_ref), size, color)
        return next((line for line in self._lines if line.key == key), None)

    def to_external(self) -> list[dict]:
        return [
            AICartProduct(
                item_name=line.product.item_name,
                price=line.product.price,
                color=line.color,
                item_size=line.size,
                quantity=line.quantity,
            ).model_dump(by_alias=True)
            for line in self._lines
        ]

    def to_external_json(self) -> str:
        return json.dumps(self.to_external(), separators=(",", ":"))

    # -- Mutations --

    def add_line(self, product: Product, size: str, color: str, quantity: int = 1) -> CartLine | None:
        """Add ``quantity`` of a variant, merging with an existing line.

        Negative quantities decrement an existing line; a line that would drop
        below one is removed. Returns the resulting line, or None if removed.
        """
        self.error = None
        if product.stock_quantity < quantity:
            self.error = "Insufficient stock"
            raise InsufficientStock(product.item_id, quantity, product.stock_quantity)

        key = (str(product.item_id), size, color)
        for index, line in enumerate(self._lines):
            if line.key != key:
                continue
            new_quantity = line.quantity + quantity
            if new_quantity < 1:
                del self._lines[index]
                self._schedule_sync()
                return None
            updated = line.model_copy(update={"quantity": new_quantity})
            self._lines[index] = updated
            self._schedule_sync()
            return updated

        if quantity < 1:
            raise InvalidQuantity(f"Cannot add {quantity} of a product not in the cart")
        line = CartLine(product=product, quantity=quantity, size=size, color=color)
        self._lines.append(line)
        self._schedule_sync()
        return line

    def remove_line(self, product_ref, size: str, color: str):
        key = (str(product_ref), size, color)
        self._lines = [line for line in self._lines if line.key != key]
        self._schedule_sync()

    def increase_quantity(self, product_ref, size: str, color: str) -> CartLine | None:
        line = self.find_line(product_ref, size, color)
        if line is None:
            return None
        return self.add_line(line.product, size, color, 1)

    def decrease_quantity(self, product_ref, size: str, color: str) -> CartLine | None:
        line = self.find_line(product_ref, size, color)
        if line is None:
            return None
        if line.quantity > 1:
            return self.add_line(line.product, size, color, -1)
        self.remove_line(product_ref, size, color)
        return None

    def clear(self):
        self._lines = []
        self._schedule_sync()

    # -- Session lifecycle --

    async def set_identity(self, identity: Identity | None):
        """Switch the signed-in user.

        Logging out discards the local cart without syncing it. Logging in
        replaces the local cart with the remote one.
        """
        self._sync.cancel()
        self.identity = identity
        if identity is None:
            logger.info("No user logged in, clearing cart")
            self._lines = []
            return
        await self.load()

    async def load(self):
        """Replace local state with the remote cart (remote wins)."""
        if self.identity is None:
            self._lines = []
            return
        self.is_loading = True
        try:
            token = await self.identity.get_token()
            remote = await self.store.fetch_cart(token)
            # writes queued before the load would overwrite the remote cart
            self._sync.cancel()
            self._lines = list(remote)
            self.error = None
        except SYNC_ERRORS as exc:
            logger.error("Error fetching cart for %s: %s", self.identity.user_id, exc)
            self.error = describe_http_error(exc, "Failed to fetch cart from backend")
            self._sync.cancel()
            self._lines = []
        finally:
            self.is_loading = False

    async def flush(self):
        await self._sync.flush()

    async def aclose(self):
        """Tear down. A pending write still goes out but no longer touches state."""
        self._closed = True
        await self._sync.flush()

    # -- Remote sync --

    def _schedule_sync(self):
        self._sync.schedule(list(self._lines))

    async def _push(self, lines: list[CartLine]):
        identity = self.identity
        if identity is None:
            logger.debug("User not authenticated, skipping backend cart update")
            return
        try:
            token = await identity.get_token()
            request = CartSyncRequest(cart=lines, user_id=identity.user_id, email=identity.email)
            await self.store.push_cart(request, token)
        except SYNC_ERRORS as exc:
            logger.error("Error sending cart update for %s: %s", identity.user_id, exc)
            if not self._closed:
                self.error = describe_http_error(exc, "Failed to update cart on backend")
            return
        logger.debug("Cart update sent for %s (%d lines)", identity.user_id, len(lines))
        if not self._closed:
            self.error = None
